# Export Routes
from flask import Blueprint, jsonify, request
from flask_login import current_user

from farmer_registry.auth import current_caller, require_active_account
from farmer_registry.services.export import export_farmers

export_bp = Blueprint('export', __name__)

@export_bp.route('/farmers', methods=['POST'])
def export():
    require_active_account()
    data = request.get_json(silent=True) or {}
    result = export_farmers(data.get('options'), current_caller(), generated_by=current_user.name)
    return jsonify(result)
