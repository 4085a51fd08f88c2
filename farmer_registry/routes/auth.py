# Authentication Routes
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request

from farmer_registry.auth import current_caller, end_session, start_session
from farmer_registry.models import db
from farmer_registry.services.users import authenticate

auth_bp = Blueprint('auth', __name__)

@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    user = authenticate(data.get('email'), data.get('password'))

    user.last_login = datetime.utcnow()
    db.session.commit()

    start_session(user, current_app.config['PERMANENT_SESSION_LIFETIME'])
    return jsonify({'user': user.to_dict()})

@auth_bp.route('/logout', methods=['POST'])
def logout():
    end_session()
    return jsonify({'message': 'Logged out successfully'})

@auth_bp.route('/session')
def session_info():
    """Current caller context; ``hydrated`` tells clients the cookie was read."""
    return jsonify(current_caller().to_dict())
