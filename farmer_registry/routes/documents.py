# Document URL Routes
from flask import Blueprint, jsonify, request

from farmer_registry.auth import require_active_account
from farmer_registry.errors import ValidationError
from farmer_registry.services.farmers import document_url

documents_bp = Blueprint('documents', __name__)

@documents_bp.route('/<doc_type>/<identifier>/url')
def get_document_url(doc_type, identifier):
    """Short-lived signed URL for one farmer document."""
    require_active_account()
    try:
        field_index = int(request.args.get('fieldIndex', 0))
    except ValueError:
        raise ValidationError('Invalid fieldIndex',
                              details=[{'field': 'fieldIndex', 'message': 'Must be an integer'}])
    return jsonify({'url': document_url(doc_type, identifier, field_index)})
