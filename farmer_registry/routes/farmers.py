# Farmer Record Routes
from flask import Blueprint, jsonify, request

from farmer_registry.auth import current_caller
from farmer_registry.errors import ValidationError
from farmer_registry.services import farmers as farmer_service
from farmer_registry.validation import parse_fields_json

farmers_bp = Blueprint('farmers', __name__)

PERSONAL_KEYS = list(farmer_service.PERSONAL_FIELDS)
BANK_KEYS = list(farmer_service.BANK_FIELDS)

def _form_values(keys):
    """Non-empty form values for ``keys``; blank inputs count as not sent."""
    values = {}
    for key in keys:
        value = request.form.get(key)
        if value is not None and value.strip() != '':
            values[key] = value.strip()
    return values

def _farmer_payload():
    payload = _form_values(PERSONAL_KEYS)
    bank = _form_values(BANK_KEYS)
    if bank:
        payload['bankDetails'] = bank
    fields = parse_fields_json(request.form.get('fields'))
    if fields is not None:
        payload['fields'] = fields
    return payload

def _int_arg(name, default, minimum=1):
    raw = request.args.get(name)
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        value = None
    if value is None or value < minimum:
        raise ValidationError(f'Invalid {name}',
                              details=[{'field': name, 'message': f'Must be an integer >= {minimum}'}])
    return value

# ==================== COLLECTION ====================

@farmers_bp.route('', methods=['POST'])
def create_farmer():
    payload = _farmer_payload()
    # Missing bank values are reported per key
    payload.setdefault('bankDetails', {})
    farmer = farmer_service.create_farmer(payload, request.files, current_caller())
    return jsonify({
        'message': 'Farmer created successfully',
        'farmer': farmer_service.farmer_to_dict(farmer),
    }), 201

@farmers_bp.route('', methods=['GET'])
def list_farmers():
    page = _int_arg('page', 1)
    limit = min(_int_arg('limit', 10), 100)
    result = farmer_service.list_farmers(
        search=request.args.get('search', '').strip() or None,
        state=request.args.get('state') or None,
        district=request.args.get('district') or None,
        page=page,
        limit=limit,
    )
    return jsonify(result)

# ==================== SINGLE RECORD ====================

@farmers_bp.route('/<identifier>', methods=['GET'])
def get_farmer(identifier):
    return jsonify({'farmer': farmer_service.get_farmer(identifier)})

@farmers_bp.route('/<identifier>', methods=['PUT'])
def update_farmer(identifier):
    if not request.mimetype or request.mimetype != 'multipart/form-data':
        raise ValidationError('Content-Type must be multipart/form-data')

    farmer = farmer_service.update_farmer(identifier, _farmer_payload(), request.files, current_caller())
    return jsonify({
        'message': 'Farmer updated successfully',
        'farmer': farmer_service.farmer_to_dict(farmer),
    })

@farmers_bp.route('/<identifier>', methods=['DELETE'])
def delete_farmer(identifier):
    farmer_service.delete_farmer(identifier, current_caller())
    return jsonify({'message': 'Farmer and associated data deleted successfully'})
