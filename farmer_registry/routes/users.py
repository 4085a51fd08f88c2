# User Administration Routes
from flask import Blueprint, jsonify, request

from farmer_registry.auth import current_caller
from farmer_registry.models import ROLE_STAFF
from farmer_registry.services import users as user_service

users_bp = Blueprint('users', __name__)

@users_bp.route('', methods=['POST'])
def create_user():
    data = request.get_json(silent=True) or {}
    user = user_service.create_user(
        data.get('email'), data.get('password'), data.get('name'), role=ROLE_STAFF
    )
    return jsonify({'user': user.to_dict()}), 201

@users_bp.route('', methods=['GET'])
def list_users():
    return jsonify({'users': [user.to_dict() for user in user_service.list_staff()]})

@users_bp.route('/<int:user_id>', methods=['DELETE'])
def delete_user(user_id):
    user_service.delete_user(user_id, current_caller())
    return jsonify({'message': 'User deleted successfully'})

@users_bp.route('/<int:user_id>/toggle-status', methods=['POST'])
def toggle_status(user_id):
    user = user_service.toggle_status(user_id)
    state = 'activated' if user.is_active else 'deactivated'
    return jsonify({'message': f'User {state} successfully', 'user': user.to_dict()})
