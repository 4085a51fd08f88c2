# Main Routes
from flask import Blueprint, jsonify

from farmer_registry.auth import current_caller

main_bp = Blueprint('main', __name__)

@main_bp.route('/')
def index():
    return jsonify({'name': 'Farmer Registry', 'authenticated': current_caller().is_authenticated})

@main_bp.route('/signin')
def signin():
    """Public landing for unauthenticated page requests."""
    return jsonify({'page': 'signin', 'login': '/api/auth/login'})

@main_bp.route('/dashboard')
def dashboard():
    caller = current_caller()
    return jsonify({'page': 'dashboard', 'userId': caller.user_id, 'role': caller.role})

@main_bp.route('/admindashboard')
def admin_dashboard():
    caller = current_caller()
    return jsonify({'page': 'admindashboard', 'userId': caller.user_id, 'role': caller.role})
