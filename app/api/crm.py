"""
CRM Routes Blueprint

Handles the people tasks refer to:
- /api/customers: List (optionally ?search=) / create customers
- /api/customers/<customer_id>: Get/update/delete a customer
- /api/users: List / create users
- /api/users/<user_id>: Get/update/delete a user
"""

from flask import Blueprint, request, jsonify

from app.utils import get_json_payload, transact
from services.customer_repository import CustomerRepository
from services.user_repository import UserRepository
from validators import validate_customer_request, validate_user_request, require_valid

# Create blueprint
crm_bp = Blueprint('crm_bp', __name__)


# ============================================================================
# CUSTOMERS ROUTES
# ============================================================================

@crm_bp.route('/api/customers', methods=['GET', 'POST'])
def handle_customers():
    """Handle customer list and creation"""
    if request.method == 'GET':
        search = request.args.get('search', '').strip() or None
        customers = transact(lambda session: CustomerRepository(session).list_customers(search))
        return jsonify({'success': True, 'customers': customers})

    data = get_json_payload()
    require_valid(validate_customer_request(data))
    customer = transact(lambda session: CustomerRepository(session).create_customer(data))
    return jsonify({'success': True, 'customer': customer}), 201


@crm_bp.route('/api/customers/<customer_id>', methods=['GET', 'PUT', 'DELETE'])
def handle_customer(customer_id):
    """Handle single customer operations"""
    if request.method == 'GET':
        customer = transact(lambda session: CustomerRepository(session).get_customer(customer_id))
        return jsonify({'success': True, 'customer': customer})

    if request.method == 'PUT':
        data = get_json_payload()
        require_valid(validate_customer_request(data, partial=True))
        customer = transact(
            lambda session: CustomerRepository(session).update_customer(customer_id, data)
        )
        return jsonify({'success': True, 'customer': customer})

    transact(lambda session: CustomerRepository(session).delete_customer(customer_id))
    return '', 204


# ============================================================================
# USERS ROUTES
# ============================================================================

@crm_bp.route('/api/users', methods=['GET', 'POST'])
def handle_users():
    """Handle user list and creation"""
    if request.method == 'GET':
        users = transact(lambda session: UserRepository(session).list_users())
        return jsonify({'success': True, 'users': users})

    data = get_json_payload()
    require_valid(validate_user_request(data))
    user = transact(lambda session: UserRepository(session).create_user(data))
    return jsonify({'success': True, 'user': user}), 201


@crm_bp.route('/api/users/<user_id>', methods=['GET', 'PUT', 'DELETE'])
def handle_user(user_id):
    """Handle single user operations"""
    if request.method == 'GET':
        user = transact(lambda session: UserRepository(session).get_user(user_id))
        return jsonify({'success': True, 'user': user})

    if request.method == 'PUT':
        data = get_json_payload()
        require_valid(validate_user_request(data, partial=True))
        user = transact(lambda session: UserRepository(session).update_user(user_id, data))
        return jsonify({'success': True, 'user': user})

    transact(lambda session: UserRepository(session).delete_user(user_id))
    return '', 204
