"""
Customer Repository - Database operations for CRM customers.
"""

import logging
from typing import Dict, List, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session

from database.models import Customer, Task
from services.errors import NotFoundError
from validators import sanitize_string, MAX_NAME_LENGTH, MAX_TEXT_LENGTH

logger = logging.getLogger(__name__)


class CustomerRepository:
    """Repository for customer database operations."""

    NAME_FIELDS = ('name', 'email', 'phone', 'company')
    TEXT_FIELDS = ('address', 'notes')

    def __init__(self, session: Session):
        self.session = session

    def _get(self, customer_id) -> Customer:
        customer = self.session.query(Customer).filter(
            Customer.id == str(customer_id)
        ).first()
        if not customer:
            raise NotFoundError(f"Customer {customer_id} not found")
        return customer

    def _apply_fields(self, customer: Customer, data: Dict):
        for key in self.NAME_FIELDS + self.TEXT_FIELDS:
            if key not in data:
                continue
            value = data[key]
            if value is None or value == '':
                setattr(customer, key, None)
            else:
                limit = MAX_NAME_LENGTH if key in self.NAME_FIELDS else MAX_TEXT_LENGTH
                setattr(customer, key, sanitize_string(value, limit))
        if 'social_profiles' in data:
            customer.social_profiles = data['social_profiles'] or {}

    def list_customers(self, search: Optional[str] = None) -> List[Dict]:
        """List customers by name, optionally filtered by name, company or email."""
        query = self.session.query(Customer)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Customer.name.ilike(pattern),
                Customer.company.ilike(pattern),
                Customer.email.ilike(pattern)
            ))
        return [c.to_dict() for c in query.order_by(Customer.name).all()]

    def get_customer(self, customer_id) -> Dict:
        """Get a customer with the tasks done for them."""
        customer = self._get(customer_id)
        data = customer.to_dict()
        data['tasks'] = [t.to_dict() for t in sorted(customer.tasks, key=lambda t: t.title)]
        return data

    def create_customer(self, data: Dict) -> Dict:
        """Create a new customer."""
        customer = Customer(social_profiles={})
        self._apply_fields(customer, data)
        self.session.add(customer)
        self.session.flush()
        logger.info(f"Created customer: {customer.id}")
        return customer.to_dict()

    def update_customer(self, customer_id, data: Dict) -> Dict:
        """Update a customer."""
        customer = self._get(customer_id)
        self._apply_fields(customer, data)
        self.session.flush()
        logger.info(f"Updated customer: {customer_id}")
        return customer.to_dict()

    def delete_customer(self, customer_id):
        """Delete a customer. Their tasks stay on the board without a customer."""
        customer = self._get(customer_id)
        detached = self.session.query(Task).filter(
            Task.customer_id == customer.id
        ).update({Task.customer_id: None}, synchronize_session='fetch')
        self.session.delete(customer)
        self.session.flush()
        logger.info(f"Deleted customer: {customer_id} ({detached} tasks detached)")
