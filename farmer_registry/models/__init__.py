# Database Models
from farmer_registry.models.user import db, User, ROLE_ADMIN, ROLE_STAFF, ROLES
from farmer_registry.models.farmer import (
    Farmer, FarmerDocuments, BankDetails, Field,
    RELATIONSHIPS, GENDERS
)

__all__ = [
    'db', 'User', 'ROLE_ADMIN', 'ROLE_STAFF', 'ROLES',
    'Farmer', 'FarmerDocuments', 'BankDetails', 'Field',
    'RELATIONSHIPS', 'GENDERS'
]
