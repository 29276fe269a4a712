"""
Database models module.

This module imports all database models to ensure they are registered with SQLAlchemy's Base.metadata
before table creation.

All models must be imported here to be included in database migrations and table creation.
"""
from license_api.db.models.account import Account
from license_api.db.models.vouch import Vouch

__all__ = [
    "Account",
    "Vouch",
]
