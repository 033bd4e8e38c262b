"""
Database Package

SQLAlchemy models and connection management.
"""

from database.connection import (
    get_db,
    get_db_context,
    init_db,
    close_db,
    get_engine,
    get_session_factory,
)

from database.models import (
    Base,
    User,
    Vendor,
    RFP,
    Proposal,
    generate_object_id,
    is_valid_object_id,
)

__all__ = [
    # Connection
    "get_db",
    "get_db_context",
    "init_db",
    "close_db",
    "get_engine",
    "get_session_factory",
    # Models
    "Base",
    "User",
    "Vendor",
    "RFP",
    "Proposal",
    "generate_object_id",
    "is_valid_object_id",
]
