"""
Database package for SolarOps.
Provides SQLAlchemy models, enumerations, engine creation and the
transactional Store.
"""

from database.connection import (
    Base,
    create_db_engine,
    init_db,
    check_db_connection
)

from database.enums import (
    JobStatus,
    LeadStatus,
    ContactMethod,
    EquipmentCategory,
    InstallationStatus
)

from database.models import (
    User,
    Job,
    Customer,
    Equipment,
    Installation
)

from database.store import Store

__all__ = [
    # Connection
    'Base',
    'create_db_engine',
    'init_db',
    'check_db_connection',
    'Store',
    # Enumerations
    'JobStatus',
    'LeadStatus',
    'ContactMethod',
    'EquipmentCategory',
    'InstallationStatus',
    # Models
    'User',
    'Job',
    'Customer',
    'Equipment',
    'Installation'
]
