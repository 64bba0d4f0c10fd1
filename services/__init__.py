"""
Services package for SolarOps.
Contains the owner-scoped repositories, the user session and statistics.
"""

from services.context import ServiceContext
from services.ownership import OwnershipScope
from services.job_repository import JobRepository, JobSortKey
from services.customer_repository import CustomerRepository, CustomerSortKey
from services.equipment_repository import EquipmentRepository, EquipmentSortKey
from services.installation_repository import InstallationRepository, InstallationSortKey
from services.users_repository import UsersRepository
from services.user_session import UserSession
from services.dashboard import build_dashboard

__all__ = [
    'ServiceContext',
    'OwnershipScope',
    'JobRepository',
    'JobSortKey',
    'CustomerRepository',
    'CustomerSortKey',
    'EquipmentRepository',
    'EquipmentSortKey',
    'InstallationRepository',
    'InstallationSortKey',
    'UsersRepository',
    'UserSession',
    'build_dashboard'
]
