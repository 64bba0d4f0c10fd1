"""
SQLAlchemy models for SolarOps.
Defines the users table and the four owner-scoped record kinds:
jobs, customers, equipment and installations.

Enum fields are stored as their string value (see database.enums).
Dates are naive local datetimes.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String, Text,
)

from calculations import safe_value
from database.connection import Base
from database.enums import (
    ContactMethod, EquipmentCategory, InstallationStatus, JobStatus, LeadStatus,
)


def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


# =============================================================================
# USERS
# =============================================================================

class User(Base):
    """Application users; every other record is owned by exactly one user."""
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, nullable=False)  # stored lower-cased
    full_name = Column(String(100), nullable=False)
    company_name = Column(String(255), default='')
    phone_number = Column(String(50), default='')
    password_hash = Column(String(255), nullable=False)
    created_date = Column(DateTime, default=datetime.now, nullable=False)
    last_sign_in_date = Column(DateTime)
    is_active = Column(Boolean, default=True)

    __table_args__ = (
        Index('ix_users_email', 'email'),
    )

    def to_dict(self, include_sensitive=False):
        data = {
            'id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'company_name': self.company_name,
            'phone_number': self.phone_number,
            'is_active': self.is_active,
            'created_date': _iso(self.created_date),
            'last_sign_in_date': _iso(self.last_sign_in_date),
        }
        if include_sensitive:
            data['password_hash'] = self.password_hash
        return data

    def __repr__(self):
        return f"<User {self.email}>"


# =============================================================================
# JOBS
# =============================================================================

class Job(Base):
    """Solar installation jobs."""
    __tablename__ = 'jobs'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    owner_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    created_seq = Column(Integer, nullable=False)
    customer_id = Column(String(36), ForeignKey('customers.id', ondelete='SET NULL'))
    customer_name = Column(String(100), nullable=False)
    address = Column(String(200), nullable=False)
    system_size = Column(Float, default=0.0)  # kW
    estimated_revenue = Column(Float, default=0.0)
    status = Column(String(30), default=JobStatus.PENDING.value, nullable=False)
    scheduled_date = Column(DateTime)
    site_visit_date = Column(DateTime)
    site_visit_notes = Column(Text, default='')
    notes = Column(Text, default='')
    created_date = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        Index('ix_jobs_owner', 'owner_id'),
        Index('ix_jobs_customer', 'customer_id'),
        Index('ix_jobs_status', 'status'),
        Index('ix_jobs_scheduled_date', 'scheduled_date'),
    )

    @property
    def job_status(self) -> JobStatus:
        return JobStatus(self.status)

    @property
    def is_active(self) -> bool:
        return self.status == JobStatus.IN_PROGRESS

    @property
    def is_open(self) -> bool:
        """Neither completed nor cancelled."""
        return self.status not in (JobStatus.COMPLETED, JobStatus.CANCELLED)

    def to_dict(self):
        return {
            'id': self.id,
            'owner_id': self.owner_id,
            'customer_id': self.customer_id,
            'customer_name': self.customer_name,
            'address': self.address,
            'system_size': safe_value(self.system_size),
            'estimated_revenue': safe_value(self.estimated_revenue),
            'status': self.status,
            'status_label': self.job_status.label,
            'scheduled_date': _iso(self.scheduled_date),
            'site_visit_date': _iso(self.site_visit_date),
            'site_visit_notes': self.site_visit_notes,
            'notes': self.notes,
            'created_date': _iso(self.created_date),
            'updated_at': _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Job {self.customer_name} ({self.status})>"


# =============================================================================
# CUSTOMERS
# =============================================================================

class Customer(Base):
    """Customer / lead records. Their jobs are looked up by customer_id."""
    __tablename__ = 'customers'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    owner_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    created_seq = Column(Integer, nullable=False)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    address = Column(Text, nullable=False)
    lead_status = Column(String(30), default=LeadStatus.NEW_LEAD.value, nullable=False)
    preferred_contact_method = Column(String(30), default=ContactMethod.EMAIL.value)
    notes = Column(Text, default='')
    created_date = Column(DateTime, default=datetime.now, nullable=False)
    last_contact_date = Column(DateTime)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        Index('ix_customers_owner', 'owner_id'),
        Index('ix_customers_name', 'name'),
        Index('ix_customers_lead_status', 'lead_status'),
    )

    @property
    def lead(self) -> LeadStatus:
        return LeadStatus(self.lead_status)

    def to_dict(self):
        return {
            'id': self.id,
            'owner_id': self.owner_id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'lead_status': self.lead_status,
            'lead_status_label': self.lead.label,
            'preferred_contact_method': self.preferred_contact_method,
            'notes': self.notes,
            'created_date': _iso(self.created_date),
            'last_contact_date': _iso(self.last_contact_date),
            'updated_at': _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Customer {self.name}>"


# =============================================================================
# EQUIPMENT
# =============================================================================

class Equipment(Base):
    """Equipment catalog and stock levels."""
    __tablename__ = 'equipment'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    owner_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    created_seq = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)
    category = Column(String(30), default=EquipmentCategory.SOLAR_PANELS.value, nullable=False)
    brand = Column(String(255), nullable=False)
    model = Column(String(255), nullable=False)
    manufacturer = Column(String(255), default='')
    description = Column(Text, default='')
    supplier = Column(String(255), default='')
    quantity = Column(Integer, default=0, nullable=False)
    unit_price = Column(Float, default=0.0)
    unit_cost = Column(Float, default=0.0)
    low_stock_threshold = Column(Integer, default=5)
    minimum_stock = Column(Integer, default=5)
    warranty_period = Column(Integer, default=12)  # months
    is_active = Column(Boolean, default=True)
    created_date = Column(DateTime, default=datetime.now, nullable=False)
    last_updated = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        Index('ix_equipment_owner', 'owner_id'),
        Index('ix_equipment_category', 'category'),
    )

    @property
    def equipment_category(self) -> EquipmentCategory:
        return EquipmentCategory(self.category)

    @property
    def is_low_stock(self) -> bool:
        return (self.quantity or 0) <= (self.low_stock_threshold or 0)

    @property
    def is_out_of_stock(self) -> bool:
        return (self.quantity or 0) == 0

    @property
    def total_value(self) -> float:
        return safe_value(safe_value(self.unit_price) * (self.quantity or 0))

    def to_dict(self):
        return {
            'id': self.id,
            'owner_id': self.owner_id,
            'name': self.name,
            'category': self.category,
            'category_label': self.equipment_category.label,
            'brand': self.brand,
            'model': self.model,
            'manufacturer': self.manufacturer,
            'description': self.description,
            'supplier': self.supplier,
            'quantity': self.quantity,
            'unit_price': safe_value(self.unit_price),
            'unit_cost': safe_value(self.unit_cost),
            'low_stock_threshold': self.low_stock_threshold,
            'minimum_stock': self.minimum_stock,
            'warranty_period': self.warranty_period,
            'is_active': self.is_active,
            'is_low_stock': self.is_low_stock,
            'total_value': self.total_value,
            'created_date': _iso(self.created_date),
            'last_updated': _iso(self.last_updated),
        }

    def __repr__(self):
        return f"<Equipment {self.name} x{self.quantity}>"


# =============================================================================
# INSTALLATIONS
# =============================================================================

class Installation(Base):
    """Scheduled installation work for one job."""
    __tablename__ = 'installations'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    owner_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    created_seq = Column(Integer, nullable=False)
    job_id = Column(String(36), ForeignKey('jobs.id'), nullable=False)
    scheduled_date = Column(DateTime, nullable=False)
    estimated_duration = Column(Float, default=8 * 3600)  # seconds
    crew_members = Column(Text, default='')
    crew_size = Column(Integer, default=1, nullable=False)
    status = Column(String(30), default=InstallationStatus.SCHEDULED.value, nullable=False)
    notes = Column(Text, default='')
    weather_conditions = Column(String(255), default='')
    start_time = Column(DateTime)
    end_time = Column(DateTime)
    completion_percentage = Column(Float, default=0.0)
    quality_check_passed = Column(Boolean, default=False)
    created_date = Column(DateTime, default=datetime.now, nullable=False)

    __table_args__ = (
        Index('ix_installations_owner', 'owner_id'),
        Index('ix_installations_job', 'job_id'),
        Index('ix_installations_scheduled_date', 'scheduled_date'),
    )

    @property
    def installation_status(self) -> InstallationStatus:
        return InstallationStatus(self.status)

    def is_overdue_at(self, moment: datetime) -> bool:
        return self.status == InstallationStatus.SCHEDULED and self.scheduled_date < moment

    @property
    def is_overdue(self) -> bool:
        return self.is_overdue_at(datetime.now())

    @property
    def duration(self):
        """Actual duration in seconds, when both start and end are recorded."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    @property
    def crew_list(self):
        return [name.strip() for name in (self.crew_members or '').split(',') if name.strip()]

    def to_dict(self):
        return {
            'id': self.id,
            'owner_id': self.owner_id,
            'job_id': self.job_id,
            'scheduled_date': _iso(self.scheduled_date),
            'estimated_duration': safe_value(self.estimated_duration),
            'crew_members': self.crew_members,
            'crew_size': self.crew_size,
            'status': self.status,
            'status_label': self.installation_status.label,
            'notes': self.notes,
            'weather_conditions': self.weather_conditions,
            'start_time': _iso(self.start_time),
            'end_time': _iso(self.end_time),
            'completion_percentage': safe_value(self.completion_percentage),
            'quality_check_passed': self.quality_check_passed,
            'is_overdue': self.is_overdue,
            'created_date': _iso(self.created_date),
        }

    def __repr__(self):
        return f"<Installation {self.scheduled_date} ({self.status})>"
