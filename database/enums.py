"""
Closed enumerations for SolarOps records.

Values are stored as their string value. Sorting uses the explicit
ORDINALS map below, never the label text.
"""

import enum


class OrderedEnum(str, enum.Enum):
    """String enum with an explicit sort ordinal and a display label."""

    @classmethod
    def ordinals(cls):
        """Map of stored value -> sort ordinal."""
        return {member.value: position for member, position in ORDINALS[cls].items()}

    @property
    def ordinal(self) -> int:
        return ORDINALS[type(self)][self]

    @property
    def label(self) -> str:
        return LABELS.get(self, self.value.replace('_', ' ').title())

    @classmethod
    def values(cls):
        return [member.value for member in cls]

    @classmethod
    def coerce(cls, value):
        """Return the member for value (member, value string or name); raises ValueError."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            if value in cls.values():
                return cls(value)
            if value.upper() in cls.__members__:
                return cls[value.upper()]
        raise ValueError(f"'{value}' is not a valid {cls.__name__}")

    def __str__(self):
        return self.value


class JobStatus(OrderedEnum):
    PENDING = 'pending'
    APPROVED = 'approved'
    IN_PROGRESS = 'in_progress'
    ON_HOLD = 'on_hold'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class LeadStatus(OrderedEnum):
    NEW_LEAD = 'new_lead'
    CONTACTED = 'contacted'
    QUALIFIED = 'qualified'
    PROPOSAL = 'proposal'
    NEGOTIATION = 'negotiation'
    WON = 'won'
    LOST = 'lost'


class ContactMethod(OrderedEnum):
    EMAIL = 'email'
    PHONE = 'phone'
    TEXT = 'text'
    IN_PERSON = 'in_person'


class EquipmentCategory(OrderedEnum):
    SOLAR_PANELS = 'solar_panels'
    INVERTERS = 'inverters'
    MOUNTING = 'mounting'
    ELECTRICAL = 'electrical'
    BATTERIES = 'batteries'
    MONITORING = 'monitoring'
    TOOLS = 'tools'
    SAFETY = 'safety'


class InstallationStatus(OrderedEnum):
    SCHEDULED = 'scheduled'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


# Sort order per enumeration (pipeline / lifecycle order)
ORDINALS = {
    JobStatus: {
        JobStatus.PENDING: 0,
        JobStatus.APPROVED: 1,
        JobStatus.IN_PROGRESS: 2,
        JobStatus.ON_HOLD: 3,
        JobStatus.COMPLETED: 4,
        JobStatus.CANCELLED: 5,
    },
    LeadStatus: {
        LeadStatus.NEW_LEAD: 0,
        LeadStatus.CONTACTED: 1,
        LeadStatus.QUALIFIED: 2,
        LeadStatus.PROPOSAL: 3,
        LeadStatus.NEGOTIATION: 4,
        LeadStatus.WON: 5,
        LeadStatus.LOST: 6,
    },
    ContactMethod: {
        ContactMethod.EMAIL: 0,
        ContactMethod.PHONE: 1,
        ContactMethod.TEXT: 2,
        ContactMethod.IN_PERSON: 3,
    },
    EquipmentCategory: {
        EquipmentCategory.SOLAR_PANELS: 0,
        EquipmentCategory.INVERTERS: 1,
        EquipmentCategory.MOUNTING: 2,
        EquipmentCategory.ELECTRICAL: 3,
        EquipmentCategory.BATTERIES: 4,
        EquipmentCategory.MONITORING: 5,
        EquipmentCategory.TOOLS: 6,
        EquipmentCategory.SAFETY: 7,
    },
    InstallationStatus: {
        InstallationStatus.SCHEDULED: 0,
        InstallationStatus.IN_PROGRESS: 1,
        InstallationStatus.COMPLETED: 2,
        InstallationStatus.CANCELLED: 3,
    },
}

LABELS = {
    JobStatus.IN_PROGRESS: 'In Progress',
    JobStatus.ON_HOLD: 'On Hold',
    LeadStatus.NEW_LEAD: 'New Lead',
    LeadStatus.PROPOSAL: 'Proposal Sent',
    ContactMethod.IN_PERSON: 'In Person',
    EquipmentCategory.MOUNTING: 'Mounting Systems',
    EquipmentCategory.ELECTRICAL: 'Electrical Components',
    EquipmentCategory.BATTERIES: 'Battery Storage',
    EquipmentCategory.MONITORING: 'Monitoring Systems',
    EquipmentCategory.TOOLS: 'Installation Tools',
    EquipmentCategory.SAFETY: 'Safety Equipment',
    InstallationStatus.IN_PROGRESS: 'In Progress',
}
