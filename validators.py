"""
Input Validation & Sanitization Utilities
Field-level and business-rule checks for SolarOps records.

Validators never raise. Each validate_* function returns a ValidationResult
the caller must branch on; repositories turn an invalid result into a
ValidationError or BusinessRuleError.
"""
import enum
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple

from calculations import safe_value
from database.enums import (
    ContactMethod, EquipmentCategory, InstallationStatus, JobStatus, LeadStatus,
)
from date_utils import now as current_time, one_year_from, parse_datetime, start_of_day

# Regex patterns
EMAIL_PATTERN = re.compile(r'^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$')
NON_DIGITS = re.compile(r'\D')

# Field limits
JOB_NAME_LENGTH = (2, 100)
JOB_ADDRESS_LENGTH = (10, 200)
MIN_SYSTEM_SIZE = 0.1  # kW
MAX_SYSTEM_SIZE = 1000  # kW
MAX_ESTIMATED_REVENUE = 1000000
CUSTOMER_NAME_LENGTH = (2, 100)
MIN_CUSTOMER_ADDRESS_LENGTH = 10
MAX_EQUIPMENT_QUANTITY = 10000
MAX_UNIT_COST = 100000
MAX_INSTALLATION_DURATION = 30 * 86400  # 30 days, in seconds
CREW_SIZE_RANGE = (1, 20)
USER_NAME_LENGTH = (2, 100)
DEFAULT_MIN_PASSWORD_LENGTH = 6

# Allowed job status changes; completed and cancelled are terminal
JOB_STATUS_TRANSITIONS = {
    JobStatus.PENDING: frozenset({JobStatus.APPROVED, JobStatus.CANCELLED}),
    JobStatus.APPROVED: frozenset({JobStatus.IN_PROGRESS, JobStatus.ON_HOLD, JobStatus.CANCELLED}),
    JobStatus.IN_PROGRESS: frozenset({JobStatus.COMPLETED, JobStatus.ON_HOLD, JobStatus.CANCELLED}),
    JobStatus.ON_HOLD: frozenset({JobStatus.IN_PROGRESS, JobStatus.CANCELLED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
}


class ErrorCode(str, enum.Enum):
    REQUIRED = 'required'
    INVALID_FORMAT = 'invalid_format'
    OUT_OF_RANGE = 'out_of_range'
    BUSINESS_RULE = 'business_rule'
    DUPLICATE = 'duplicate'


class FieldError(NamedTuple):
    field: str
    message: str
    code: ErrorCode

    def to_dict(self):
        return {'field': self.field, 'message': self.message, 'code': self.code.value}


class ValidationResult:
    """Outcome of a validation: valid, or invalid with a list of FieldErrors."""

    def __init__(self, errors: Optional[Iterable[FieldError]] = None):
        self.errors: List[FieldError] = list(errors or [])

    @classmethod
    def valid(cls) -> 'ValidationResult':
        return cls()

    @classmethod
    def invalid(cls, errors) -> 'ValidationResult':
        if isinstance(errors, FieldError):
            errors = [errors]
        return cls(errors)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def restricted_to(self, fields: Iterable[str]) -> 'ValidationResult':
        """
        Keep only the errors reported for the given fields

        Used by updates: the merged record is validated, but only fields the
        patch touched may block the edit.
        """
        fields = set(fields)
        return ValidationResult(e for e in self.errors if e.field in fields)

    def has_code(self, code: ErrorCode) -> bool:
        return any(e.code == code for e in self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_valid': self.is_valid,
            'errors': [e.to_dict() for e in self.errors],
        }

    def __bool__(self):
        return self.is_valid

    def __repr__(self):
        if self.is_valid:
            return 'ValidationResult(valid)'
        return f"ValidationResult(invalid, {[e.field for e in self.errors]})"


# =============================================================================
# FIELD HELPERS
# =============================================================================

def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate that all required fields are present in the data

    Args:
        data: Dictionary of input data
        required_fields: List of required field names

    Returns:
        Tuple of (is_valid, error_message)
    """
    missing_fields = [field for field in required_fields if _is_blank(data.get(field))]

    if missing_fields:
        return False, f"Missing required fields: {', '.join(missing_fields)}"

    return True, None


def validate_email(email: str) -> Tuple[bool, Optional[str]]:
    """
    Validate email format

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email or not isinstance(email, str):
        return False, "Email must be a non-empty string"

    if not EMAIL_PATTERN.match(email.strip()):
        return False, "Please enter a valid email address"

    if len(email) > 254:  # RFC 5321
        return False, "Email address too long"

    return True, None


def normalize_phone(phone: str) -> str:
    """Strip everything but digits from a phone number."""
    if not isinstance(phone, str):
        return ''
    return NON_DIGITS.sub('', phone)


def validate_phone(phone: str) -> Tuple[bool, Optional[str]]:
    """
    Validate phone number format

    A domestic number has exactly 10 digits; an international one carries a
    country code for 10 to 15 digits in total. Separators are ignored.

    Args:
        phone: Phone number to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not phone or not isinstance(phone, str):
        return False, "Phone must be a non-empty string"

    digits = normalize_phone(phone)

    if len(digits) == 10:
        return True, None

    if 10 <= len(digits) <= 15:
        return True, None

    return False, "Please enter a valid phone number"


def validate_string_length(value: str, min_length: int = 0, max_length: int = 1000) -> Tuple[bool, Optional[str]]:
    """
    Validate string length is within acceptable range

    Args:
        value: String to validate
        min_length: Minimum allowed length
        max_length: Maximum allowed length

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, "Value must be a string"

    if len(value) < min_length:
        return False, f"must be at least {min_length} characters"

    if len(value) > max_length:
        return False, f"cannot exceed {max_length} characters"

    return True, None


def validate_number_range(value: float, min_value: Optional[float] = None, max_value: Optional[float] = None) -> Tuple[bool, Optional[str]]:
    """
    Validate number is within acceptable range

    Args:
        value: Number to validate
        min_value: Minimum allowed value
        max_value: Maximum allowed value

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False, "Value must be a number"

    if min_value is not None and value < min_value:
        return False, f"Value too small (minimum {min_value})"

    if max_value is not None and value > max_value:
        return False, f"Value too large (maximum {max_value})"

    return True, None


def sanitize_string(value, max_length: int = 1000) -> str:
    """
    Sanitize string input by removing null bytes and surrounding whitespace

    Args:
        value: String to sanitize (None becomes '')
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    if value is None:
        return ''
    if not isinstance(value, str):
        return str(value)

    # Remove null bytes
    sanitized = value.replace('\x00', '')

    # Trim whitespace
    sanitized = sanitized.strip()

    # Limit length
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


def coerce_number(value) -> Optional[float]:
    """
    Read a numeric input, normalizing NaN/inf (and None) to 0.0

    Numeric strings are accepted. Returns None when the value is not a number.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return safe_value(value)
    if isinstance(value, str):
        try:
            return safe_value(float(value.strip()))
        except ValueError:
            return None
    return None


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _check_text(data, field, label, errors, min_length=None, max_length=None, required=True):
    """Shared required / type / length check for a text field."""
    value = data.get(field)
    if _is_blank(value):
        if required:
            errors.append(FieldError(field, f"{label} is required", ErrorCode.REQUIRED))
        return
    if not isinstance(value, str):
        errors.append(FieldError(field, f"{label} must be text", ErrorCode.INVALID_FORMAT))
        return
    length = len(value.strip())
    if min_length is not None and length < min_length:
        errors.append(FieldError(
            field, f"{label} must be at least {min_length} characters", ErrorCode.OUT_OF_RANGE))
    elif max_length is not None and length > max_length:
        errors.append(FieldError(
            field, f"{label} cannot exceed {max_length} characters", ErrorCode.OUT_OF_RANGE))


def _read_number(data, field, label, errors):
    number = coerce_number(data.get(field))
    if number is None:
        errors.append(FieldError(field, f"{label} must be a number", ErrorCode.INVALID_FORMAT))
    return number


def _read_date(data, field, label, errors):
    try:
        return parse_datetime(data.get(field))
    except ValueError:
        errors.append(FieldError(field, f"{label} is not a valid date", ErrorCode.INVALID_FORMAT))
        return None


def _check_enum(data, field, enum_cls, label, errors):
    value = data.get(field)
    if value is None:
        return
    try:
        enum_cls.coerce(value)
    except ValueError:
        errors.append(FieldError(field, f"Invalid {label}: {value}", ErrorCode.INVALID_FORMAT))


def _today(now: Optional[datetime]) -> Tuple[datetime, datetime]:
    moment = now or current_time()
    return moment, start_of_day(moment)


# =============================================================================
# ENTITY VALIDATORS
# =============================================================================

def validate_job(data: Dict[str, Any], now: Optional[datetime] = None) -> ValidationResult:
    """
    Validate job fields

    Args:
        data: customer_name, address, system_size, estimated_revenue and
            optionally scheduled_date and status
        now: Reference time for the past-date rule (defaults to now)

    Returns:
        ValidationResult
    """
    errors: List[FieldError] = []

    _check_text(data, 'customer_name', 'Customer name', errors, *JOB_NAME_LENGTH)
    _check_text(data, 'address', 'Address', errors, *JOB_ADDRESS_LENGTH)

    system_size = _read_number(data, 'system_size', 'System size', errors)
    if system_size is not None:
        if system_size <= 0:
            errors.append(FieldError('system_size', "System size must be greater than 0", ErrorCode.OUT_OF_RANGE))
        elif system_size > MAX_SYSTEM_SIZE:
            errors.append(FieldError('system_size', "System size cannot exceed 1000 kW", ErrorCode.OUT_OF_RANGE))
        elif system_size < MIN_SYSTEM_SIZE:
            errors.append(FieldError('system_size', "System size must be at least 0.1 kW", ErrorCode.OUT_OF_RANGE))

    revenue = _read_number(data, 'estimated_revenue', 'Estimated revenue', errors)
    if revenue is not None:
        if revenue < 0:
            errors.append(FieldError('estimated_revenue', "Estimated revenue cannot be negative", ErrorCode.OUT_OF_RANGE))
        elif revenue > MAX_ESTIMATED_REVENUE:
            errors.append(FieldError('estimated_revenue', "Estimated revenue cannot exceed $1,000,000", ErrorCode.OUT_OF_RANGE))

    scheduled_date = _read_date(data, 'scheduled_date', 'Scheduled date', errors)
    if scheduled_date is not None:
        _, today = _today(now)
        if scheduled_date < today:
            errors.append(FieldError('scheduled_date', "Scheduled date cannot be in the past", ErrorCode.BUSINESS_RULE))

    _check_enum(data, 'status', JobStatus, 'job status', errors)

    return ValidationResult(errors)


def validate_customer(data: Dict[str, Any]) -> ValidationResult:
    """
    Validate customer fields

    Args:
        data: name, email, phone, address and optionally lead_status and
            preferred_contact_method

    Returns:
        ValidationResult
    """
    errors: List[FieldError] = []

    _check_text(data, 'name', 'Customer name', errors, *CUSTOMER_NAME_LENGTH)

    email = data.get('email')
    if _is_blank(email):
        errors.append(FieldError('email', "Email is required", ErrorCode.REQUIRED))
    else:
        is_valid, error = validate_email(email)
        if not is_valid:
            errors.append(FieldError('email', error, ErrorCode.INVALID_FORMAT))

    phone = data.get('phone')
    if _is_blank(phone):
        errors.append(FieldError('phone', "Phone number is required", ErrorCode.REQUIRED))
    else:
        is_valid, error = validate_phone(phone)
        if not is_valid:
            errors.append(FieldError('phone', error, ErrorCode.INVALID_FORMAT))

    _check_text(data, 'address', 'Address', errors, min_length=MIN_CUSTOMER_ADDRESS_LENGTH)

    _check_enum(data, 'lead_status', LeadStatus, 'lead status', errors)
    _check_enum(data, 'preferred_contact_method', ContactMethod, 'contact method', errors)

    return ValidationResult(errors)


def validate_equipment(data: Dict[str, Any], creating: bool = True) -> ValidationResult:
    """
    Validate equipment fields

    The minimum stock may drift above the quantity through consumption, so
    it is only compared with the quantity when the item is created.

    Args:
        data: name, brand, model, quantity, unit_cost, unit_price,
            minimum_stock, low_stock_threshold, category
        creating: True when validating a new item

    Returns:
        ValidationResult
    """
    errors: List[FieldError] = []

    _check_text(data, 'name', 'Equipment name', errors, min_length=2)
    _check_text(data, 'brand', 'Brand', errors)
    _check_text(data, 'model', 'Model', errors)

    quantity = _read_number(data, 'quantity', 'Quantity', errors)
    if quantity is not None:
        if quantity < 0:
            errors.append(FieldError('quantity', "Quantity cannot be negative", ErrorCode.OUT_OF_RANGE))
        elif quantity > MAX_EQUIPMENT_QUANTITY:
            errors.append(FieldError('quantity', "Quantity cannot exceed 10,000", ErrorCode.OUT_OF_RANGE))

    for field, label in (('unit_cost', 'Unit cost'), ('unit_price', 'Unit price')):
        if field not in data:
            continue
        amount = _read_number(data, field, label, errors)
        if amount is None:
            continue
        if amount < 0:
            errors.append(FieldError(field, f"{label} cannot be negative", ErrorCode.OUT_OF_RANGE))
        elif amount > MAX_UNIT_COST:
            errors.append(FieldError(field, f"{label} cannot exceed $100,000", ErrorCode.OUT_OF_RANGE))

    if 'minimum_stock' in data:
        minimum_stock = _read_number(data, 'minimum_stock', 'Minimum stock', errors)
        if minimum_stock is not None:
            if minimum_stock < 0:
                errors.append(FieldError('minimum_stock', "Minimum stock cannot be negative", ErrorCode.OUT_OF_RANGE))
            elif creating and quantity is not None and minimum_stock > quantity:
                errors.append(FieldError(
                    'minimum_stock', "Minimum stock cannot exceed current quantity", ErrorCode.BUSINESS_RULE))

    if 'low_stock_threshold' in data:
        threshold = _read_number(data, 'low_stock_threshold', 'Low stock threshold', errors)
        if threshold is not None and threshold < 0:
            errors.append(FieldError(
                'low_stock_threshold', "Low stock threshold cannot be negative", ErrorCode.OUT_OF_RANGE))

    _check_enum(data, 'category', EquipmentCategory, 'equipment category', errors)

    return ValidationResult(errors)


def validate_installation(data: Dict[str, Any], now: Optional[datetime] = None) -> ValidationResult:
    """
    Validate installation fields

    Args:
        data: scheduled_date, estimated_duration (seconds), crew_size and
            optionally status
        now: Reference time for the date window (defaults to now)

    Returns:
        ValidationResult
    """
    errors: List[FieldError] = []
    moment, today = _today(now)

    if data.get('scheduled_date') is None:
        errors.append(FieldError('scheduled_date', "Scheduled date is required", ErrorCode.REQUIRED))
    else:
        scheduled_date = _read_date(data, 'scheduled_date', 'Scheduled date', errors)
        if scheduled_date is not None:
            if scheduled_date < today:
                errors.append(FieldError(
                    'scheduled_date', "Scheduled date cannot be in the past", ErrorCode.BUSINESS_RULE))
            if scheduled_date > one_year_from(moment):
                errors.append(FieldError(
                    'scheduled_date', "Scheduled date cannot be more than 1 year in the future",
                    ErrorCode.BUSINESS_RULE))

    duration = _read_number(data, 'estimated_duration', 'Estimated duration', errors)
    if duration is not None:
        if duration <= 0:
            errors.append(FieldError(
                'estimated_duration', "Estimated duration must be greater than 0", ErrorCode.OUT_OF_RANGE))
        elif duration > MAX_INSTALLATION_DURATION:
            errors.append(FieldError(
                'estimated_duration', "Estimated duration cannot exceed 30 days", ErrorCode.OUT_OF_RANGE))

    crew_size = _read_number(data, 'crew_size', 'Crew size', errors)
    if crew_size is not None:
        if crew_size < CREW_SIZE_RANGE[0]:
            errors.append(FieldError('crew_size', "Crew size must be at least 1", ErrorCode.OUT_OF_RANGE))
        elif crew_size > CREW_SIZE_RANGE[1]:
            errors.append(FieldError('crew_size', "Crew size cannot exceed 20", ErrorCode.OUT_OF_RANGE))

    _check_enum(data, 'status', InstallationStatus, 'installation status', errors)

    return ValidationResult(errors)


def validate_user(data: Dict[str, Any], min_password_length: int = DEFAULT_MIN_PASSWORD_LENGTH,
                  require_password: bool = True) -> ValidationResult:
    """
    Validate sign-up / profile fields

    Args:
        data: email, full_name, password and optionally phone_number
        min_password_length: Minimum password length
        require_password: False for profile edits without a password change

    Returns:
        ValidationResult
    """
    errors: List[FieldError] = []

    email = data.get('email')
    if _is_blank(email):
        errors.append(FieldError('email', "Email is required", ErrorCode.REQUIRED))
    else:
        is_valid, error = validate_email(email)
        if not is_valid:
            errors.append(FieldError('email', error, ErrorCode.INVALID_FORMAT))

    _check_text(data, 'full_name', 'Full name', errors, *USER_NAME_LENGTH)

    password = data.get('password')
    if password is None or password == '':
        if require_password:
            errors.append(FieldError('password', "Password is required", ErrorCode.REQUIRED))
    elif not isinstance(password, str):
        errors.append(FieldError('password', "Password must be text", ErrorCode.INVALID_FORMAT))
    elif len(password) < min_password_length:
        errors.append(FieldError(
            'password', f"Password must be at least {min_password_length} characters", ErrorCode.OUT_OF_RANGE))

    phone = data.get('phone_number')
    if not _is_blank(phone):
        is_valid, error = validate_phone(phone)
        if not is_valid:
            errors.append(FieldError('phone_number', error, ErrorCode.INVALID_FORMAT))

    return ValidationResult(errors)


# =============================================================================
# BUSINESS RULES
# =============================================================================

def allowed_job_transitions(status) -> frozenset:
    """Statuses a job in the given status may move to."""
    return JOB_STATUS_TRANSITIONS[JobStatus.coerce(status)]


def validate_job_status_transition(current_status, new_status) -> ValidationResult:
    """
    Check a job status change against the transition table

    Self-transitions and any move out of completed or cancelled are rejected.

    Args:
        current_status: JobStatus (or its value) the job is in
        new_status: JobStatus (or its value) requested

    Returns:
        ValidationResult with a business_rule error for a disallowed edge
    """
    try:
        current = JobStatus.coerce(current_status)
        requested = JobStatus.coerce(new_status)
    except ValueError as e:
        return ValidationResult.invalid(FieldError('status', str(e), ErrorCode.BUSINESS_RULE))

    if requested not in JOB_STATUS_TRANSITIONS[current]:
        return ValidationResult.invalid(FieldError(
            'status',
            f"Cannot change status from {current.value} to {requested.value}",
            ErrorCode.BUSINESS_RULE,
        ))

    return ValidationResult.valid()


def validate_equipment_usage(available, requested) -> ValidationResult:
    """
    Check that a requested quantity can be taken from stock

    Args:
        available: Quantity on hand
        requested: Quantity to consume

    Returns:
        ValidationResult
    """
    requested_number = coerce_number(requested)
    if requested_number is None:
        return ValidationResult.invalid(FieldError(
            'quantity', "Requested quantity must be a number", ErrorCode.INVALID_FORMAT))

    if requested_number <= 0:
        return ValidationResult.invalid(FieldError(
            'quantity', "Requested quantity must be greater than 0", ErrorCode.OUT_OF_RANGE))

    available_number = safe_value(available)
    if requested_number > available_number:
        return ValidationResult.invalid(FieldError(
            'quantity',
            f"Insufficient stock. Available: {int(available_number)}, Requested: {int(requested_number)}",
            ErrorCode.BUSINESS_RULE,
        ))

    return ValidationResult.valid()


# =============================================================================
# ERROR FORMATTING
# =============================================================================

def format_validation_errors(errors: Iterable[FieldError]) -> str:
    """One bulleted line per error message."""
    return '\n'.join(f"• {e.message}" for e in errors)


def errors_for_field(field: str, errors: Iterable[FieldError]) -> List[FieldError]:
    return [e for e in errors if e.field == field]


def has_error_for_field(field: str, errors: Iterable[FieldError]) -> bool:
    return any(e.field == field for e in errors)


def format_validation_error(field: str, message: str) -> Dict[str, Any]:
    """
    Format a single validation error for callers that report one field

    Args:
        field: Field name that failed validation
        message: Error message

    Returns:
        Error dictionary
    """
    return {
        'error': 'Validation Error',
        'field': field,
        'message': message
    }
