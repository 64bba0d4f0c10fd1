"""
Service error taxonomy for SolarOps.

Validators never raise these; they return ValidationResult values.
Repositories and the session layer raise them for callers to translate
into user feedback.
"""


class ServiceError(Exception):
    """Base class for all domain service errors"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationError(ServiceError):
    """Input rejected by field-level validation"""

    def __init__(self, errors, message: str = None):
        self.errors = list(errors)
        if message is None:
            message = '; '.join(e.message for e in self.errors) or 'Validation failed'
        super().__init__(message)

    @property
    def fields(self):
        return [e.field for e in self.errors]


class BusinessRuleError(ServiceError):
    """A well-formed request disallowed by domain policy"""

    def __init__(self, errors, message: str = None):
        self.errors = list(errors)
        if message is None:
            message = '; '.join(e.message for e in self.errors) or 'Business rule violated'
        super().__init__(message)


class NotFoundError(ServiceError):
    """Entity is missing or is not owned by the acting user"""

    def __init__(self, entity_type: str, entity_id):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class StoreError(ServiceError):
    """Persistence layer failure"""


class ConstraintViolationError(StoreError):
    """The store rejected a write (uniqueness, foreign key, ...)"""


class StoreUnavailableError(StoreError):
    """The store could not be reached or used"""


class PreconditionError(ServiceError):
    """Operation requires a configured store or a signed-in user"""


class AuthenticationError(ServiceError):
    """Unknown email or wrong password"""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)
