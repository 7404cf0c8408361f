"""
Custom exceptions for tea shop business logic.

Each condition the admin console needs to render differently has its own
class and code, so API handlers can map them to distinct responses.
"""


class TeaShopError(Exception):
    """Base exception for all tea shop business logic errors."""

    def __init__(self, message: str, code: str = "TEASHOP_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(TeaShopError):
    """Resource not found."""

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with ID {identifier} not found"
        super().__init__(message, f"{resource.upper()}_NOT_FOUND")


class MemberNotFoundError(NotFoundError):
    """Member not found."""

    def __init__(self, identifier=None):
        super().__init__("Member", identifier)


class UnknownConfigKeyError(NotFoundError):
    """Key is not part of the compiled-in config catalog."""

    def __init__(self, key: str):
        self.key = key
        TeaShopError.__init__(self, f'Config key "{key}" not found', "CONFIG_KEY_NOT_FOUND")


class ValidationError(TeaShopError):
    """Invalid input data."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)


class TypeCoercionError(ValidationError):
    """Value cannot be coerced to the declared type of a config key."""

    def __init__(self, key: str, expected_type: str, value=None):
        self.key = key
        self.expected_type = expected_type
        self.value = value
        super().__init__(f'Value for "{key}" must be of type {expected_type}')
        self.code = "TYPE_COERCION_FAILED"


class RulesValidationError(ValidationError):
    """A points rules update violates one of its invariants."""

    def __init__(self, invariant: str, message: str):
        self.invariant = invariant
        super().__init__(message)
        self.code = "RULES_VALIDATION_FAILED"


class PersistenceUnavailableError(TeaShopError):
    """Backing store could not be reached or rejected the operation."""

    def __init__(self, message: str = "Configuration storage is unavailable", original_error: Exception = None):
        self.original_error = original_error
        super().__init__(message, "PERSISTENCE_UNAVAILABLE")
