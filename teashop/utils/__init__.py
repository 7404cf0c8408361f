"""
Utility modules for the tea shop backend.
"""
from .logging_config import setup_logging
from .errors import (
    ErrorCode,
    error_response,
    error_from_exception,
    bad_request,
    unauthorized,
    forbidden,
    not_found,
    service_unavailable,
    internal_error
)
from .exceptions import (
    TeaShopError,
    NotFoundError,
    MemberNotFoundError,
    UnknownConfigKeyError,
    ValidationError,
    TypeCoercionError,
    RulesValidationError,
    PersistenceUnavailableError
)
