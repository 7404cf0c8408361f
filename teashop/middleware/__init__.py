"""
Middleware package for the tea shop backend.
"""
from .admin_auth import require_admin, get_admin_token_from_request
