"""
Admin Authentication Middleware.

The admin console sends a shared token in the X-Admin-Token header
(or as a Bearer token). Storefront endpoints such as the public config
read do not use this decorator.
"""
import hmac
import logging
from functools import wraps
from flask import request, current_app, g

from ..utils.errors import unauthorized, forbidden

logger = logging.getLogger(__name__)

ADMIN_TOKEN_HEADER = 'X-Admin-Token'


def get_admin_token_from_request() -> str | None:
    """
    Get the admin token from the request.

    Priority:
    1. X-Admin-Token header
    2. Authorization: Bearer <token>
    """
    token = request.headers.get(ADMIN_TOKEN_HEADER)
    if token:
        return token

    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        return auth_header[len('Bearer '):].strip() or None

    return None


def require_admin(f):
    """
    Decorator to require the admin token for configuration endpoints.

    Sets g.is_admin when authenticated.

    Usage:
        @config_bp.route('/refresh', methods=['POST'])
        @require_admin
        def refresh():
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_admin_token_from_request()
        if not token:
            return unauthorized('Admin token required')

        expected = current_app.config.get('ADMIN_API_TOKEN') or ''
        if not expected or not hmac.compare_digest(token.encode(), expected.encode()):
            logger.warning('[AdminAuth] Rejected admin token for %s %s', request.method, request.path)
            return forbidden('Invalid admin token')

        g.is_admin = True
        return f(*args, **kwargs)

    return decorated_function
