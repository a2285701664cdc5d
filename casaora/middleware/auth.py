from functools import wraps
from flask import request, jsonify
from casaora.models.user import UserRole
from casaora.utils.security import verify_token
from casaora.utils.logger import get_logger

logger = get_logger(__name__)


def _bearer_token():
    """Return the bearer token from the Authorization header, or an error message"""
    auth_header = request.headers.get('Authorization')
    if not auth_header:
        return None, 'Authorization header missing'

    scheme, _, token = auth_header.partition(' ')
    if scheme != 'Bearer' or not token.strip() or ' ' in token.strip():
        return None, 'Invalid authorization header format'

    return token.strip(), None


def require_auth(f):
    """Reject requests without a valid JWT; passes the token payload as current_user"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token, error = _bearer_token()
        if error:
            return jsonify({'error': error}), 401

        payload = verify_token(token)
        if not payload or not payload.get('user_id'):
            return jsonify({'error': 'Invalid or expired token'}), 401

        return f(*args, current_user=payload, **kwargs)

    return decorated_function


def require_role(*roles):
    """Restrict an authenticated endpoint to the given UserRole members"""
    allowed = {role.value if isinstance(role, UserRole) else role for role in roles}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, current_user, **kwargs):
            if current_user.get('role') not in allowed:
                logger.warning(f"User {current_user.get('user_id')} denied access to {request.path}")
                return jsonify({'error': 'Insufficient permissions'}), 403
            return f(*args, current_user=current_user, **kwargs)
        return decorated_function
    return decorator


def require_admin(f):
    return require_role(UserRole.ADMIN)(f)
