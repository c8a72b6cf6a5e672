from functools import wraps

from flask_login import current_user

from ...core.error_handlers import ErrorCodes, error_response


def api_actor_required(f):
    """
    Route decorator for the JSON API.
    Rejects anonymous callers with 401 and passes ``actor_id`` and ``role``
    of the logged-in user to the view.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return error_response('Authentication required.', ErrorCodes.UNAUTHENTICATED, 401)
        kwargs['actor_id'] = current_user.user_id
        kwargs['role'] = current_user.user_role
        return f(*args, **kwargs)
    return decorated_function
