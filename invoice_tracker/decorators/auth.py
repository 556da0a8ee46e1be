from functools import wraps
from flask import abort
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity
from invoice_tracker.services.policy import load_auth_session
from invoice_tracker import get_db


def require_action(action: str):
    """Gate a view on the action policy table.

    The resolved AuthSession is passed to the view as the ``auth`` keyword.
    """
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            auth = load_auth_session(get_db(), int(get_jwt_identity()))
            if not auth.can(action):
                abort(403, description='Insufficient role')
            kwargs['auth'] = auth
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_login(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        kwargs['auth'] = load_auth_session(get_db(), int(get_jwt_identity()))
        return fn(*args, **kwargs)
    return wrapper
