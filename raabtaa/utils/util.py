# raabtaa/utils/util.py
from functools import wraps

from flask_jwt_extended import jwt_required, get_jwt_identity, get_jwt

from raabtaa.errors import PermissionDenied


def current_user_id():
    return int(get_jwt_identity())


def ensure_self(user_id, message='You can only act on your own account'):
    if user_id != current_user_id():
        raise PermissionDenied(message)


def account_type_required(*account_types):
    def wrapper(fn):
        @wraps(fn)
        @jwt_required()
        def decorator(*args, **kwargs):
            claims = get_jwt()
            if claims.get('account_type') not in [t.value for t in account_types]:
                raise PermissionDenied('Access denied for this account type')
            return fn(*args, **kwargs)
        return decorator
    return wrapper
