from functools import wraps
from flask import abort, g
from bizops.services.policy import authorize, request_context, REASON_UNAUTHENTICATED


def _deny(reason: str, message: str):
    if reason == REASON_UNAUTHENTICATED:
        abort(401, description='Authentication required.')
    abort(403, description=message)


def require_permission(permission):
    """Gate the view on ``permission``; the decision's identity lands in ``g.identity``."""
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            decision = authorize(request_context(), permission)
            if not decision.allowed:
                _deny(decision.reason, f'Access denied. Missing permission: {permission}')
            g.identity = decision.identity
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_login(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        ctx = request_context()
        if ctx.identity is None:
            _deny(REASON_UNAUTHENTICATED, '')
        g.identity = ctx.identity
        return fn(*args, **kwargs)
    return wrapper


def require_superuser(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        ctx = request_context()
        if ctx.identity is None:
            _deny(REASON_UNAUTHENTICATED, '')
        if not ctx.identity.is_superuser:
            abort(403, description='Access denied. Superuser required.')
        g.identity = ctx.identity
        return fn(*args, **kwargs)
    return wrapper
