"""
Request guards for route handlers.

- protect(): require a valid access token (bearer header, else `jwt` cookie)
- is_logged_in(): same checks, never fails; for public pages
- restrict_to(*roles): protect() plus a role allow-list
"""
from __future__ import annotations

from functools import wraps

from flask import current_app, g, request

from models.user import Role
from utils.exceptions import AuthError, Forbidden

# Values browsers send once a cookie has been cleared
PLACEHOLDER_TOKENS = frozenset({"null", "undefined", "loggedout"})


def extract_token() -> str | None:
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        token = auth.split(" ", 1)[1].strip()
    else:
        token = request.cookies.get("jwt")
    if not token or token in PLACEHOLDER_TOKENS:
        return None
    return token


def _gateway():
    return current_app.extensions["auth_gateway"]


def protect():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            g.current_user = _gateway().authenticate(extract_token())
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def is_logged_in():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                g.current_user = _gateway().authenticate(extract_token())
            except AuthError:
                g.current_user = None
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def restrict_to(*roles: Role):
    """
    Allow access only if the authenticated user's role is in `roles`.
    """
    allowed = frozenset(Role(r) for r in roles)

    def decorator(fn):
        @wraps(fn)
        @protect()
        def wrapper(*args, **kwargs):
            if g.current_user.role not in allowed:
                raise Forbidden("You do not have permission to perform this action")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
