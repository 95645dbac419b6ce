# Overview: Request decorators for authentication and store scoping.

from functools import wraps

from flask import g, request

from .responses import fail
from .services import session_service, store_service


def require_auth(f):
    """
    Require a bearer session and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.org_id: The organization ID captured by the session
    - g.session_context: The full SessionContext object

    Returns 401 for a missing, malformed, expired or revoked token.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return fail("UNAUTHORIZED", "Authentication required", 401)

        token = auth_header.split(" ", 1)[1]
        context = session_service.validate_session(token)
        if not context:
            return fail("UNAUTHORIZED", "Invalid or expired token", 401)

        g.current_user = context.user
        g.org_id = context.org_id
        g.session_context = context
        return f(*args, **kwargs)

    return decorated_function


def require_store_access(f):
    """
    Resolve the <store_id> route argument inside the caller's organization.

    Must run after @require_auth. Sets g.store. A store of another
    organization and a store that does not exist both get the same 403, so
    callers cannot probe which store ids exist.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        store_id = kwargs.get("store_id")
        if store_id is None:
            store_id = request.args.get("store_id", type=int)
        if store_id is None and request.is_json:
            store_id = (request.get_json(silent=True) or {}).get("store_id")

        store = None
        if isinstance(store_id, int) and not isinstance(store_id, bool):
            store = store_service.get_store_for_org(store_id, g.org_id)
        if store is None:
            return fail("STORE_ACCESS_DENIED", "You do not have access to this store", 403)

        g.store = store
        return f(*args, **kwargs)

    return decorated_function
