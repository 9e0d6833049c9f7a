"""
Authentication module.

The router lives in ``playhub.api.auth.routes`` and is not re-exported
here, so importing the session/cache pieces never pulls in the routes.
"""

from playhub.api.auth.service import AuthService
from playhub.api.auth.cache import PrincipalCache
from playhub.api.auth.sessions import SessionStore
from playhub.api.auth.passwords import hash_password, verify_password

__all__ = ["AuthService", "PrincipalCache", "SessionStore", "hash_password", "verify_password"]
