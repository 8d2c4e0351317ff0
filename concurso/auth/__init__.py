"""
Identity providers.

- IdentityProvider: current user + sign-in/sign-out notifications
- LocalIdentityProvider: name-based profiles on disk
- RestIdentityProvider: e-mail/password against the remote auth service
"""

from concurso.auth.local import LocalIdentityProvider
from concurso.auth.provider import IdentityListener, IdentityProvider
from concurso.auth.rest import RestIdentityProvider

__all__ = [
    "IdentityListener",
    "IdentityProvider",
    "LocalIdentityProvider",
    "RestIdentityProvider",
]
