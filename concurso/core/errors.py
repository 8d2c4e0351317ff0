"""
Error taxonomy for concurso.

- ValidationError: local, pre-network input checks
- AuthenticationError: no signed-in user or rejected credentials
- BackendError: persistence failures (network, constraints, unknown ids)
- ExportError: document export failures
"""

from __future__ import annotations


class ConcursoError(Exception):
    """Base class for every error the application reports to the user."""

    kind = "error"


class ValidationError(ConcursoError):
    """Input rejected before any persistence call is made."""

    kind = "validation"


class AuthenticationError(ConcursoError):
    """No active session, or the identity service refused the credentials."""

    kind = "auth"


class BackendError(ConcursoError):
    """A persistence backend call failed."""

    kind = "backend"


class RecordNotFoundError(BackendError):
    """The backend has no record with the requested id."""


class MappingError(BackendError):
    """A backend record could not be converted into a domain type."""


class ExportError(ConcursoError):
    """The document exporter could not produce a file."""

    kind = "export"
