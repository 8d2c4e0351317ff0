"""Persistence backends: local JSON file, relational database, remote REST service."""

from concurso.backends.base import PersistenceBackend, Record
from concurso.backends.local import LocalBackend
from concurso.backends.rest import RestBackend
from concurso.backends.sql import SqlBackend

__all__ = ["LocalBackend", "PersistenceBackend", "Record", "RestBackend", "SqlBackend"]
