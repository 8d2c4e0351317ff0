# Relational storage for the sql backend
from .database import create_db_engine, init_db, make_session_factory, session_scope
from .models import Base, FolderRow, QuestionRow

__all__ = [
    "Base",
    "FolderRow",
    "QuestionRow",
    "create_db_engine",
    "init_db",
    "make_session_factory",
    "session_scope",
]
