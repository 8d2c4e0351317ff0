"""
Concurso - terminal study-question manager.

Folders of quiz questions backed by a local file, a relational database
or a remote REST service, with practice sessions, a study timer and PDF export.
"""

__version__ = "1.0.0"
