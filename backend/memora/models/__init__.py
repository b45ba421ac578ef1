"""
ORM models. Importing this package registers every table on `Base.metadata`
(Alembic autogenerate and the test suite's `create_all` rely on it).
"""

from memora.models.attachment import Attachment, FileKind
from memora.models.note import Note
from memora.models.user import User

__all__ = ["Attachment", "FileKind", "Note", "User"]
