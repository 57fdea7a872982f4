"""
Prompt database model.

Prompts are the main catalog entries. Deleting a prompt only sets
``deleted_at``; soft-deleted rows are invisible to every read.
"""

from sqlalchemy import Column, Integer, String, Boolean, Text

from ..core.database import Base


class Prompt(Base):
    """Reusable text prompt with free-text tags, category and language labels."""

    __tablename__ = "prompts"

    # Internal row id, also the FTS5 rowid. Never exposed.
    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), nullable=False, unique=True, index=True)

    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    content = Column(Text, nullable=False)

    # Comma-delimited free text, e.g. "writing, summary"
    tags = Column(Text, nullable=True)
    category = Column(String(255), nullable=True, index=True)
    language = Column(String(64), nullable=True)

    is_favorite = Column(Boolean, nullable=False, default=False, server_default="0")

    # ISO-8601 UTC strings, see promptvault.utils.timestamps
    created_at = Column(String(40), nullable=False, index=True)
    updated_at = Column(String(40), nullable=False, index=True)
    deleted_at = Column(String(40), nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<Prompt(uuid={self.uuid}, title={self.title!r}, deleted={self.deleted_at is not None})>"
