"""
Group database model.

Groups belong to a category and carry ``global_variables``, a JSON object of
string values substituted into the ``{{placeholders}}`` of their prompts.
"""

from sqlalchemy import Column, ForeignKey, Integer, String, Text

from ..core.database import Base


class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), nullable=False, unique=True, index=True)
    category_uuid = Column(
        String(36),
        ForeignKey("categories.uuid", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Manual sort key within the category, not necessarily contiguous
    display_order = Column(Integer, nullable=False, default=0)

    # Serialized JSON object, e.g. '{"audience": "developers"}'
    global_variables = Column(Text, nullable=False, default="{}", server_default="{}")

    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40), nullable=False)

    def __repr__(self) -> str:
        return f"<Group(uuid={self.uuid}, name={self.name!r}, order={self.display_order})>"
