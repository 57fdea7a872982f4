"""ManagementPrompt database model, a templated prompt inside a group."""

from sqlalchemy import Column, ForeignKey, Integer, String, Text

from ..core.database import Base


class ManagementPrompt(Base):
    __tablename__ = "management_prompts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), nullable=False, unique=True, index=True)
    group_uuid = Column(
        String(36),
        ForeignKey("groups.uuid", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    display_order = Column(Integer, nullable=False, default=0)

    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40), nullable=False)

    def __repr__(self) -> str:
        return f"<ManagementPrompt(uuid={self.uuid}, name={self.name!r}, order={self.display_order})>"
