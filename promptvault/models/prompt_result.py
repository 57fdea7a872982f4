"""PromptResult database model, an output recorded for a management prompt."""

from sqlalchemy import Column, ForeignKey, Integer, String, Text

from ..core.database import Base


class PromptResult(Base):
    __tablename__ = "prompt_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), nullable=False, unique=True, index=True)
    prompt_uuid = Column(
        String(36),
        ForeignKey("management_prompts.uuid", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content = Column(Text, nullable=False)

    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40), nullable=False)

    def __repr__(self) -> str:
        return f"<PromptResult(uuid={self.uuid}, prompt_uuid={self.prompt_uuid})>"
