"""Category database model, the root of the management hierarchy."""

from sqlalchemy import Column, Integer, String, Text

from ..core.database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40), nullable=False)

    def __repr__(self) -> str:
        return f"<Category(uuid={self.uuid}, name={self.name!r})>"
