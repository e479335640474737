"""
Category Model - Subject Areas Used to Classify Designs

Designs reference a category by id in their metadata. The "uncategorized"
row is seeded by init_db() and is the default for new designs.
"""

from sqlalchemy import Column, String
import uuid

from .database import Base


class Category(Base):

    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)

    def __repr__(self):
        return f"<Category(id={self.id}, name={self.name})>"

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}
