"""
Folder Model - Path-Addressed Containers for Designs

A folder is identified by (owner, path). Every user gets a root folder "/"
at registration; nested folders use slash-separated paths such as
"/courses/2024". A design lives in exactly one folder at a time.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from datetime import datetime
import uuid

from .database import Base

ROOT_PATH = "/"


class Folder(Base):

    __tablename__ = "folders"
    __table_args__ = (
        UniqueConstraint("owner_id", "path", name="uq_folder_owner_path"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    path = Column(String(1024), nullable=False)
    parent_id = Column(String(36), ForeignKey("folders.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Folder(owner={self.owner_id}, path={self.path})>"

    @staticmethod
    def normalize_path(path: str) -> str:
        """'/a//b/' -> '/a/b'; empty -> '/'."""
        parts = [part for part in (path or "").split("/") if part]
        return ROOT_PATH + "/".join(parts)

    @staticmethod
    def parent_path(path: str) -> str:
        parts = [part for part in path.split("/") if part]
        return ROOT_PATH + "/".join(parts[:-1])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "path": self.path,
            "parent_id": self.parent_id,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }
