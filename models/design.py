"""
Design Model - Learning Design Documents

A design contains:
1. Identity: id, read_only_link (share token)
2. Ownership: owner_id (exactly one, never changes), folder_id
3. Sharing: privileges (ordered {user, type} grants, own table)
4. Content: design_metadata and data (JSON), keywords
5. Feedback: comments and assessments (append-only JSON lists)
6. Lineage: origin_id, the design this one was duplicated from
7. Audit: created_at, updated_at

Privileges live in their own table so the "no duplicate user" rule is
enforced by a unique constraint rather than by convention. The list is kept
in grant order through the ``position`` column.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from typing import Optional
import uuid

from .database import Base


class DesignPrivilege(Base):
    """A single (user, access type) grant on a design. Type 0 = full access."""

    __tablename__ = "design_privileges"
    __table_args__ = (
        UniqueConstraint("design_id", "user_id", name="uq_privilege_design_user"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    design_id = Column(String(36), ForeignKey("designs.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    access_type = Column(Integer, nullable=False, default=0)
    position = Column(Integer, nullable=False, default=0)

    design = relationship("Design", back_populates="privileges")

    def __repr__(self):
        return f"<DesignPrivilege(design={self.design_id}, user={self.user_id}, type={self.access_type})>"

    def to_dict(self) -> dict:
        return {"user": self.user_id, "type": self.access_type}


class Design(Base):

    __tablename__ = "designs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    folder_id = Column(String(36), ForeignKey("folders.id"), nullable=False, index=True)

    # "metadata" is reserved on declarative classes, hence the attribute name
    design_metadata = Column("metadata", JSON, nullable=False, default=dict)
    data = Column(JSON, nullable=False, default=dict)
    keywords = Column(JSON, nullable=False, default=list)
    comments = Column(JSON, nullable=False, default=list)
    assessments = Column(JSON, nullable=False, default=list)

    read_only_link = Column(String(36), unique=True, nullable=False, index=True)

    origin_id = Column(String(36), ForeignKey("designs.id"), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    privileges = relationship(
        "DesignPrivilege",
        back_populates="design",
        cascade="all, delete-orphan",
        order_by="DesignPrivilege.position",
        lazy="selectin"
    )

    def __repr__(self):
        return f"<Design(id={self.id}, name={self.name})>"

    @property
    def name(self) -> Optional[str]:
        return (self.design_metadata or {}).get("name")

    @property
    def is_public(self) -> bool:
        return bool((self.design_metadata or {}).get("isPublic"))

    def privilege_for(self, user_id: str) -> Optional[DesignPrivilege]:
        for privilege in self.privileges:
            if privilege.user_id == user_id:
                return privilege
        return None

    def grant(self, user_id: str, access_type: int) -> DesignPrivilege:
        """
        Grant or update a user's privilege.

        An existing entry for the user is updated in place, so the list never
        holds the same user twice.
        """
        existing = self.privilege_for(user_id)
        if existing is not None:
            existing.access_type = access_type
            return existing

        position = max((p.position for p in self.privileges), default=-1) + 1
        privilege = DesignPrivilege(user_id=user_id, access_type=access_type, position=position)
        self.privileges.append(privilege)
        return privilege

    def to_dict(self, owner: Optional[dict] = None, category: Optional[dict] = None,
                origin: Optional[dict] = None, include_content: bool = True) -> dict:
        """
        Convert design to dictionary for API responses.

        ``owner``, ``category`` and ``origin`` are optional populated records
        supplied by the caller; without them only the ids are returned.
        """
        metadata = dict(self.design_metadata or {})
        if category is not None:
            metadata["category"] = category

        data = {
            "id": self.id,
            "owner": owner if owner is not None else self.owner_id,
            "folder": self.folder_id,
            "metadata": metadata,
            "privileges": [p.to_dict() for p in self.privileges],
            "keywords": list(self.keywords or []),
            "readOnlyLink": self.read_only_link,
            "origin": origin if origin is not None else self.origin_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None
        }

        if include_content:
            data["data"] = self.data or {"learningActivities": []}
            data["comments"] = list(self.comments or [])
            data["assessments"] = list(self.assessments or [])

        return data
