"""
User Model - Accounts That Own and Share Designs

Users own folders and designs and appear in privilege lists. Their first
name and last name are part of the public search (a design matches when
its owner's name matches the free-text filter).

Passwords are only ever stored as bcrypt hashes.
"""

from sqlalchemy import Column, String, Boolean, DateTime, Text
from datetime import datetime
import uuid

from .database import Base


class User(Base):
    """
    User model.

    Stores identity (id, username, email), the password hash, and the
    profile shown next to designs (name, lastname, occupation, img).
    """

    __tablename__ = "users"

    # UUIDs rather than sequential ids
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)  # Bcrypt hash

    # Profile fields
    name = Column(String(100), nullable=False, default="")
    lastname = Column(String(100), nullable=False, default="")
    occupation = Column(String(255), nullable=True)
    img = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)

    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"

    def to_dict(self, include_sensitive: bool = False) -> dict:
        """
        Convert user to dictionary for API responses.

        The email is only included on request; the password hash never is.
        """
        data = {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "lastname": self.lastname,
            "occupation": self.occupation,
            "img": self.img,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

        if include_sensitive:
            data["email"] = self.email
            data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None

        return data

    def to_public_dict(self) -> dict:
        """Fields shown next to a design (owner, privilege holders)."""
        return {
            "id": self.id,
            "name": self.name,
            "lastname": self.lastname,
            "img": self.img,
            "occupation": self.occupation
        }
