"""
Privilege Evaluator - Who May Do What With a Design

Authorization rules for every design operation, kept free of database access
so they can be evaluated on any loaded Design.

Rules:
1. Ownership comes only from ``design.owner_id``; the privileges list never
   makes someone an owner.
2. Mutation (editing, duplicating into a session) needs ownership or a
   privilege entry of type 0 (FULL_ACCESS).
3. Deletion needs ownership. A shared type-0 entry is NOT enough.
4. Privileged viewing needs ownership, any privilege entry, or a public
   design.
5. Link viewing is read-only and depends only on the token being well
   formed and resolving to a design; the privileges list is not consulted.
"""

import uuid
from enum import Enum
from typing import Optional

# Privilege types stored in design_privileges.access_type
FULL_ACCESS = 0
READ_ACCESS = 1


class AccessMode(Enum):
    """How a viewer reached the design."""

    PRIVILEGED = "privileged"  # authenticated user, privileges apply
    LINK = "link"  # anonymous holder of the read-only link


def _privilege_type(design, user_id: Optional[str]) -> Optional[int]:
    if not user_id:
        return None
    for privilege in design.privileges or []:
        if privilege.user_id == user_id:
            return privilege.access_type
    return None


def is_owner(design, user_id: Optional[str]) -> bool:
    return bool(user_id) and design.owner_id == user_id


def can_mutate(design, user_id: Optional[str]) -> bool:
    """Owner or a type-0 privilege holder may edit."""
    if is_owner(design, user_id):
        return True
    return _privilege_type(design, user_id) == FULL_ACCESS


def can_delete(design, user_id: Optional[str]) -> bool:
    """Only the true owner may delete."""
    return is_owner(design, user_id)


def can_view(design, user_id: Optional[str], access_mode: AccessMode = AccessMode.PRIVILEGED,
             link: Optional[str] = None) -> bool:
    """
    Check read access.

    In LINK mode ``link`` must be the token the design was resolved with;
    the user id is ignored.
    """
    if access_mode == AccessMode.LINK:
        return is_valid_link_token(link) and design.read_only_link == link

    if (design.design_metadata or {}).get("isPublic"):
        return True
    if is_owner(design, user_id):
        return True
    return _privilege_type(design, user_id) is not None


def is_valid_link_token(token: Optional[str]) -> bool:
    """A read-only link is the canonical string form of a version 4 UUID."""
    if not token or not isinstance(token, str):
        return False
    try:
        parsed = uuid.UUID(token)
    except ValueError:
        return False
    return parsed.version == 4 and str(parsed) == token.lower()


def new_link_token() -> str:
    return str(uuid.uuid4())
