"""
User Management Agent - Accounts and Their Root Folders

Responsibilities:
1. User Registration - creates the account (bcrypt password hash) together
   with the user's root folder "/", which is where duplicates land by default
2. Profile lookup - public profile, or the full one for the user themself
3. Token verification - decodes the bearer JWTs issued by the external
   identity provider; this service never issues tokens itself
"""

from typing import List, Optional, Dict, Any
import logging
import os

import bcrypt
from jose import JWTError, jwt
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from core.agent_base import Agent, AgentMessage, MessageType
from core.errors import DesignNotFoundError, InvalidInputError
from models.database import get_session
from models.folder import Folder, ROOT_PATH
from models.user import User

logger = logging.getLogger(__name__)

SECRET_KEY = os.getenv("SECRET_KEY", "change-me-learning-designs-secret")
ALGORITHM = "HS256"

MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode a bearer token.

    Returns the claims when the signature and expiry check out, None
    otherwise. The user id is the ``sub`` claim.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"Token verification failed: {e}")
        return None
    if not payload.get("sub"):
        return None
    return payload


class UserManagementAgent(Agent):

    def __init__(self):
        super().__init__(
            agent_id="user_management_agent",
            name="User Management Agent"
        )

        self.register_handler(MessageType.USER_REGISTER, self._handle_register)
        self.register_handler(MessageType.USER_GET_PROFILE, self._handle_get_profile)

    def get_capabilities(self) -> List[MessageType]:
        return [
            MessageType.USER_REGISTER,
            MessageType.USER_GET_PROFILE
        ]

    async def on_start(self):
        logger.info(f"{self.name} started and ready to handle requests")

    async def on_stop(self):
        logger.info(f"{self.name} stopping")

    # ==================== MESSAGE HANDLERS ====================

    async def _handle_register(self, message: AgentMessage) -> AgentMessage:
        """
        Register a new user.

        Steps:
        1. Validate username, email and password
        2. Refuse duplicates (username or email)
        3. Create the user and the root folder in one transaction
        """
        payload = message.payload

        username = (payload.get("username") or "").strip()
        email = (payload.get("email") or "").strip().lower()
        password = payload.get("password") or ""

        if not username or not email or not password:
            raise InvalidInputError("Username, email and password are required")
        if "@" not in email:
            raise InvalidInputError("Invalid email address")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInputError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        session: AsyncSession = await get_session()
        try:
            existing = await session.execute(
                select(User).where(or_(User.username == username, User.email == email))
            )
            if existing.scalars().first() is not None:
                raise InvalidInputError("Username or email already registered")

            user = User(
                username=username,
                email=email,
                password_hash=hash_password(password),
                name=(payload.get("name") or username).strip(),
                lastname=(payload.get("lastname") or "").strip(),
                occupation=payload.get("occupation"),
                img=payload.get("img")
            )
            session.add(user)
            await session.flush()

            root = Folder(owner_id=user.id, path=ROOT_PATH, parent_id=None)
            session.add(root)
            await session.commit()

            logger.info(f"User registered: {user.username} ({user.id})")

            return message.create_response({
                "success": True,
                "user": user.to_dict(include_sensitive=True),
                "root_folder": root.to_dict(),
                "message": "Registration successful"
            })
        finally:
            await session.close()

    async def _handle_get_profile(self, message: AgentMessage) -> AgentMessage:
        """Full profile for the user themself, public fields for anyone else."""
        payload = message.payload

        user_id = payload.get("user_id")
        requesting_user_id = payload.get("requesting_user_id")

        if not user_id:
            raise InvalidInputError("User ID required")

        session: AsyncSession = await get_session()
        try:
            result = await session.execute(select(User).where(User.id == user_id))
            user = result.scalar_one_or_none()
            if not user:
                raise DesignNotFoundError("User not found")

            return message.create_response({
                "success": True,
                "user": user.to_dict(include_sensitive=user_id == requesting_user_id)
            })
        finally:
            await session.close()
