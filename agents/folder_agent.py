"""
Folder Agent - Path-Addressed Folders

Folders are only the placement target for designs: a design is created,
duplicated or imported into a folder looked up by (owner, path).

Operations:
1. FOLDER_CREATE - create "/a/b" under an existing "/a"
2. FOLDER_GET    - resolve (owner, path) to a folder
"""

from typing import List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.agent_base import Agent, AgentMessage, MessageType
from core.errors import DesignNotFoundError, InvalidInputError
from models.database import get_session
from models.folder import Folder, ROOT_PATH

logger = logging.getLogger(__name__)


async def find_folder(session: AsyncSession, owner_id: str, path: str) -> Optional[Folder]:
    """Folder lookup by (owner, path); paths are normalized first."""
    result = await session.execute(
        select(Folder).where(
            Folder.owner_id == owner_id,
            Folder.path == Folder.normalize_path(path)
        )
    )
    return result.scalar_one_or_none()


class FolderAgent(Agent):

    def __init__(self):
        super().__init__(
            agent_id="folder_agent",
            name="Folder Agent"
        )

        self.register_handler(MessageType.FOLDER_CREATE, self._handle_create)
        self.register_handler(MessageType.FOLDER_GET, self._handle_get)

    def get_capabilities(self) -> List[MessageType]:
        return [MessageType.FOLDER_CREATE, MessageType.FOLDER_GET]

    async def on_start(self):
        logger.info(f"{self.name} started and ready")

    async def on_stop(self):
        logger.info(f"{self.name} stopping")

    async def _handle_create(self, message: AgentMessage) -> AgentMessage:
        payload = message.payload
        user_id = payload.get("user_id")
        raw_path = payload.get("path")

        if not user_id:
            raise InvalidInputError("User ID required")
        if not raw_path or not raw_path.strip():
            raise InvalidInputError("No folder path specified")

        path = Folder.normalize_path(raw_path)
        if path == ROOT_PATH:
            raise InvalidInputError("The root folder already exists")

        session: AsyncSession = await get_session()
        try:
            parent = await find_folder(session, user_id, Folder.parent_path(path))
            if parent is None:
                raise DesignNotFoundError("The parent folder does not exist")
            if await find_folder(session, user_id, path) is not None:
                raise InvalidInputError("A folder with that path already exists")

            folder = Folder(owner_id=user_id, path=path, parent_id=parent.id)
            session.add(folder)
            await session.commit()

            logger.info(f"Folder created: {path} for user {user_id}")
            return message.create_response({"success": True, "folder": folder.to_dict()})
        finally:
            await session.close()

    async def _handle_get(self, message: AgentMessage) -> AgentMessage:
        payload = message.payload
        user_id = payload.get("user_id")
        path = payload.get("path")

        if not user_id or not path:
            raise InvalidInputError("User ID and path required")

        session: AsyncSession = await get_session()
        try:
            folder = await find_folder(session, user_id, path)
            if folder is None:
                raise DesignNotFoundError("The specified folder does not exist")
            return message.create_response({"success": True, "folder": folder.to_dict()})
        finally:
            await session.close()
