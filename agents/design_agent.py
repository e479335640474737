"""
Design Lifecycle Agent - Create, Delete, Duplicate and Import Designs

This agent owns every mutation of a design and keeps four things consistent
with each other:

1. The live editing sessions (ActiveSessionRegistry)
2. The design's placement (owner + folder)
3. Its privilege list
4. Its duplication lineage (origin pointers of its duplicates)

Operations:
- DESIGN_CREATE        new empty design in one of the requester's folders
- DESIGN_READ          privileged read by id
- DESIGN_UPDATE_METADATA  edit metadata and keywords (owner or type-0)
- DESIGN_DELETE        owner-only, refused while anyone is editing
- DESIGN_DUPLICATE     copy with fresh ids, link and lineage pointer
- DESIGN_IMPORT        create from an external payload, validated up front
- DESIGN_GET_BY_LINK   anonymous read-only access through the share token
- DESIGN_SHARE         owner grants a privilege to another user
- DESIGN_SESSION       join/leave a live editing session
- DESIGN_RECENT, DESIGN_LIST_BY_FOLDER, DESIGN_LIST_SHARED,
  DESIGN_LIST_PUBLIC_BY_USER  listings

Request checks always run in the same order: input validation, existence,
authorization, and only then the mutation.
"""

import copy
import math
import uuid
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agents.folder_agent import find_folder
from core.agent_base import Agent, AgentMessage, MessageType
from core.content_tree import (
    DUPLICATE_SUFFIX,
    apply_metadata_update,
    reference_id,
    default_metadata,
    empty_content,
    normalize_metadata,
    regenerate_content_ids,
    validate_import_payload,
)
from core.errors import (
    CorruptPayloadError,
    DesignConflictError,
    DesignNotFoundError,
    InvalidInputError,
    StorageFailureError,
    UnauthorizedError,
)
from core.event_bus import EventBus, Event, EventType
from core.lineage import duplicates_of, record_duplication, sever_lineage
from core.privileges import (
    FULL_ACCESS,
    READ_ACCESS,
    AccessMode,
    can_delete,
    can_mutate,
    can_view,
    is_valid_link_token,
    new_link_token,
)
from core.session_registry import ActiveSessionRegistry
from models.category import Category
from models.database import get_session
from models.design import Design, DesignPrivilege
from models.folder import ROOT_PATH
from models.user import User

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 100
RECENT_LIMIT = 5


def require_id(value: Any, label: str) -> str:
    """Ids are UUID strings; anything else is invalid input."""
    if not value or not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"No {label} specified")
    try:
        uuid.UUID(value)
    except ValueError:
        raise InvalidInputError(f"Malformed {label}: {value}")
    return value


def page_params(payload: Dict[str, Any]) -> Tuple[int, int]:
    """Offset/limit from a request payload ("from" and "limit")."""
    try:
        offset = int(payload.get("from") or 0)
        limit = int(payload.get("limit") or DEFAULT_PAGE_SIZE)
    except (TypeError, ValueError):
        raise InvalidInputError("from and limit must be integers")
    if offset < 0 or limit < 1:
        raise InvalidInputError("from must be >= 0 and limit >= 1")
    return offset, min(limit, MAX_PAGE_SIZE)


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0


async def populate(session: AsyncSession, designs: Iterable[Design],
                   include_content: bool = False) -> List[dict]:
    """Serialize designs with their owner and category records filled in."""
    designs = list(designs)
    owner_ids = {d.owner_id for d in designs}
    category_ids = {(d.design_metadata or {}).get("category") for d in designs} - {None}

    owners: Dict[str, dict] = {}
    if owner_ids:
        result = await session.execute(select(User).where(User.id.in_(owner_ids)))
        owners = {u.id: u.to_public_dict() for u in result.scalars().all()}

    categories: Dict[str, dict] = {}
    if category_ids:
        result = await session.execute(select(Category).where(Category.id.in_(category_ids)))
        categories = {c.id: c.to_dict() for c in result.scalars().all()}

    return [
        d.to_dict(
            owner=owners.get(d.owner_id),
            category=categories.get((d.design_metadata or {}).get("category")),
            include_content=include_content
        )
        for d in designs
    ]


class DesignLifecycleAgent(Agent):
    """
    Agent responsible for the design lifecycle.

    The ActiveSessionRegistry is injected so a single long-lived instance is
    shared with whatever else needs presence information.
    """

    def __init__(self, registry: Optional[ActiveSessionRegistry] = None):
        super().__init__(
            agent_id="design_lifecycle_agent",
            name="Design Lifecycle Agent"
        )
        self.event_bus = EventBus()
        self.registry = registry if registry is not None else ActiveSessionRegistry()

        self.register_handler(MessageType.DESIGN_CREATE, self._handle_create)
        self.register_handler(MessageType.DESIGN_READ, self._handle_read)
        self.register_handler(MessageType.DESIGN_UPDATE_METADATA, self._handle_update_metadata)
        self.register_handler(MessageType.DESIGN_DELETE, self._handle_delete)
        self.register_handler(MessageType.DESIGN_DUPLICATE, self._handle_duplicate)
        self.register_handler(MessageType.DESIGN_IMPORT, self._handle_import)
        self.register_handler(MessageType.DESIGN_GET_BY_LINK, self._handle_get_by_link)
        self.register_handler(MessageType.DESIGN_SHARE, self._handle_share)
        self.register_handler(MessageType.DESIGN_SESSION, self._handle_session)
        self.register_handler(MessageType.DESIGN_RECENT, self._handle_recent)
        self.register_handler(MessageType.DESIGN_LIST_BY_FOLDER, self._handle_list_by_folder)
        self.register_handler(MessageType.DESIGN_LIST_SHARED, self._handle_list_shared)
        self.register_handler(MessageType.DESIGN_LIST_PUBLIC_BY_USER, self._handle_list_public_by_user)

    def get_capabilities(self) -> List[MessageType]:
        return [
            MessageType.DESIGN_CREATE,
            MessageType.DESIGN_READ,
            MessageType.DESIGN_UPDATE_METADATA,
            MessageType.DESIGN_DELETE,
            MessageType.DESIGN_DUPLICATE,
            MessageType.DESIGN_IMPORT,
            MessageType.DESIGN_GET_BY_LINK,
            MessageType.DESIGN_SHARE,
            MessageType.DESIGN_SESSION,
            MessageType.DESIGN_RECENT,
            MessageType.DESIGN_LIST_BY_FOLDER,
            MessageType.DESIGN_LIST_SHARED,
            MessageType.DESIGN_LIST_PUBLIC_BY_USER
        ]

    async def on_start(self):
        logger.info(f"{self.name} started and ready")

    async def on_stop(self):
        # Sessions do not outlive the process; clients rejoin after a restart
        logger.info(f"{self.name} stopping, clearing editing sessions")
        self.registry.clear()

    async def _load_design(self, session: AsyncSession, design_id: str) -> Design:
        result = await session.execute(select(Design).where(Design.id == design_id))
        design = result.scalar_one_or_none()
        if design is None:
            raise DesignNotFoundError("No learning design exists with the specified id")
        return design

    async def _design_exists(self, design_id: str) -> bool:
        session: AsyncSession = await get_session()
        try:
            result = await session.execute(select(Design.id).where(Design.id == design_id))
            return result.scalar_one_or_none() is not None
        finally:
            await session.close()

    async def _publish(self, event_type: EventType, design_id: str, user_id: Optional[str], data: dict):
        await self.event_bus.publish(Event(
            event_type=event_type,
            data=data,
            user_id=user_id,
            design_id=design_id
        ))

    # ==================== CREATE / READ ====================

    async def _handle_create(self, message: AgentMessage) -> AgentMessage:
        """
        Create an empty design in one of the requester's folders.

        The requester becomes owner with a type-0 privilege; the design gets
        default metadata (uncategorized) and a fresh read-only link.
        """
        payload = message.payload
        user_id = require_id(payload.get("user_id"), "user")
        path = payload.get("path")
        if not path or not str(path).strip():
            raise InvalidInputError("No folder specified")
        is_public = bool(payload.get("is_public") or False)

        session: AsyncSession = await get_session()
        try:
            folder = await find_folder(session, user_id, path)
            if folder is None:
                raise DesignNotFoundError("No folder exists with the specified path")

            design = Design(
                owner_id=user_id,
                folder_id=folder.id,
                design_metadata=default_metadata(is_public=is_public),
                data=empty_content(),
                keywords=[],
                comments=[],
                assessments=[],
                read_only_link=new_link_token()
            )
            design.grant(user_id, FULL_ACCESS)
            session.add(design)
            await session.commit()

            logger.info(f"Design created: {design.id} in {folder.path} by {user_id}")
            await self._publish(EventType.DESIGN_CREATED, design.id, user_id, {"design_id": design.id})

            return message.create_response({
                "success": True,
                "design": design.to_dict(),
                "message": "Design created successfully"
            })
        finally:
            await session.close()

    async def _handle_read(self, message: AgentMessage) -> AgentMessage:
        payload = message.payload
        design_id = require_id(payload.get("design_id"), "design")
        user_id = payload.get("user_id")

        session: AsyncSession = await get_session()
        try:
            design = await self._load_design(session, design_id)
            if not can_view(design, user_id, AccessMode.PRIVILEGED):
                raise UnauthorizedError("You are not allowed to view this design")

            [record] = await populate(session, [design], include_content=True)
            return message.create_response({
                "success": True,
                "design": record,
                "active_editors": sorted(self.registry.editors(design_id)),
                "duplicates": [d.id for d in await duplicates_of(session, design_id)],
                "can_edit": can_mutate(design, user_id)
            })
        finally:
            await session.close()

    # ==================== METADATA ====================

    async def _handle_update_metadata(self, message: AgentMessage) -> AgentMessage:
        """
        Edit a design's metadata and keywords.

        Needs edit rights: the owner or a type-0 grantee. The score is never
        editable, and the category must be one that exists.
        """
        payload = message.payload
        design_id = require_id(payload.get("design_id"), "design")
        user_id = require_id(payload.get("user_id"), "user")
        changes = payload.get("metadata")
        keywords = payload.get("keywords")

        if changes is None and keywords is None:
            raise InvalidInputError("No changes specified")
        if keywords is not None and not isinstance(keywords, list):
            raise InvalidInputError("keywords must be a list")

        session: AsyncSession = await get_session()
        try:
            design = await self._load_design(session, design_id)
            if not can_mutate(design, user_id):
                raise UnauthorizedError("You are not allowed to edit this design")

            if changes is not None:
                metadata = apply_metadata_update(design.design_metadata, changes)
                if "category" in changes and await session.get(Category, metadata["category"]) is None:
                    raise DesignNotFoundError("No category exists with the specified id")
                design.design_metadata = metadata
            if keywords is not None:
                design.keywords = [str(k) for k in keywords if str(k).strip()]
            await session.commit()

            logger.info(f"Metadata of design {design_id} edited by {user_id}")
            await self._publish(EventType.DESIGN_UPDATED, design_id, user_id, {
                "design_id": design_id,
                "fields": sorted(changes or {}) + (["keywords"] if keywords is not None else [])
            })

            [record] = await populate(session, [design])
            return message.create_response({"success": True, "design": record})
        finally:
            await session.close()

    # ==================== DELETE ====================

    async def _handle_delete(self, message: AgentMessage) -> AgentMessage:
        """
        Delete a design.

        Order of checks:
        1. The design exists (NotFound)
        2. The requester is the owner (Unauthorized); shared type-0 access
           does not allow deletion
        3. Nobody is editing it (Conflict); the registry reservation also
           stops new joins until the delete is finished

        The duplicates' origin pointers are cleared in the same transaction
        that removes the design, so either both happen or neither does.
        """
        payload = message.payload
        design_id = require_id(payload.get("design_id"), "design")
        user_id = require_id(payload.get("user_id"), "user")

        session: AsyncSession = await get_session()
        try:
            design = await self._load_design(session, design_id)
            if not can_delete(design, user_id):
                raise UnauthorizedError("You are not authorized to delete this design")

            if not self.registry.reserve_for_delete(design_id):
                raise DesignConflictError(
                    "The design cannot be deleted while users are editing it. "
                    "Please try again when nobody is editing it."
                )

            try:
                detached = await sever_lineage(session, design_id)
                await session.delete(design)
                await session.commit()
            except SQLAlchemyError:
                await session.rollback()
                logger.exception(f"Delete of design {design_id} failed, rolled back")
                raise StorageFailureError()
            else:
                self.registry.drop_all(design_id)
            finally:
                self.registry.release_delete(design_id)

            logger.info(f"Design deleted: {design_id} by {user_id} ({detached} duplicate(s) detached)")
            await self._publish(EventType.DESIGN_DELETED, design_id, user_id, {
                "design_id": design_id,
                "detached_duplicates": detached
            })

            return message.create_response({
                "success": True,
                "design_id": design_id,
                "detached_duplicates": detached,
                "message": "Design deleted successfully"
            })
        finally:
            await session.close()

    # ==================== DUPLICATE / IMPORT ====================

    async def _handle_duplicate(self, message: AgentMessage) -> AgentMessage:
        """
        Duplicate a design into one of the requester's folders (root by default).

        The copy gets new activity/task ids, a new read-only link, no
        comments or assessments, is private with a zero score, and points at
        the source through its origin.
        """
        payload = message.payload
        user_id = require_id(payload.get("user_id"), "user")
        source_id = require_id(payload.get("design_id"), "design to duplicate")
        path = payload.get("path") or ROOT_PATH

        session: AsyncSession = await get_session()
        try:
            source = await self._load_design(session, source_id)
            if not can_view(source, user_id, AccessMode.PRIVILEGED):
                raise UnauthorizedError("You are not allowed to duplicate this design")

            folder = await find_folder(session, user_id, path)
            if folder is None:
                raise DesignNotFoundError("The destination folder does not exist")

            metadata = normalize_metadata(source.design_metadata or {})
            metadata["name"] = f"{metadata.get('name') or ''}{DUPLICATE_SUFFIX}"
            metadata["isPublic"] = False
            metadata["scoreMean"] = 0

            duplicate = Design(
                owner_id=user_id,
                folder_id=folder.id,
                design_metadata=metadata,
                data=regenerate_content_ids(source.data),
                keywords=copy.deepcopy(source.keywords or []),
                comments=[],
                assessments=[],
                read_only_link=new_link_token()
            )
            record_duplication(source.id, duplicate)
            duplicate.grant(user_id, FULL_ACCESS)
            session.add(duplicate)
            await session.commit()

            logger.info(f"Design {source_id} duplicated as {duplicate.id} by {user_id}")
            await self._publish(EventType.DESIGN_DUPLICATED, duplicate.id, user_id, {
                "design_id": duplicate.id,
                "origin_id": source_id
            })

            return message.create_response({
                "success": True,
                "design": duplicate.to_dict(),
                "message": "Design duplicated successfully"
            })
        finally:
            await session.close()

    async def _handle_import(self, message: AgentMessage) -> AgentMessage:
        """
        Import a design from an external (file) payload.

        The payload is validated completely before anything is written; a
        missing field fails the whole import with CorruptPayload. The
        imported design gets the same identity treatment as a duplicate
        (owner, folder, link, ids, private) but no origin.
        """
        payload = message.payload
        user_id = require_id(payload.get("user_id"), "user")
        filename = payload.get("filename")
        path = payload.get("path")
        incoming = payload.get("design")

        if not filename:
            raise InvalidInputError("No file received")
        if not path:
            raise InvalidInputError("No valid path specified")
        if incoming is None:
            raise InvalidInputError("No learning design received")

        try:
            validate_import_payload(incoming)
            metadata = normalize_metadata(incoming["metadata"])
            data = regenerate_content_ids(incoming["data"])
        except CorruptPayloadError as e:
            raise CorruptPayloadError(f'Could not import "{filename}": the file is corrupt. {e.message}')
        metadata["isPublic"] = False

        session: AsyncSession = await get_session()
        try:
            folder = await find_folder(session, user_id, path)
            if folder is None:
                raise DesignNotFoundError("The specified folder does not exist")

            design = Design(
                owner_id=user_id,
                folder_id=folder.id,
                design_metadata=metadata,
                data=data,
                keywords=[str(k) for k in incoming["keywords"]],
                comments=[],
                assessments=[],
                read_only_link=new_link_token()
            )
            for grantee, access_type in await self._known_privileges(session, incoming, user_id):
                design.grant(grantee, access_type)
            design.grant(user_id, FULL_ACCESS)
            session.add(design)
            await session.commit()

            logger.info(f"Design imported from {filename}: {design.id} by {user_id}")
            await self._publish(EventType.DESIGN_IMPORTED, design.id, user_id, {
                "design_id": design.id,
                "filename": filename
            })

            return message.create_response({
                "success": True,
                "design": design.to_dict(),
                "message": f"Design {metadata.get('name')} imported successfully"
            })
        finally:
            await session.close()

    async def _known_privileges(self, session: AsyncSession, incoming: dict,
                                importer_id: str) -> List[Tuple[str, int]]:
        """
        Privileges carried by an imported payload, restricted to users that
        exist here. The importer's own entry is dropped; they are appended
        with full access afterwards.
        """
        wanted: Dict[str, int] = {}
        for entry in incoming.get("privileges") or []:
            if not isinstance(entry, dict):
                continue
            grantee = reference_id(entry.get("user"))
            access_type = entry.get("type", READ_ACCESS)
            if not grantee or grantee == importer_id or grantee in wanted:
                continue
            if access_type not in (FULL_ACCESS, READ_ACCESS):
                access_type = READ_ACCESS
            wanted[grantee] = access_type

        if not wanted:
            return []
        result = await session.execute(select(User.id).where(User.id.in_(list(wanted))))
        existing = set(result.scalars().all())
        return [(grantee, t) for grantee, t in wanted.items() if grantee in existing]

    # ==================== LINK ACCESS / SHARING ====================

    async def _handle_get_by_link(self, message: AgentMessage) -> AgentMessage:
        """
        Resolve a read-only link.

        Only the token matters: it must be well formed and belong to a
        design. The origin, when it still exists, is summarized.
        """
        link = message.payload.get("link")
        if not link or not str(link).strip():
            raise InvalidInputError("No link specified")
        if not is_valid_link_token(link):
            raise InvalidInputError("The link is not valid")

        session: AsyncSession = await get_session()
        try:
            result = await session.execute(select(Design).where(Design.read_only_link == link))
            design = result.scalar_one_or_none()
            if design is None or not can_view(design, None, AccessMode.LINK, link=link):
                raise DesignNotFoundError("No design found for the specified link")

            [record] = await populate(session, [design], include_content=True)
            record["origin"] = await self._origin_summary(session, design.origin_id)
            return message.create_response({"success": True, "design": record})
        finally:
            await session.close()

    async def _origin_summary(self, session: AsyncSession, origin_id: Optional[str]) -> Optional[dict]:
        if not origin_id:
            return None
        result = await session.execute(select(Design).where(Design.id == origin_id))
        origin = result.scalar_one_or_none()
        if origin is None:
            return None
        owner = await session.get(User, origin.owner_id)
        return {
            "id": origin.id,
            "name": origin.name,
            "isPublic": origin.is_public,
            "owner": owner.to_public_dict() if owner else origin.owner_id,
            "privileges": [p.to_dict() for p in origin.privileges]
        }

    async def _handle_share(self, message: AgentMessage) -> AgentMessage:
        """
        Grant or change another user's privilege on a design (owner only).

        Granting type 0 lets that user edit; it never lets them delete.
        """
        payload = message.payload
        design_id = require_id(payload.get("design_id"), "design")
        user_id = require_id(payload.get("user_id"), "user")
        target_id = require_id(payload.get("target_user_id"), "user to share with")
        access_type = payload.get("access_type", READ_ACCESS)
        if access_type not in (FULL_ACCESS, READ_ACCESS):
            raise InvalidInputError("access_type must be 0 (edit) or 1 (read)")

        session: AsyncSession = await get_session()
        try:
            design = await self._load_design(session, design_id)
            if not can_delete(design, user_id):
                raise UnauthorizedError("Only the owner can share this design")
            if target_id == design.owner_id:
                raise InvalidInputError("The owner's access cannot be changed")
            if await session.get(User, target_id) is None:
                raise DesignNotFoundError("The user to share with does not exist")

            design.grant(target_id, access_type)
            await session.commit()

            logger.info(f"Design {design_id} shared with {target_id} (type {access_type})")
            await self._publish(EventType.DESIGN_SHARED, design_id, user_id, {
                "design_id": design_id,
                "user": target_id,
                "type": access_type
            })

            return message.create_response({
                "success": True,
                "privileges": [p.to_dict() for p in design.privileges]
            })
        finally:
            await session.close()

    # ==================== EDITING SESSIONS ====================

    async def _handle_session(self, message: AgentMessage) -> AgentMessage:
        """
        Join or leave the live editing session of a design.

        Joining needs edit rights and fails with Conflict while the design is
        being deleted. Leaving never touches the database.
        """
        payload = message.payload
        design_id = require_id(payload.get("design_id"), "design")
        user_id = require_id(payload.get("user_id"), "user")
        action = payload.get("action")

        if action == "join":
            session: AsyncSession = await get_session()
            try:
                design = await self._load_design(session, design_id)
                if not can_mutate(design, user_id):
                    raise UnauthorizedError("You are not allowed to edit this design")
            finally:
                await session.close()

            editors = self.registry.join(design_id, user_id)
            # A delete may have finished between the check above and the join
            if not await self._design_exists(design_id):
                self.registry.leave(design_id, user_id)
                raise DesignNotFoundError("No learning design exists with the specified id")
            logger.info(f"User {user_id} joined editing session of {design_id}")
            await self._publish(EventType.EDIT_STARTED, design_id, user_id, {
                "design_id": design_id,
                "user_id": user_id,
                "active_editors": sorted(editors)
            })
            return message.create_response({
                "success": True,
                "action": "joined",
                "active_editors": sorted(editors)
            })

        if action == "leave":
            editors = self.registry.leave(design_id, user_id)
            logger.info(f"User {user_id} left editing session of {design_id}")
            await self._publish(EventType.EDIT_COMPLETED, design_id, user_id, {
                "design_id": design_id,
                "user_id": user_id,
                "active_editors": sorted(editors)
            })
            return message.create_response({
                "success": True,
                "action": "left",
                "active_editors": sorted(editors)
            })

        raise InvalidInputError(f"Unknown action: {action}")

    # ==================== LISTINGS ====================

    async def _handle_recent(self, message: AgentMessage) -> AgentMessage:
        """The few most recently updated designs the user can edit."""
        user_id = require_id(message.payload.get("user_id"), "user")

        session: AsyncSession = await get_session()
        try:
            result = await session.execute(
                select(Design)
                .join(DesignPrivilege, DesignPrivilege.design_id == Design.id)
                .where(DesignPrivilege.user_id == user_id, DesignPrivilege.access_type == FULL_ACCESS)
                .order_by(Design.updated_at.desc())
                .limit(RECENT_LIMIT)
            )
            designs = result.scalars().all()
            return message.create_response({
                "success": True,
                "designs": await populate(session, designs)
            })
        finally:
            await session.close()

    async def _paginate(self, session: AsyncSession, criteria: list, offset: int, limit: int) -> Tuple[int, List[Design]]:
        total = await session.scalar(select(func.count()).select_from(Design).where(*criteria))
        result = await session.execute(
            select(Design)
            .where(*criteria)
            .order_by(Design.updated_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return total or 0, list(result.scalars().all())

    async def _handle_list_by_folder(self, message: AgentMessage) -> AgentMessage:
        payload = message.payload
        user_id = require_id(payload.get("user_id"), "user")
        path = payload.get("path")
        if not path:
            raise InvalidInputError("No folder specified")
        offset, limit = page_params(payload)

        session: AsyncSession = await get_session()
        try:
            folder = await find_folder(session, user_id, path)
            if folder is None:
                raise DesignNotFoundError("The specified folder does not exist")

            total, designs = await self._paginate(
                session, [Design.owner_id == user_id, Design.folder_id == folder.id], offset, limit
            )
            return message.create_response({
                "success": True,
                "owner_id": user_id,
                "folder": folder.to_dict(),
                "from": offset + limit,
                "n_pages": page_count(total, limit),
                "total": total,
                "designs": await populate(session, designs)
            })
        finally:
            await session.close()

    async def _handle_list_shared(self, message: AgentMessage) -> AgentMessage:
        """Designs owned by someone else where the user holds any privilege."""
        payload = message.payload
        user_id = require_id(payload.get("user_id"), "user")
        offset, limit = page_params(payload)

        shared_with_user = (
            select(DesignPrivilege.design_id)
            .where(DesignPrivilege.user_id == user_id)
        )

        session: AsyncSession = await get_session()
        try:
            total, designs = await self._paginate(
                session, [Design.owner_id != user_id, Design.id.in_(shared_with_user)], offset, limit
            )
            return message.create_response({
                "success": True,
                "owner_id": user_id,
                "from": offset + limit,
                "n_pages": page_count(total, limit),
                "total": total,
                "designs": await populate(session, designs)
            })
        finally:
            await session.close()

    async def _handle_list_public_by_user(self, message: AgentMessage) -> AgentMessage:
        payload = message.payload
        owner_id = require_id(payload.get("owner_id"), "user")
        offset, limit = page_params(payload)

        session: AsyncSession = await get_session()
        try:
            if await session.get(User, owner_id) is None:
                raise DesignNotFoundError("No user exists with the specified id")

            total, designs = await self._paginate(
                session,
                [Design.owner_id == owner_id, Design.design_metadata["isPublic"].as_boolean() == True],
                offset,
                limit
            )
            return message.create_response({
                "success": True,
                "owner_id": owner_id,
                "from": offset + limit,
                "n_pages": page_count(total, limit),
                "total": total,
                "designs": await populate(session, designs)
            })
        finally:
            await session.close()
