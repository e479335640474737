"""
Agent Base Module - Foundation of the Agent-Based Architecture

Every domain area of the service is an agent:
- UserManagementAgent: accounts and root folders
- FolderAgent: folder creation and lookup
- DesignLifecycleAgent: create / delete / duplicate / import / share / sessions
- SearchAgent: filtered search over public designs

Agents never call each other directly. They exchange AgentMessages through
the MessageBroker; the REST gateway and the WebSocket layer do the same.

Key Concepts:
- AgentMessage: the request/response envelope
- MessageType: the operations agents can perform
- Agent: base class with handler registration and a dispatch loop that runs
  each incoming message as its own asyncio task, so slow requests do not
  hold up unrelated ones
- Typed failures: handlers raise DesignError subclasses; the dispatch loop
  turns them into error responses with an ``error_type``
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set
import logging

from .errors import DesignError, StorageFailureError

logger = logging.getLogger(__name__)


class MessageType(Enum):
    """All operations that can be requested from an agent."""

    # User Management Operations
    USER_REGISTER = "user_register"
    USER_GET_PROFILE = "user_get_profile"

    # Folder Operations
    FOLDER_CREATE = "folder_create"
    FOLDER_GET = "folder_get"

    # Design Lifecycle Operations
    DESIGN_CREATE = "design_create"
    DESIGN_READ = "design_read"
    DESIGN_UPDATE_METADATA = "design_update_metadata"
    DESIGN_DELETE = "design_delete"
    DESIGN_DUPLICATE = "design_duplicate"
    DESIGN_IMPORT = "design_import"
    DESIGN_GET_BY_LINK = "design_get_by_link"
    DESIGN_SHARE = "design_share"
    DESIGN_SESSION = "design_session"

    # Design Listings
    DESIGN_RECENT = "design_recent"
    DESIGN_LIST_BY_FOLDER = "design_list_by_folder"
    DESIGN_LIST_SHARED = "design_list_shared"
    DESIGN_LIST_PUBLIC_BY_USER = "design_list_public_by_user"

    # Search
    DESIGN_SEARCH = "design_search"

    # System Messages
    RESPONSE = "response"
    ERROR = "error"


@dataclass
class AgentMessage:
    """
    A message passed between agents.

    Fields:
    - id: unique identifier, used to correlate the response
    - type: the operation (MessageType)
    - sender / recipient: agent ids
    - payload: operation arguments or results
    - correlation_id: on responses, the id of the request
    - timestamp: when the message was built
    """

    type: MessageType
    sender: str
    recipient: str
    payload: Dict[str, Any]
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    correlation_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def create_response(self, payload: Dict[str, Any], success: bool = True) -> 'AgentMessage':
        """Build the response to this message, correlated by id."""
        return AgentMessage(
            type=MessageType.RESPONSE if success else MessageType.ERROR,
            sender=self.recipient,
            recipient=self.sender,
            payload=payload,
            correlation_id=self.id
        )

    def create_error(self, error: DesignError) -> 'AgentMessage':
        return self.create_response(error.to_payload(), success=False)


class Agent(ABC):
    """
    Base class for all agents.

    Lifecycle: start() launches the dispatch loop, stop() cancels it along
    with any handler still running. Subclasses register one handler per
    MessageType they serve and implement on_start/on_stop/get_capabilities.
    """

    def __init__(self, agent_id: str, name: str):
        self.agent_id = agent_id
        self.name = name
        self._message_queue: asyncio.Queue = asyncio.Queue()
        self._handlers: Dict[MessageType, Callable] = {}
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self._message_broker = None  # Set by MessageBroker.register_agent

        logger.info(f"Agent initialized: {self.name} ({self.agent_id})")

    def register_handler(self, message_type: MessageType, handler: Callable):
        self._handlers[message_type] = handler
        logger.debug(f"Handler registered: {message_type.value} -> {handler.__name__}")

    async def receive_message(self, message: AgentMessage):
        """Queue a message for this agent."""
        await self._message_queue.put(message)
        logger.debug(f"{self.name} received message: {message.type.value}")

    async def send_message(self, message: AgentMessage):
        """Send a message to another agent via the message broker."""
        if self._message_broker:
            await self._message_broker.route_message(message)
        else:
            logger.error(f"{self.name}: No message broker configured!")

    async def handle(self, message: AgentMessage) -> Optional[AgentMessage]:
        """
        Run the handler for a message and return its response.

        DesignError subclasses become typed error responses. Anything else is
        reported as a storage failure with a generic message; the details only
        go to the log.
        """
        handler = self._handlers.get(message.type)
        if handler is None:
            logger.warning(f"{self.name}: No handler for {message.type.value}")
            return None

        try:
            return await handler(message)
        except DesignError as e:
            logger.warning(f"{self.name}: {message.type.value} refused ({e.error_type}): {e.message}")
            return message.create_error(e)
        except Exception:
            logger.exception(f"Handler error in {self.name} for {message.type.value}")
            return message.create_error(StorageFailureError())

    async def _dispatch(self, message: AgentMessage):
        result = await self.handle(message)
        if result and isinstance(result, AgentMessage):
            await self.send_message(result)

    async def _process_messages(self):
        """
        Main loop: take messages off the queue and run each one as a task.

        Handlers for different requests therefore interleave the same way
        independent HTTP requests do.
        """
        while self._running:
            try:
                message = await asyncio.wait_for(self._message_queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            task = asyncio.create_task(self._dispatch(message))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def start(self):
        if not self._running:
            self._running = True
            self._task = asyncio.create_task(self._process_messages())
            await self.on_start()
            logger.info(f"Agent started: {self.name}")

    async def stop(self):
        if self._running:
            self._running = False
            tasks = [t for t in [self._task, *self._inflight] if t is not None]
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            self._inflight.clear()
            await self.on_stop()
            logger.info(f"Agent stopped: {self.name}")

    @abstractmethod
    async def on_start(self):
        """Called when agent starts - subclasses implement initialization."""
        pass

    @abstractmethod
    async def on_stop(self):
        """Called when agent stops - subclasses implement cleanup."""
        pass

    @abstractmethod
    def get_capabilities(self) -> List[MessageType]:
        """Return list of message types this agent can handle."""
        pass
