"""
Message Broker Module - Central Communication Hub

All traffic between the REST gateway, the WebSocket layer and the agents
passes through the broker. It knows which agent serves which MessageType,
delivers messages, and matches responses to waiting requests.

Routing order for a message:
1. Responses/errors resolve the pending request with the same correlation id
2. A known recipient id gets the message directly
3. Otherwise the first agent whose capabilities include the type gets it
"""

import asyncio
import os
from collections import deque
from typing import Any, Deque, Dict, List, Optional
from datetime import datetime
import logging

from .agent_base import Agent, AgentMessage, MessageType

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))
MESSAGE_LOG_SIZE = 1000


class MessageBroker:
    """
    Process-wide singleton that routes AgentMessages.

    Tests reset ``MessageBroker._instance`` to get a fresh broker.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._agents: Dict[str, Agent] = {}
        self._pending_requests: Dict[str, asyncio.Future] = {}
        self._message_log: Deque[Dict] = deque(maxlen=MESSAGE_LOG_SIZE)
        self._subscribers: Dict[MessageType, List[str]] = {}
        self._running = False
        self._initialized = True

        logger.info("MessageBroker initialized")

    def register_agent(self, agent: Agent):
        """Register an agent and subscribe it to its capabilities."""
        self._agents[agent.agent_id] = agent
        agent._message_broker = self

        for capability in agent.get_capabilities():
            subscribers = self._subscribers.setdefault(capability, [])
            if agent.agent_id not in subscribers:
                subscribers.append(agent.agent_id)

        logger.info(f"Agent registered: {agent.name} ({agent.agent_id})")
        logger.debug(f"Capabilities: {[c.value for c in agent.get_capabilities()]}")

    async def route_message(self, message: AgentMessage):
        self._message_log.append({
            "timestamp": datetime.utcnow().isoformat(),
            "type": message.type.value,
            "sender": message.sender,
            "recipient": message.recipient,
            "id": message.id,
            "correlation_id": message.correlation_id
        })

        logger.debug(f"Routing message: {message.type.value} from {message.sender} to {message.recipient}")

        if message.type in (MessageType.RESPONSE, MessageType.ERROR):
            future = self._pending_requests.pop(message.correlation_id, None) if message.correlation_id else None
            if future is not None:
                if not future.done():
                    future.set_result(message)
                return

        if message.recipient in self._agents:
            await self._agents[message.recipient].receive_message(message)
            return

        for target_agent_id in self._subscribers.get(message.type, []):
            if target_agent_id in self._agents:
                await self._agents[target_agent_id].receive_message(message)
                return

        logger.warning(f"No handler found for message: {message.type.value}")

    async def request(
        self,
        message: AgentMessage,
        timeout: float = REQUEST_TIMEOUT
    ) -> Optional[AgentMessage]:
        """
        Send a request and wait for the correlated response.

        Returns None when no response arrives within ``timeout`` seconds.
        """
        future = asyncio.get_running_loop().create_future()
        self._pending_requests[message.id] = future

        try:
            await self.route_message(message)
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"Request timeout: {message.type.value} ({message.id})")
            return None
        finally:
            self._pending_requests.pop(message.id, None)

    async def ask(
        self,
        message_type: MessageType,
        recipient: str,
        payload: Dict[str, Any],
        sender: str = "api_gateway",
        timeout: float = REQUEST_TIMEOUT
    ) -> Optional[AgentMessage]:
        """Shorthand for building an AgentMessage and awaiting its response."""
        return await self.request(AgentMessage(
            type=message_type,
            sender=sender,
            recipient=recipient,
            payload=payload
        ), timeout=timeout)

    async def start_all_agents(self):
        self._running = True
        await asyncio.gather(*[agent.start() for agent in self._agents.values()])
        logger.info(f"Started {len(self._agents)} agents")

    async def stop_all_agents(self):
        self._running = False
        await asyncio.gather(*[agent.stop() for agent in self._agents.values()])
        logger.info("All agents stopped")

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_agents": len(self._agents),
            "agents": list(self._agents.keys()),
            "pending_requests": len(self._pending_requests),
            "messages_logged": len(self._message_log),
            "subscribers": {
                msg_type.value: len(agents)
                for msg_type, agents in self._subscribers.items()
            }
        }
