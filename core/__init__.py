# Core Module
# Agent infrastructure plus the rules every design operation goes through

from .agent_base import Agent, AgentMessage, MessageType
from .message_broker import MessageBroker
from .event_bus import EventBus
from .session_registry import ActiveSessionRegistry

__all__ = ['Agent', 'AgentMessage', 'MessageType', 'MessageBroker', 'EventBus', 'ActiveSessionRegistry']
