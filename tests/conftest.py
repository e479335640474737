"""
Test Configuration and Fixtures

Every test that touches the database gets a fresh schema in a temporary
SQLite file (aiosqlite), fresh broker/event-bus singletons and freshly
started agents. Pure components (registry, privileges, content tree, text)
are tested without any fixture.

DATABASE_URL has to be set before models.database is imported, so it is set
at the top of this module.
"""

import os
import tempfile
import uuid

_TEST_DB_DIR = tempfile.mkdtemp(prefix="learning-designs-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt

import api.websocket
from agents import DesignLifecycleAgent, FolderAgent, SearchAgent, UserManagementAgent
from agents.user_agent import ALGORITHM, SECRET_KEY
from core.agent_base import AgentMessage, MessageType
from core.event_bus import EventBus
from core.message_broker import MessageBroker
from core.session_registry import ActiveSessionRegistry
from models.database import drop_db, engine, init_db


@pytest_asyncio.fixture(scope="function")
async def database():
    """Create the schema (and the seeded category) for one test."""
    await init_db()
    yield
    await drop_db()
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def message_broker():
    """
    Fresh broker for each test.

    The broker, the event bus and the WebSocket manager are singletons, so
    they are reset before and after.
    """
    MessageBroker._instance = None
    EventBus._instance = None
    api.websocket._ws_manager_instance = None
    broker = MessageBroker()

    yield broker

    await broker.stop_all_agents()
    MessageBroker._instance = None
    EventBus._instance = None
    api.websocket._ws_manager_instance = None


@pytest.fixture
def registry():
    return ActiveSessionRegistry(stripes=8)


@pytest_asyncio.fixture(scope="function")
async def all_agents(message_broker, database, registry):
    """Create, register and start every agent."""
    agents = {
        "user": UserManagementAgent(),
        "folder": FolderAgent(),
        "design": DesignLifecycleAgent(registry),
        "search": SearchAgent(),
    }
    for agent in agents.values():
        message_broker.register_agent(agent)

    await message_broker.start_all_agents()

    yield {**agents, "broker": message_broker, "registry": registry}

    await message_broker.stop_all_agents()


@pytest_asyncio.fixture(scope="function")
async def client(all_agents):
    """
    HTTP client for the FastAPI app.

    ASGITransport does not run the lifespan; the agents come from all_agents
    and are reached through the same broker singleton.
    """
    from main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ==================== HELPERS ====================

def auth_headers(user_id: str) -> dict:
    """Bearer header as the external identity provider would issue it."""
    token = jwt.encode({"sub": user_id}, SECRET_KEY, algorithm=ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


async def ask(broker, message_type: MessageType, recipient: str, payload: dict) -> AgentMessage:
    response = await broker.request(AgentMessage(
        type=message_type,
        sender="test",
        recipient=recipient,
        payload=payload
    ), timeout=10.0)
    assert response is not None, f"{message_type.value} timed out"
    return response


async def create_test_user(broker, username: str, name: str = None, lastname: str = "") -> str:
    """Register a user (unique username/email per call) and return its id."""
    suffix = uuid.uuid4().hex[:8]
    response = await ask(broker, MessageType.USER_REGISTER, "user_management_agent", {
        "username": f"{username}_{suffix}",
        "email": f"{username}_{suffix}@example.com",
        "password": "test_password_123",
        "name": name or username,
        "lastname": lastname
    })
    assert response.payload.get("success"), f"User creation failed: {response.payload.get('error')}"
    return response.payload["user"]["id"]


async def create_test_design(broker, user_id: str, path: str = "/", is_public: bool = False) -> dict:
    response = await ask(broker, MessageType.DESIGN_CREATE, "design_lifecycle_agent", {
        "user_id": user_id,
        "path": path,
        "is_public": is_public
    })
    assert response.payload.get("success"), f"Design creation failed: {response.payload.get('error')}"
    return response.payload["design"]


def exported_design(name: str = "Imported design", activities: int = 2, tasks_per_activity: int = 2) -> dict:
    """A structurally complete export, as a client would upload it."""
    return {
        "metadata": {
            "name": name,
            "isPublic": True,
            "scoreMean": 4.5,
            "category": {"_id": "603428218fe538f505b5ac90", "name": "Uncategorized"},
            "results": [{"description": "Understands fractions"}],
            "workingTime": {"hours": 2, "minutes": 30},
            "workingTimeDesign": {"hours": 1, "minutes": 0},
            "classSize": 30,
            "description": "A design about fractions",
            "priorKnowledge": "Integers",
            "objetive": "Add fractions",
            "evaluation": "Quiz",
            "evaluationPattern": "Rubric"
        },
        "data": {
            "learningActivities": [
                {
                    "id": f"activity-{a}",
                    "title": f"Activity {a}",
                    "tasks": [
                        {"id": f"task-{a}-{t}", "description": f"Task {t}"}
                        for t in range(tasks_per_activity)
                    ]
                }
                for a in range(activities)
            ]
        },
        "comments": [{"text": "Nice"}],
        "assessments": [{"score": 5}],
        "keywords": ["fracciones", "Matemáticas"],
        "privileges": []
    }


def collect_content_ids(data: dict) -> list:
    """All activity and task ids of a content tree, in document order."""
    ids = []
    for activity in (data or {}).get("learningActivities", []):
        ids.append(activity.get("id"))
        for task in activity.get("tasks", []):
            ids.append(task.get("id"))
    return ids
