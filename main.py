"""
Main Application Entry Point

Learning Design Service - agent-based backend for creating, sharing,
duplicating, importing and searching learning designs.

Startup wires everything together:

1. Initialize the database (tables + the "uncategorized" category)
2. Create the one ActiveSessionRegistry for this process
3. Create the agents and register them with the MessageBroker
4. Start the agents and the WebSocketManager

Request flow:
    REST route / WebSocket message
        -> MessageBroker -> agent handler
        -> privilege check -> mutation -> registry / lineage side effects
        -> EventBus -> WebSocket broadcast
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, Query
from fastapi.middleware.cors import CORSMiddleware

from agents import DesignLifecycleAgent, FolderAgent, SearchAgent, UserManagementAgent
from agents.user_agent import verify_token
from api.routes import router
from api.websocket import websocket_endpoint, WebSocketManager
from core.message_broker import MessageBroker
from core.session_registry import ActiveSessionRegistry
from models.database import init_db

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the agents on startup and stop them on shutdown."""
    logger.info("Starting Learning Design Service...")

    await init_db()

    registry = ActiveSessionRegistry()
    app.state.session_registry = registry

    message_broker = MessageBroker()
    for agent in [
        UserManagementAgent(),
        FolderAgent(),
        DesignLifecycleAgent(registry),
        SearchAgent()
    ]:
        message_broker.register_agent(agent)

    await message_broker.start_all_agents()
    WebSocketManager()

    logger.info("Learning Design Service is ready")

    yield

    logger.info("Shutting down Learning Design Service...")
    await message_broker.stop_all_agents()
    logger.info("Shutdown complete.")


app = FastAPI(
    title="Learning Design Service",
    description="""
    Agent-based backend for learning designs.

    ## Features
    - Designs: create, delete, duplicate, import, share, read-only links
    - Live editing sessions: a design cannot be deleted while it is edited
    - Search: public designs by keyword, category and free text
    """,
    version="1.0.0",
    lifespan=lifespan
)

allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:8000").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")


@app.websocket("/ws")
async def websocket_route(websocket: WebSocket, token: str = Query(...)):
    """
    Live editing sessions, authenticated by a bearer token in the query string.

    Example: ws://localhost:8000/ws?token=<jwt>
    """
    payload = verify_token(token)
    if not payload:
        await websocket.close(code=4001, reason="Invalid token")
        return

    await websocket_endpoint(websocket, payload["sub"])


@app.get("/")
async def root():
    return {"message": "Learning Design Service API", "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
