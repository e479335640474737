"""
API Routes - FastAPI REST Endpoints

The REST layer is a gateway in front of the agents. Every route:

1. Validates the request body (Pydantic schemas)
2. Resolves the caller from the bearer token (verification only; tokens are
   issued by the external identity provider)
3. Sends an AgentMessage through the MessageBroker
4. Maps the response to HTTP: typed agent errors carry an ``error_type``
   that decides the status code (see core.errors)

Resources:
- /users    registration and profiles
- /folders  folder creation
- /designs  lifecycle, sharing, listings and search
"""

from fastapi import APIRouter, HTTPException, Depends, Query, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel, EmailStr, Field
from typing import Any, Dict, List, Optional, Union
import logging

from agents.user_agent import verify_token
from core.agent_base import MessageType
from core.errors import HTTP_STATUS_BY_ERROR_TYPE
from core.message_broker import MessageBroker

logger = logging.getLogger(__name__)

router = APIRouter()

security = HTTPBearer(auto_error=False)

USER_AGENT = "user_management_agent"
FOLDER_AGENT = "folder_agent"
DESIGN_AGENT = "design_lifecycle_agent"
SEARCH_AGENT = "search_agent"


# ==================== PYDANTIC SCHEMAS ====================

class UserRegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: Optional[str] = None
    lastname: Optional[str] = None
    occupation: Optional[str] = None
    img: Optional[str] = None


class FolderCreateRequest(BaseModel):
    path: str = Field(..., min_length=1)


class DesignCreateRequest(BaseModel):
    path: str = "/"
    is_public: bool = False


class DesignUpdateRequest(BaseModel):
    """Metadata fields to change and/or the new keyword list."""
    metadata: Optional[Dict[str, Any]] = None
    keywords: Optional[List[str]] = None


class DuplicateRequest(BaseModel):
    """Target folder of the copy; the requester's root folder by default."""
    path: str = "/"


class ImportRequest(BaseModel):
    """
    An exported design as read from a file.

    ``design`` stays a raw mapping; the lifecycle agent validates its
    structure before any write.
    """
    filename: Optional[str] = None
    path: Optional[str] = None
    design: Optional[Dict[str, Any]] = None


class ShareRequest(BaseModel):
    user_id: str
    access_type: int = Field(default=1, ge=0, le=1)


class SessionRequest(BaseModel):
    action: str = Field(..., pattern="^(join|leave)$")


class SearchRequest(BaseModel):
    filter: str = ""
    keywords: List[str] = []
    categories: List[Union[str, Dict[str, Any]]] = []
    offset: int = Field(default=0, ge=0, alias="from")
    limit: int = Field(default=12, ge=1, le=100)


# ==================== HELPER FUNCTIONS ====================

def get_broker() -> MessageBroker:
    return MessageBroker()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Optional[dict]:
    """
    Resolve the caller from the Authorization header.

    Returns None for anonymous requests; routes that need a user depend on
    require_auth instead.
    """
    if not credentials:
        return None

    payload = verify_token(credentials.credentials)
    if payload:
        return {"user_id": payload["sub"]}
    return None


def require_auth(user: Optional[dict] = Depends(get_current_user)) -> dict:
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"}
        )
    return user


async def call_agent(message_type: MessageType, recipient: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Send a request to an agent and return its payload.

    A timeout is a 504; an error response is raised as HTTPException with the
    status that matches its error_type.
    """
    response = await get_broker().ask(message_type, recipient, payload)

    if response is None:
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail="Request timeout")

    if response.type == MessageType.ERROR or not response.payload.get("success"):
        error_type = response.payload.get("error_type", "storage_failure")
        raise HTTPException(
            status_code=HTTP_STATUS_BY_ERROR_TYPE.get(error_type, 500),
            detail={
                "error": response.payload.get("error", "Request failed"),
                "error_type": error_type
            }
        )

    return response.payload


# ==================== USER ROUTES ====================

@router.post("/users/register", tags=["Users"], status_code=status.HTTP_201_CREATED)
async def register_user(request: UserRegisterRequest):
    """Register a user; their root folder "/" is created with the account."""
    return await call_agent(MessageType.USER_REGISTER, USER_AGENT, request.model_dump())


@router.get("/users/me", tags=["Users"])
async def get_current_user_profile(user: dict = Depends(require_auth)):
    return await call_agent(MessageType.USER_GET_PROFILE, USER_AGENT, {
        "user_id": user["user_id"],
        "requesting_user_id": user["user_id"]
    })


@router.get("/users/{user_id}", tags=["Users"])
async def get_user_profile(user_id: str, user: Optional[dict] = Depends(get_current_user)):
    return await call_agent(MessageType.USER_GET_PROFILE, USER_AGENT, {
        "user_id": user_id,
        "requesting_user_id": user["user_id"] if user else None
    })


@router.get("/users/{user_id}/designs/public", tags=["Designs"])
async def list_public_designs_of_user(
    user_id: str,
    offset: int = Query(default=0, ge=0, alias="from"),
    limit: int = Query(default=12, ge=1, le=100)
):
    """Public designs of one user, newest first."""
    return await call_agent(MessageType.DESIGN_LIST_PUBLIC_BY_USER, DESIGN_AGENT, {
        "owner_id": user_id,
        "from": offset,
        "limit": limit
    })


# ==================== FOLDER ROUTES ====================

@router.post("/folders", tags=["Folders"], status_code=status.HTTP_201_CREATED)
async def create_folder(request: FolderCreateRequest, user: dict = Depends(require_auth)):
    return await call_agent(MessageType.FOLDER_CREATE, FOLDER_AGENT, {
        "user_id": user["user_id"],
        "path": request.path
    })


@router.get("/folders/designs", tags=["Folders"])
async def list_designs_in_folder(
    path: str = "/",
    offset: int = Query(default=0, ge=0, alias="from"),
    limit: int = Query(default=12, ge=1, le=100),
    user: dict = Depends(require_auth)
):
    return await call_agent(MessageType.DESIGN_LIST_BY_FOLDER, DESIGN_AGENT, {
        "user_id": user["user_id"],
        "path": path,
        "from": offset,
        "limit": limit
    })


# ==================== DESIGN ROUTES ====================

@router.post("/designs", tags=["Designs"], status_code=status.HTTP_201_CREATED)
async def create_design(request: DesignCreateRequest, user: dict = Depends(require_auth)):
    return await call_agent(MessageType.DESIGN_CREATE, DESIGN_AGENT, {
        "user_id": user["user_id"],
        "path": request.path,
        "is_public": request.is_public
    })


@router.post("/designs/import", tags=["Designs"], status_code=status.HTTP_201_CREATED)
async def import_design(request: ImportRequest, user: dict = Depends(require_auth)):
    """
    Import an exported design.

    Returns 422 (corrupt_payload) when the file is missing required parts; in
    that case nothing has been stored.
    """
    return await call_agent(MessageType.DESIGN_IMPORT, DESIGN_AGENT, {
        "user_id": user["user_id"],
        "filename": request.filename,
        "path": request.path,
        "design": request.design
    })


@router.post("/designs/search", tags=["Designs"])
async def search_designs(request: SearchRequest):
    """Search public designs; no authentication needed."""
    return await call_agent(MessageType.DESIGN_SEARCH, SEARCH_AGENT, {
        "filter": request.filter,
        "keywords": request.keywords,
        "categories": request.categories,
        "from": request.offset,
        "limit": request.limit
    })


@router.get("/designs/recent", tags=["Designs"])
async def recent_designs(user: dict = Depends(require_auth)):
    return await call_agent(MessageType.DESIGN_RECENT, DESIGN_AGENT, {"user_id": user["user_id"]})


@router.get("/designs/shared", tags=["Designs"])
async def shared_designs(
    offset: int = Query(default=0, ge=0, alias="from"),
    limit: int = Query(default=12, ge=1, le=100),
    user: dict = Depends(require_auth)
):
    """Designs other users have shared with the caller."""
    return await call_agent(MessageType.DESIGN_LIST_SHARED, DESIGN_AGENT, {
        "user_id": user["user_id"],
        "from": offset,
        "limit": limit
    })


@router.get("/designs/link/{link}", tags=["Designs"])
async def get_design_by_link(link: str):
    """Read-only access through a share link; no authentication needed."""
    return await call_agent(MessageType.DESIGN_GET_BY_LINK, DESIGN_AGENT, {"link": link})


@router.get("/designs/{design_id}", tags=["Designs"])
async def get_design(design_id: str, user: Optional[dict] = Depends(get_current_user)):
    return await call_agent(MessageType.DESIGN_READ, DESIGN_AGENT, {
        "design_id": design_id,
        "user_id": user["user_id"] if user else None
    })


@router.patch("/designs/{design_id}", tags=["Designs"])
async def update_design_metadata(design_id: str, request: DesignUpdateRequest, user: dict = Depends(require_auth)):
    return await call_agent(MessageType.DESIGN_UPDATE_METADATA, DESIGN_AGENT, {
        "design_id": design_id,
        "user_id": user["user_id"],
        "metadata": request.metadata,
        "keywords": request.keywords
    })


@router.delete("/designs/{design_id}", tags=["Designs"])
async def delete_design(design_id: str, user: dict = Depends(require_auth)):
    """
    Delete a design (owner only).

    Answers 409 while anyone is editing the design. Duplicates of the design
    stay and lose their origin reference.
    """
    return await call_agent(MessageType.DESIGN_DELETE, DESIGN_AGENT, {
        "design_id": design_id,
        "user_id": user["user_id"]
    })


@router.post("/designs/{design_id}/duplicate", tags=["Designs"], status_code=status.HTTP_201_CREATED)
async def duplicate_design(design_id: str, request: DuplicateRequest, user: dict = Depends(require_auth)):
    return await call_agent(MessageType.DESIGN_DUPLICATE, DESIGN_AGENT, {
        "design_id": design_id,
        "user_id": user["user_id"],
        "path": request.path
    })


@router.post("/designs/{design_id}/share", tags=["Designs"])
async def share_design(design_id: str, request: ShareRequest, user: dict = Depends(require_auth)):
    return await call_agent(MessageType.DESIGN_SHARE, DESIGN_AGENT, {
        "design_id": design_id,
        "user_id": user["user_id"],
        "target_user_id": request.user_id,
        "access_type": request.access_type
    })


@router.post("/designs/{design_id}/session", tags=["Designs"])
async def design_session(design_id: str, request: SessionRequest, user: dict = Depends(require_auth)):
    """
    Join or leave a design's editing session over REST.

    The WebSocket endpoint does the same and also leaves automatically on
    disconnect, so interactive clients should prefer it.
    """
    return await call_agent(MessageType.DESIGN_SESSION, DESIGN_AGENT, {
        "design_id": design_id,
        "user_id": user["user_id"],
        "action": request.action
    })


# ==================== SYSTEM ROUTES ====================

@router.get("/health", tags=["System"])
async def health_check():
    broker = get_broker()
    return {
        "status": "healthy",
        "broker_stats": broker.get_stats()
    }
