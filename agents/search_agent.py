"""
Search Agent - Ranked Search over Public Designs

Only public designs are ever returned. A request combines:

1. Categories - the design's category is one of the selected ids
2. Keywords   - every requested keyword appears (as a substring) in at least
                one of the design's keywords
3. Free text  - any whitespace-separated token appears in the owner's name,
                the owner's lastname or the design name

Text comparisons are accent- and case-insensitive (see core.text). The
public flag and the categories are filtered in SQL; keywords and free text
need the normalization and are applied to the SQL result. Results are
ordered by scoreMean, then most recently updated, and paginated with
from/limit.
"""

from typing import Any, Dict, List
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import defer

from agents.design_agent import page_count, page_params, populate
from core import text
from core.agent_base import Agent, AgentMessage, MessageType
from core.content_tree import reference_id
from core.errors import InvalidInputError
from models.database import get_session
from models.design import Design
from models.user import User

logger = logging.getLogger(__name__)


def matches_keywords(stored: List[str], requested: List[str]) -> bool:
    return all(text.any_contains(stored, keyword) for keyword in requested)


def matches_free_text(values: List[str], tokens: List[str]) -> bool:
    if not tokens:
        return True
    return any(text.any_contains(values, token) for token in tokens)


def public_designs_query(category_ids: List[str]):
    """
    Public designs with their owner's names, best scored first.

    The content columns are deferred: matching only needs metadata and
    keywords, and results are listed without content.
    """
    query = (
        select(Design, User.name, User.lastname)
        .join(User, User.id == Design.owner_id)
        .options(defer(Design.data), defer(Design.comments), defer(Design.assessments))
        .where(Design.design_metadata["isPublic"].as_boolean() == True)
    )
    if category_ids:
        query = query.where(Design.design_metadata["category"].as_string().in_(category_ids))
    return query.order_by(
        Design.design_metadata["scoreMean"].as_float().desc(),
        Design.updated_at.desc()
    )


class SearchAgent(Agent):

    def __init__(self):
        super().__init__(
            agent_id="search_agent",
            name="Search Agent"
        )

        self.register_handler(MessageType.DESIGN_SEARCH, self._handle_search)

    def get_capabilities(self) -> List[MessageType]:
        return [MessageType.DESIGN_SEARCH]

    async def on_start(self):
        logger.info(f"{self.name} started and ready")

    async def on_stop(self):
        logger.info(f"{self.name} stopping")

    async def _handle_search(self, message: AgentMessage) -> AgentMessage:
        payload = message.payload
        offset, limit = page_params(payload)

        keywords = payload.get("keywords") or []
        categories = payload.get("categories") or []
        if not isinstance(keywords, list) or not isinstance(categories, list):
            raise InvalidInputError("keywords and categories must be lists")
        keywords = [str(k) for k in keywords if str(k).strip()]
        category_ids = [c for c in (reference_id(c) for c in categories) if c]
        tokens = text.tokenize(payload.get("filter"))

        session: AsyncSession = await get_session()
        try:
            result = await session.execute(public_designs_query(category_ids))
            matched = [
                design
                for design, owner_name, owner_lastname in result.all()
                if matches_keywords(design.keywords or [], keywords)
                and matches_free_text([owner_name, owner_lastname, design.name], tokens)
            ]

            total = len(matched)
            page = matched[offset:offset + limit]
            logger.debug(f"Search matched {total} public design(s)")

            response: Dict[str, Any] = {
                "success": True,
                "from": offset + limit,
                "n_pages": page_count(total, limit),
                "total": total,
                "designs": await populate(session, page)
            }
            return message.create_response(response)
        finally:
            await session.close()
