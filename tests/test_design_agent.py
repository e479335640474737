"""
Tests for the Design Lifecycle Agent

Test Coverage:
1. Creation - ownership, defaults, folder placement
2. Deletion - owner-only, refused while edited, lineage severance
3. Duplication - fresh ids and link, lineage pointer
4. Import - all-or-nothing validation, identity reset
5. Metadata edits - owner or full-access grantees only
6. Read-only links and sharing
7. Editing sessions and listings
"""

import asyncio
import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from agents import design_agent
from core.agent_base import MessageType
from core.content_tree import UNCATEGORIZED_CATEGORY_ID
from core.event_bus import EventBus, EventType
from core.privileges import FULL_ACCESS, READ_ACCESS, is_valid_link_token
from models.database import AsyncSessionLocal
from models.design import Design
from conftest import ask, collect_content_ids, create_test_design, create_test_user, exported_design

DESIGN_AGENT = "design_lifecycle_agent"


async def design_count() -> int:
    async with AsyncSessionLocal() as session:
        return await session.scalar(select(func.count()).select_from(Design))


async def store_content(design_id: str, **fields):
    """Write content straight to the database, standing in for the editor."""
    async with AsyncSessionLocal() as session:
        design = await session.get(Design, design_id)
        for name, value in fields.items():
            setattr(design, name, value)
        await session.commit()


async def session_action(broker, design_id, user_id, action):
    return await ask(broker, MessageType.DESIGN_SESSION, DESIGN_AGENT, {
        "design_id": design_id,
        "user_id": user_id,
        "action": action
    })


async def share(broker, design_id, owner_id, target_id, access_type):
    return await ask(broker, MessageType.DESIGN_SHARE, DESIGN_AGENT, {
        "design_id": design_id,
        "user_id": owner_id,
        "target_user_id": target_id,
        "access_type": access_type
    })


async def read(broker, design_id, user_id):
    return await ask(broker, MessageType.DESIGN_READ, DESIGN_AGENT, {
        "design_id": design_id,
        "user_id": user_id
    })


async def delete(broker, design_id, user_id):
    return await ask(broker, MessageType.DESIGN_DELETE, DESIGN_AGENT, {
        "design_id": design_id,
        "user_id": user_id
    })


async def duplicate(broker, design_id, user_id, path=None):
    payload = {"design_id": design_id, "user_id": user_id}
    if path is not None:
        payload["path"] = path
    return await ask(broker, MessageType.DESIGN_DUPLICATE, DESIGN_AGENT, payload)


async def update_metadata(broker, design_id, user_id, metadata=None, keywords=None):
    payload = {"design_id": design_id, "user_id": user_id, "metadata": metadata}
    if keywords is not None:
        payload["keywords"] = keywords
    return await ask(broker, MessageType.DESIGN_UPDATE_METADATA, DESIGN_AGENT, payload)


# ==============================================================================
# CREATION
# ==============================================================================

class TestDesignCreation:

    @pytest.mark.asyncio
    async def test_owner_gets_single_full_access_privilege(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")

        design = await create_test_design(broker, owner_id)

        assert design["owner"] == owner_id
        assert design["privileges"] == [{"user": owner_id, "type": FULL_ACCESS}]
        assert design["data"] == {"learningActivities": []}
        assert design["metadata"]["name"] == "New Design"
        assert design["metadata"]["category"] == UNCATEGORIZED_CATEGORY_ID
        assert design["metadata"]["isPublic"] is False
        assert is_valid_link_token(design["readOnlyLink"])
        assert design["origin"] is None

    @pytest.mark.asyncio
    async def test_create_in_missing_folder(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")

        response = await ask(broker, MessageType.DESIGN_CREATE, DESIGN_AGENT, {
            "user_id": owner_id,
            "path": "/does/not/exist"
        })

        assert response.type == MessageType.ERROR
        assert response.payload["error_type"] == "not_found"
        assert await design_count() == 0

    @pytest.mark.asyncio
    async def test_create_in_subfolder(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        folder = await ask(broker, MessageType.FOLDER_CREATE, "folder_agent", {
            "user_id": owner_id,
            "path": "/math"
        })

        design = await create_test_design(broker, owner_id, path="/math/")

        assert design["folder"] == folder.payload["folder"]["id"]

    @pytest.mark.asyncio
    async def test_malformed_user_id(self, all_agents):
        response = await ask(all_agents["broker"], MessageType.DESIGN_CREATE, DESIGN_AGENT, {
            "user_id": "not-a-uuid",
            "path": "/"
        })

        assert response.payload["error_type"] == "invalid_input"


# ==============================================================================
# DELETION
# ==============================================================================

class TestDesignDeletion:

    @pytest.mark.asyncio
    async def test_delete_refused_while_edited_then_allowed(self, all_agents):
        """
        SCENARIO: the owner deletes a design somebody is editing
        GIVEN: a design in "/" and user A in its editing session
        WHEN: the owner deletes it
        THEN: Conflict; after A leaves the delete succeeds and the design is gone
        """
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        editor_id = await create_test_user(broker, "editor")
        design = await create_test_design(broker, owner_id)
        await share(broker, design["id"], owner_id, editor_id, FULL_ACCESS)

        joined = await session_action(broker, design["id"], editor_id, "join")
        assert joined.payload["active_editors"] == [editor_id]

        refused = await delete(broker, design["id"], owner_id)
        assert refused.payload["error_type"] == "conflict"
        still_there = await read(broker, design["id"], owner_id)
        assert still_there.payload["success"] is True
        assert still_there.payload["design"]["privileges"] == [
            {"user": owner_id, "type": FULL_ACCESS},
            {"user": editor_id, "type": FULL_ACCESS},
        ]

        await session_action(broker, design["id"], editor_id, "leave")
        deleted = await delete(broker, design["id"], owner_id)
        assert deleted.payload["success"] is True

        gone = await read(broker, design["id"], owner_id)
        assert gone.payload["error_type"] == "not_found"

    @pytest.mark.asyncio
    async def test_shared_full_access_cannot_delete(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        editor_id = await create_test_user(broker, "editor")
        design = await create_test_design(broker, owner_id)
        await share(broker, design["id"], owner_id, editor_id, FULL_ACCESS)

        response = await delete(broker, design["id"], editor_id)

        assert response.payload["error_type"] == "unauthorized"
        assert await design_count() == 1

    @pytest.mark.asyncio
    async def test_delete_missing_design(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")

        response = await delete(broker, str(uuid.uuid4()), owner_id)

        assert response.payload["error_type"] == "not_found"

    @pytest.mark.asyncio
    async def test_delete_leaves_no_registry_state(self, all_agents):
        broker = all_agents["broker"]
        registry = all_agents["registry"]
        owner_id = await create_test_user(broker, "owner")
        design = await create_test_design(broker, owner_id)

        await delete(broker, design["id"], owner_id)

        assert registry.get_stats() == {"active_designs": 0, "total_editors": 0, "pending_deletes": 0}
        rejoin = await session_action(broker, design["id"], owner_id, "join")
        assert rejoin.payload["error_type"] == "not_found"

    @pytest.mark.asyncio
    async def test_join_refused_while_delete_in_flight(self, all_agents):
        broker = all_agents["broker"]
        registry = all_agents["registry"]
        owner_id = await create_test_user(broker, "owner")
        design = await create_test_design(broker, owner_id)

        assert registry.reserve_for_delete(design["id"])
        try:
            response = await session_action(broker, design["id"], owner_id, "join")
        finally:
            registry.release_delete(design["id"])

        assert response.payload["error_type"] == "conflict"

    @pytest.mark.asyncio
    async def test_deleting_origin_detaches_duplicates(self, all_agents):
        """
        SCENARIO: design X duplicated to Y, then X deleted
        THEN: Y is still fetchable and has no origin
        """
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        other_id = await create_test_user(broker, "other")
        origin = await create_test_design(broker, owner_id, is_public=True)

        copies = [
            (await duplicate(broker, origin["id"], owner_id)).payload["design"],
            (await duplicate(broker, origin["id"], other_id)).payload["design"],
        ]
        assert all(c["origin"] == origin["id"] for c in copies)
        before = await read(broker, origin["id"], owner_id)
        assert sorted(before.payload["duplicates"]) == sorted(c["id"] for c in copies)

        response = await delete(broker, origin["id"], owner_id)
        assert response.payload["detached_duplicates"] == 2

        for copy, reader in zip(copies, [owner_id, other_id]):
            fetched = await read(broker, copy["id"], reader)
            assert fetched.payload["success"] is True
            assert fetched.payload["design"]["origin"] is None

    @pytest.mark.asyncio
    async def test_failed_lineage_update_fails_the_whole_delete(self, all_agents, monkeypatch):
        """
        SCENARIO: the storage layer fails while detaching duplicates
        THEN: the delete reports a generic storage failure and nothing changes
        """
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        origin = await create_test_design(broker, owner_id)
        copy = (await duplicate(broker, origin["id"], owner_id)).payload["design"]

        async def failing_sever_lineage(session, design_id):
            raise OperationalError("UPDATE designs SET origin_id=NULL", {}, Exception("disk I/O error"))

        monkeypatch.setattr(design_agent, "sever_lineage", failing_sever_lineage)
        response = await delete(broker, origin["id"], owner_id)
        monkeypatch.undo()

        assert response.type == MessageType.ERROR
        assert response.payload == {
            "success": False,
            "error": "Storage failure, please contact the administrator",
            "error_type": "storage_failure"
        }
        assert (await read(broker, origin["id"], owner_id)).payload["success"] is True
        assert (await read(broker, copy["id"], owner_id)).payload["design"]["origin"] == origin["id"]

        rejoin = await session_action(broker, origin["id"], owner_id, "join")
        assert rejoin.payload["success"] is True
        assert all_agents["registry"].get_stats()["pending_deletes"] == 0

    @pytest.mark.asyncio
    async def test_concurrent_join_and_delete(self, all_agents):
        """Either the join or the delete wins; never both."""
        broker = all_agents["broker"]
        registry = all_agents["registry"]
        owner_id = await create_test_user(broker, "owner")
        design = await create_test_design(broker, owner_id)

        joined, deleted = await asyncio.gather(
            session_action(broker, design["id"], owner_id, "join"),
            delete(broker, design["id"], owner_id)
        )

        assert joined.payload["success"] != deleted.payload["success"]
        if deleted.payload["success"]:
            assert not registry.is_actively_edited(design["id"])
        else:
            assert deleted.payload["error_type"] == "conflict"


# ==============================================================================
# METADATA EDITS
# ==============================================================================

class TestMetadataUpdate:

    @pytest.mark.asyncio
    async def test_full_access_grantee_can_edit_reader_cannot(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        editor_id = await create_test_user(broker, "editor")
        reader_id = await create_test_user(broker, "reader")
        design = await create_test_design(broker, owner_id)
        await share(broker, design["id"], owner_id, editor_id, FULL_ACCESS)
        await share(broker, design["id"], owner_id, reader_id, READ_ACCESS)

        edited = await update_metadata(broker, design["id"], editor_id, metadata={
            "name": "Fractions", "objetive": "Add fractions", "isPublic": True
        }, keywords=["math", " "])
        refused = await update_metadata(broker, design["id"], reader_id, metadata={"name": "Mine"})

        assert edited.payload["success"] is True
        metadata = edited.payload["design"]["metadata"]
        assert metadata["name"] == "Fractions"
        assert metadata["objective"] == "Add fractions"
        assert "objetive" not in metadata
        assert metadata["isPublic"] is True
        assert metadata["scoreMean"] == 0
        assert edited.payload["design"]["keywords"] == ["math"]
        assert refused.payload["error_type"] == "unauthorized"

        stored = await read(broker, design["id"], owner_id)
        assert stored.payload["design"]["metadata"]["name"] == "Fractions"

        [event] = EventBus().get_history(event_type=EventType.DESIGN_UPDATED)
        assert event.design_id == design["id"]
        assert event.data["fields"] == ["isPublic", "name", "objetive", "keywords"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("changes", [
        {"scoreMean": 5},
        {"isPublic": "yes"},
        {"name": "  "},
        {"color": "red"},
        {},
    ])
    async def test_invalid_edits_change_nothing(self, all_agents, changes):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        design = await create_test_design(broker, owner_id)
        before = await read(broker, design["id"], owner_id)

        response = await update_metadata(broker, design["id"], owner_id, metadata=changes)

        assert response.payload["error_type"] == "invalid_input"
        after = await read(broker, design["id"], owner_id)
        assert after.payload["design"]["metadata"] == before.payload["design"]["metadata"]

    @pytest.mark.asyncio
    async def test_category_must_exist(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        design = await create_test_design(broker, owner_id)

        missing = await update_metadata(broker, design["id"], owner_id, metadata={"category": "no-such-category"})
        populated = await update_metadata(broker, design["id"], owner_id, metadata={
            "category": {"_id": UNCATEGORIZED_CATEGORY_ID, "name": "Uncategorized"}
        })

        assert missing.payload["error_type"] == "not_found"
        assert populated.payload["design"]["metadata"]["category"]["id"] == UNCATEGORIZED_CATEGORY_ID

    @pytest.mark.asyncio
    async def test_edit_missing_design(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")

        response = await update_metadata(broker, str(uuid.uuid4()), owner_id, metadata={"name": "x"})

        assert response.payload["error_type"] == "not_found"


# ==============================================================================
# DUPLICATION
# ==============================================================================

class TestDesignDuplication:

    @pytest.mark.asyncio
    async def test_duplicate_regenerates_ids_and_copies_content(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        source = await create_test_design(broker, owner_id)
        content = exported_design(name="Fractions")
        await store_content(
            source["id"],
            data=content["data"],
            design_metadata={**source["metadata"], "name": "Fractions", "scoreMean": 4.2, "isPublic": True},
            keywords=["math"],
            comments=[{"text": "Great"}]
        )

        response = await duplicate(broker, source["id"], owner_id)
        copy = response.payload["design"]

        old_ids = collect_content_ids(content["data"])
        new_ids = collect_content_ids(copy["data"])
        assert len(new_ids) == len(old_ids)
        assert not set(old_ids) & set(new_ids)
        assert copy["data"]["learningActivities"][0]["title"] == "Activity 0"

        assert copy["id"] != source["id"]
        assert copy["readOnlyLink"] != source["readOnlyLink"]
        assert copy["origin"] == source["id"]
        assert copy["metadata"]["name"] == "Fractions (Duplicate)"
        assert copy["metadata"]["isPublic"] is False
        assert copy["metadata"]["scoreMean"] == 0
        assert copy["keywords"] == ["math"]
        assert copy["comments"] == []
        assert copy["assessments"] == []
        assert copy["privileges"] == [{"user": owner_id, "type": FULL_ACCESS}]

    @pytest.mark.asyncio
    async def test_duplicate_of_public_design_by_another_user(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        other_id = await create_test_user(broker, "other")
        source = await create_test_design(broker, owner_id, is_public=True)

        response = await duplicate(broker, source["id"], other_id)

        copy = response.payload["design"]
        assert copy["owner"] == other_id
        assert copy["privileges"] == [{"user": other_id, "type": FULL_ACCESS}]

    @pytest.mark.asyncio
    async def test_private_design_cannot_be_duplicated_by_strangers(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        other_id = await create_test_user(broker, "other")
        source = await create_test_design(broker, owner_id)

        response = await duplicate(broker, source["id"], other_id)

        assert response.payload["error_type"] == "unauthorized"
        assert await design_count() == 1

    @pytest.mark.asyncio
    async def test_duplicate_into_missing_folder(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        source = await create_test_design(broker, owner_id)

        response = await duplicate(broker, source["id"], owner_id, path="/nowhere")

        assert response.payload["error_type"] == "not_found"


# ==============================================================================
# IMPORT
# ==============================================================================

class TestDesignImport:

    async def _import(self, broker, user_id, design, filename="design.json", path="/"):
        return await ask(broker, MessageType.DESIGN_IMPORT, DESIGN_AGENT, {
            "user_id": user_id,
            "filename": filename,
            "path": path,
            "design": design
        })

    @pytest.mark.asyncio
    async def test_import_resets_identity(self, all_agents):
        broker = all_agents["broker"]
        user_id = await create_test_user(broker, "importer")
        payload = exported_design(name="Fractions")

        response = await self._import(broker, user_id, payload)

        assert response.payload["success"] is True
        design = response.payload["design"]
        assert design["owner"] == user_id
        assert design["metadata"]["isPublic"] is False
        assert design["metadata"]["category"] == UNCATEGORIZED_CATEGORY_ID
        assert design["metadata"]["objective"] == "Add fractions"
        assert "objetive" not in design["metadata"]
        assert design["comments"] == []
        assert design["assessments"] == []
        assert design["origin"] is None
        assert design["privileges"] == [{"user": user_id, "type": FULL_ACCESS}]
        assert not set(collect_content_ids(payload["data"])) & set(collect_content_ids(design["data"]))

    @pytest.mark.asyncio
    async def test_import_missing_metadata_field_creates_nothing(self, all_agents):
        broker = all_agents["broker"]
        user_id = await create_test_user(broker, "importer")
        before = await design_count()
        payload = exported_design()
        del payload["metadata"]["evaluationPattern"]

        response = await self._import(broker, user_id, payload)

        assert response.payload["error_type"] == "corrupt_payload"
        assert "design.json" in response.payload["error"]
        assert await design_count() == before

    @pytest.mark.asyncio
    async def test_import_without_filename(self, all_agents):
        broker = all_agents["broker"]
        user_id = await create_test_user(broker, "importer")

        response = await self._import(broker, user_id, exported_design(), filename=None)

        assert response.payload["error_type"] == "invalid_input"

    @pytest.mark.asyncio
    async def test_import_into_missing_folder(self, all_agents):
        broker = all_agents["broker"]
        user_id = await create_test_user(broker, "importer")

        response = await self._import(broker, user_id, exported_design(), path="/missing")

        assert response.payload["error_type"] == "not_found"
        assert await design_count() == 0

    @pytest.mark.asyncio
    async def test_import_keeps_known_privileges_only(self, all_agents):
        broker = all_agents["broker"]
        user_id = await create_test_user(broker, "importer")
        reader_id = await create_test_user(broker, "reader")
        payload = exported_design()
        payload["privileges"] = [
            {"user": reader_id, "type": READ_ACCESS},
            {"user": {"_id": reader_id}, "type": FULL_ACCESS},
            {"user": str(uuid.uuid4()), "type": FULL_ACCESS},
            {"user": user_id, "type": READ_ACCESS},
        ]

        response = await self._import(broker, user_id, payload)

        assert response.payload["design"]["privileges"] == [
            {"user": reader_id, "type": READ_ACCESS},
            {"user": user_id, "type": FULL_ACCESS},
        ]


# ==============================================================================
# LINKS, SHARING, SESSIONS
# ==============================================================================

class TestLinksAndSharing:

    @pytest.mark.asyncio
    async def test_link_gives_read_access_to_anyone(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner", name="Ana", lastname="García")
        origin = await create_test_design(broker, owner_id)
        copy = (await duplicate(broker, origin["id"], owner_id)).payload["design"]

        response = await ask(broker, MessageType.DESIGN_GET_BY_LINK, DESIGN_AGENT, {"link": copy["readOnlyLink"]})

        design = response.payload["design"]
        assert design["id"] == copy["id"]
        assert design["owner"]["name"] == "Ana"
        assert design["origin"]["id"] == origin["id"]
        assert design["origin"]["name"] == "New Design"

    @pytest.mark.asyncio
    async def test_unknown_and_malformed_links(self, all_agents):
        broker = all_agents["broker"]

        unknown = await ask(broker, MessageType.DESIGN_GET_BY_LINK, DESIGN_AGENT, {"link": str(uuid.uuid4())})
        malformed = await ask(broker, MessageType.DESIGN_GET_BY_LINK, DESIGN_AGENT, {"link": "abc"})
        empty = await ask(broker, MessageType.DESIGN_GET_BY_LINK, DESIGN_AGENT, {"link": ""})

        assert unknown.payload["error_type"] == "not_found"
        assert malformed.payload["error_type"] == "invalid_input"
        assert empty.payload["error_type"] == "invalid_input"

    @pytest.mark.asyncio
    async def test_reshare_replaces_entry(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        other_id = await create_test_user(broker, "other")
        design = await create_test_design(broker, owner_id)

        await share(broker, design["id"], owner_id, other_id, READ_ACCESS)
        response = await share(broker, design["id"], owner_id, other_id, FULL_ACCESS)

        assert response.payload["privileges"] == [
            {"user": owner_id, "type": FULL_ACCESS},
            {"user": other_id, "type": FULL_ACCESS},
        ]

    @pytest.mark.asyncio
    async def test_only_owner_can_share(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        editor_id = await create_test_user(broker, "editor")
        third_id = await create_test_user(broker, "third")
        design = await create_test_design(broker, owner_id)
        await share(broker, design["id"], owner_id, editor_id, FULL_ACCESS)

        by_editor = await share(broker, design["id"], editor_id, third_id, FULL_ACCESS)
        on_owner = await share(broker, design["id"], owner_id, owner_id, READ_ACCESS)

        assert by_editor.payload["error_type"] == "unauthorized"
        assert on_owner.payload["error_type"] == "invalid_input"

    @pytest.mark.asyncio
    async def test_reader_cannot_join_editing_session(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        reader_id = await create_test_user(broker, "reader")
        design = await create_test_design(broker, owner_id)
        await share(broker, design["id"], owner_id, reader_id, READ_ACCESS)

        response = await session_action(broker, design["id"], reader_id, "join")

        assert response.payload["error_type"] == "unauthorized"
        assert not all_agents["registry"].is_actively_edited(design["id"])

    @pytest.mark.asyncio
    async def test_private_design_read(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        other_id = await create_test_user(broker, "other")
        design = await create_test_design(broker, owner_id)

        response = await read(broker, design["id"], other_id)

        assert response.payload["error_type"] == "unauthorized"


# ==============================================================================
# LISTINGS
# ==============================================================================

class TestListings:

    @pytest.mark.asyncio
    async def test_folder_listing_is_paginated(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        for _ in range(5):
            await create_test_design(broker, owner_id)

        response = await ask(broker, MessageType.DESIGN_LIST_BY_FOLDER, DESIGN_AGENT, {
            "user_id": owner_id,
            "path": "/",
            "from": 2,
            "limit": 2
        })

        assert response.payload["total"] == 5
        assert response.payload["n_pages"] == 3
        assert response.payload["from"] == 4
        assert len(response.payload["designs"]) == 2
        assert "data" not in response.payload["designs"][0]

    @pytest.mark.asyncio
    async def test_recent_shared_and_public_listings(self, all_agents):
        broker = all_agents["broker"]
        owner_id = await create_test_user(broker, "owner")
        other_id = await create_test_user(broker, "other")
        for _ in range(6):
            await create_test_design(broker, owner_id)
        public = await create_test_design(broker, owner_id, is_public=True)
        await share(broker, public["id"], owner_id, other_id, READ_ACCESS)

        recent = await ask(broker, MessageType.DESIGN_RECENT, DESIGN_AGENT, {"user_id": owner_id})
        shared = await ask(broker, MessageType.DESIGN_LIST_SHARED, DESIGN_AGENT, {"user_id": other_id})
        public_list = await ask(broker, MessageType.DESIGN_LIST_PUBLIC_BY_USER, DESIGN_AGENT, {"owner_id": owner_id})
        other_recent = await ask(broker, MessageType.DESIGN_RECENT, DESIGN_AGENT, {"user_id": other_id})

        assert len(recent.payload["designs"]) == 5
        assert [d["id"] for d in shared.payload["designs"]] == [public["id"]]
        assert [d["id"] for d in public_list.payload["designs"]] == [public["id"]]
        assert other_recent.payload["designs"] == []

    @pytest.mark.asyncio
    async def test_public_listing_of_unknown_user(self, all_agents):
        response = await ask(all_agents["broker"], MessageType.DESIGN_LIST_PUBLIC_BY_USER, DESIGN_AGENT, {
            "owner_id": str(uuid.uuid4())
        })

        assert response.payload["error_type"] == "not_found"
