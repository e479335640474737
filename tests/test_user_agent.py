"""
Tests for the User Management and Folder agents

Registration also creates the root folder "/", which is where designs are
created and duplicated by default.
"""

import pytest
from jose import jwt

from agents.user_agent import ALGORITHM, SECRET_KEY, verify_token
from core.agent_base import MessageType
from conftest import ask, create_test_user

USER_AGENT = "user_management_agent"
FOLDER_AGENT = "folder_agent"


class TestRegistration:

    @pytest.mark.asyncio
    async def test_register_creates_root_folder(self, all_agents):
        broker = all_agents["broker"]

        response = await ask(broker, MessageType.USER_REGISTER, USER_AGENT, {
            "username": "maria",
            "email": "Maria@Example.com",
            "password": "secure_password",
            "name": "María",
            "lastname": "López"
        })

        assert response.payload["success"] is True
        user = response.payload["user"]
        assert user["email"] == "maria@example.com"
        assert "password_hash" not in user
        assert response.payload["root_folder"]["path"] == "/"
        assert response.payload["root_folder"]["owner_id"] == user["id"]

    @pytest.mark.asyncio
    async def test_duplicate_username_rejected(self, all_agents):
        broker = all_agents["broker"]
        payload = {"username": "twice", "email": "twice@example.com", "password": "secure_password"}

        await ask(broker, MessageType.USER_REGISTER, USER_AGENT, payload)
        response = await ask(broker, MessageType.USER_REGISTER, USER_AGENT, payload)

        assert response.payload["error_type"] == "invalid_input"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"username": "", "email": "a@example.com", "password": "secure_password"},
        {"username": "user", "email": "not-an-email", "password": "secure_password"},
        {"username": "user", "email": "a@example.com", "password": "123"},
    ])
    async def test_invalid_registration(self, all_agents, payload):
        response = await ask(all_agents["broker"], MessageType.USER_REGISTER, USER_AGENT, payload)

        assert response.type == MessageType.ERROR
        assert response.payload["error_type"] == "invalid_input"


class TestProfile:

    @pytest.mark.asyncio
    async def test_profile_of_unknown_user(self, all_agents):
        response = await ask(all_agents["broker"], MessageType.USER_GET_PROFILE, USER_AGENT, {
            "user_id": "00000000-0000-4000-8000-000000000000"
        })

        assert response.payload["error_type"] == "not_found"

    @pytest.mark.asyncio
    async def test_email_only_visible_to_self(self, all_agents):
        broker = all_agents["broker"]
        user_id = await create_test_user(broker, "private")
        other_id = await create_test_user(broker, "other")

        own = await ask(broker, MessageType.USER_GET_PROFILE, USER_AGENT, {
            "user_id": user_id, "requesting_user_id": user_id
        })
        foreign = await ask(broker, MessageType.USER_GET_PROFILE, USER_AGENT, {
            "user_id": user_id, "requesting_user_id": other_id
        })

        assert "email" in own.payload["user"]
        assert "email" not in foreign.payload["user"]


class TestTokens:

    def test_verify_token(self):
        token = jwt.encode({"sub": "user-1"}, SECRET_KEY, algorithm=ALGORITHM)

        assert verify_token(token)["sub"] == "user-1"

    def test_token_with_wrong_key_or_no_subject(self):
        assert verify_token(jwt.encode({"sub": "user-1"}, "other-key", algorithm=ALGORITHM)) is None
        assert verify_token(jwt.encode({"name": "x"}, SECRET_KEY, algorithm=ALGORITHM)) is None
        assert verify_token("garbage") is None


class TestFolders:

    @pytest.mark.asyncio
    async def test_nested_folders(self, all_agents):
        broker = all_agents["broker"]
        user_id = await create_test_user(broker, "folders")

        parent = await ask(broker, MessageType.FOLDER_CREATE, FOLDER_AGENT, {"user_id": user_id, "path": "/units"})
        child = await ask(broker, MessageType.FOLDER_CREATE, FOLDER_AGENT, {"user_id": user_id, "path": "units//one/"})

        assert child.payload["folder"]["path"] == "/units/one"
        assert child.payload["folder"]["parent_id"] == parent.payload["folder"]["id"]

        found = await ask(broker, MessageType.FOLDER_GET, FOLDER_AGENT, {"user_id": user_id, "path": "/units/one"})
        assert found.payload["folder"]["id"] == child.payload["folder"]["id"]

    @pytest.mark.asyncio
    async def test_folder_errors(self, all_agents):
        broker = all_agents["broker"]
        user_id = await create_test_user(broker, "folders")

        orphan = await ask(broker, MessageType.FOLDER_CREATE, FOLDER_AGENT, {"user_id": user_id, "path": "/a/b"})
        root = await ask(broker, MessageType.FOLDER_CREATE, FOLDER_AGENT, {"user_id": user_id, "path": "/"})
        await ask(broker, MessageType.FOLDER_CREATE, FOLDER_AGENT, {"user_id": user_id, "path": "/a"})
        again = await ask(broker, MessageType.FOLDER_CREATE, FOLDER_AGENT, {"user_id": user_id, "path": "/a"})

        assert orphan.payload["error_type"] == "not_found"
        assert root.payload["error_type"] == "invalid_input"
        assert again.payload["error_type"] == "invalid_input"
