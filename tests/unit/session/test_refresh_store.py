"""Tests for refresh session persistence, rotation and revocation."""

import asyncio
from datetime import timedelta
from uuid import UUID, uuid4

import pytest
from pymongo.errors import AutoReconnect, ServerSelectionTimeoutError

from notekeeper.core.modules.session import service as session_service_module
from notekeeper.core.modules.session.errors import (
    RefreshTokenExpiredError,
    RefreshTokenNotFoundError,
    RefreshTokenReusedError,
)
from notekeeper.core.modules.session.models import (
    RefreshSession,
    RevokeReason,
    generate_refresh_token,
    hash_refresh_token,
    is_well_formed_refresh_token,
)
from notekeeper.errors import StoreUnavailableError


def stored_session(database, session_id: UUID) -> RefreshSession:
    [doc] = [doc for doc in database["refresh_sessions"].docs if doc["_id"] == session_id]
    return RefreshSession.model_validate(doc)


class TestTokenHelpers:
    """Tests for raw token generation and hashing."""

    def test_generated_tokens_are_well_formed_and_distinct(self):
        """Test that generated tokens match the expected format and do not repeat."""
        tokens = {generate_refresh_token() for _ in range(50)}
        assert len(tokens) == 50
        assert all(is_well_formed_refresh_token(token) for token in tokens)

    def test_hash_is_sha256_hex(self):
        """Test that tokens are hashed with SHA-256."""
        digest = hash_refresh_token("abc")
        assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    @pytest.mark.parametrize("token", ["", "short", "x" * 44, "a" * 42 + "!"])
    def test_malformed_tokens(self, token):
        """Test that tokens of the wrong length or alphabet are rejected."""
        assert not is_well_formed_refresh_token(token)


class TestIssue:
    """Tests for issuing refresh sessions."""

    @pytest.mark.asyncio
    async def test_stores_hash_not_raw_token(self, core, database):
        """Test that only the token hash is persisted."""
        user_id = uuid4()
        raw_token, session = await core.services.session.issue(user_id)

        [doc] = database["refresh_sessions"].docs
        assert doc["token_hash"] == hash_refresh_token(raw_token)
        assert raw_token not in doc.values()
        assert doc["user_id"] == user_id
        assert doc["revoked"] is False
        assert session.family_id == session.id

    @pytest.mark.asyncio
    async def test_expiry_uses_configured_ttl(self, core, config):
        """Test that expiry is creation time plus the configured lifetime."""
        _, session = await core.services.session.issue(uuid4())
        assert session.expires_at - session.created_at == timedelta(days=config.refresh_token_ttl_days)

    @pytest.mark.asyncio
    async def test_indexes_created(self, core, database):
        """Test the unique hash, owner and TTL indexes."""
        indexes = database["refresh_sessions"].indexes
        assert {"keys": [("token_hash", 1)], "unique": True} in indexes
        assert {"keys": [("user_id", 1), ("revoked", 1)], "unique": False} in indexes
        assert {"keys": [("expires_at", 1)], "unique": False, "expireAfterSeconds": 0} in indexes


class TestRotate:
    """Tests for single-use rotation."""

    @pytest.mark.asyncio
    async def test_rotation_revokes_old_and_links_new(self, core, database):
        """Test that rotation revokes the presented session and links its successor."""
        sessions = core.services.session
        raw_token, original = await sessions.issue(uuid4())

        new_token, new_session = await sessions.rotate(raw_token)

        assert new_token != raw_token
        assert new_session.family_id == original.id
        old = stored_session(database, original.id)
        assert old.revoked is True
        assert old.revoked_reason == RevokeReason.ROTATED
        assert old.replaced_by == new_session.id
        assert stored_session(database, new_session.id).revoked is False

    @pytest.mark.asyncio
    async def test_new_token_rotates_exactly_once_more(self, core):
        """Test that the successor token is itself single use."""
        sessions = core.services.session
        raw_token, _ = await sessions.issue(uuid4())
        second, _ = await sessions.rotate(raw_token)

        third, _ = await sessions.rotate(second)

        assert third not in (raw_token, second)
        with pytest.raises(RefreshTokenReusedError):
            await sessions.rotate(second)

    @pytest.mark.asyncio
    async def test_original_token_permanently_invalid(self, core):
        """Test that a rotated token keeps failing on every later attempt."""
        sessions = core.services.session
        raw_token, _ = await sessions.issue(uuid4())
        await sessions.rotate(raw_token)

        for _ in range(2):
            with pytest.raises(RefreshTokenReusedError):
                await sessions.rotate(raw_token)

    @pytest.mark.asyncio
    async def test_unknown_token(self, core):
        """Test that a token never issued is reported as not found."""
        with pytest.raises(RefreshTokenNotFoundError):
            await core.services.session.rotate(generate_refresh_token())

    @pytest.mark.asyncio
    async def test_expired_token_never_rotates(self, core, database, monkeypatch):
        """Test that an expired session is rejected and left untouched."""
        sessions = core.services.session
        raw_token, session = await sessions.issue(uuid4())
        later = session.expires_at + timedelta(seconds=1)
        monkeypatch.setattr(session_service_module, "now", lambda: later)

        with pytest.raises(RefreshTokenExpiredError):
            await sessions.rotate(raw_token)

        stored = stored_session(database, session.id)
        assert stored.revoked is False
        assert stored.replaced_by is None
        assert len(database["refresh_sessions"].docs) == 1

    @pytest.mark.asyncio
    async def test_reuse_revokes_all_user_sessions(self, core, database):
        """Test that presenting a rotated token revokes every session of its owner."""
        sessions = core.services.session
        user_id = uuid4()
        other_user = uuid4()
        stolen, _ = await sessions.issue(user_id)
        _, laptop = await sessions.issue(user_id)
        _, phone = await sessions.issue(user_id)
        _, unrelated = await sessions.issue(other_user)
        successor, successor_session = await sessions.rotate(stolen)

        with pytest.raises(RefreshTokenReusedError):
            await sessions.rotate(stolen)

        for session_id in (laptop.id, phone.id, successor_session.id):
            stored = stored_session(database, session_id)
            assert stored.revoked is True
            assert stored.revoked_reason == RevokeReason.REUSE
        assert await sessions.count_active(user_id) == 0
        assert await sessions.count_active(other_user) == 1
        with pytest.raises(RefreshTokenReusedError):
            await sessions.rotate(successor)

    @pytest.mark.asyncio
    async def test_concurrent_rotation_has_single_winner(self, core):
        """Test that two rotations of the same token produce one success and one reuse."""
        sessions = core.services.session
        user_id = uuid4()
        raw_token, _ = await sessions.issue(user_id)

        results = await asyncio.gather(sessions.rotate(raw_token), sessions.rotate(raw_token), return_exceptions=True)

        winners = [result for result in results if not isinstance(result, BaseException)]
        losers = [result for result in results if isinstance(result, BaseException)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], RefreshTokenReusedError)
        # Reuse cascade also ends the winner's new session
        assert await sessions.count_active(user_id) == 0

    @pytest.mark.asyncio
    async def test_lost_race_discards_successor(self, core, database, monkeypatch):
        """Test that a rotation whose token is consumed meanwhile leaves no successor behind."""
        sessions = core.services.session
        user_id = uuid4()
        raw_token, original = await sessions.issue(user_id)
        collection = database["refresh_sessions"]
        consume = collection.find_one_and_update

        async def consumed_by_other_request(query, update, **kwargs):
            await collection.update_one({"_id": original.id}, {"$set": {"revoked": True}})
            return await consume(query, update, **kwargs)

        monkeypatch.setattr(collection, "find_one_and_update", consumed_by_other_request)

        with pytest.raises(RefreshTokenReusedError):
            await sessions.rotate(raw_token)

        assert [doc["_id"] for doc in collection.docs] == [original.id]


class TestRotateStoreFailures:
    """Tests that an outage during rotation never burns the presented token."""

    @pytest.mark.asyncio
    async def test_failed_successor_insert_keeps_token_usable(self, core, database, monkeypatch):
        """Test that a retry succeeds after the successor could not be stored."""
        sessions = core.services.session
        user_id = uuid4()
        raw_token, original = await sessions.issue(user_id)
        await sessions.issue(user_id)
        collection = database["refresh_sessions"]
        insert = collection.insert_one

        async def unreachable(document):
            raise AutoReconnect("connection reset")

        monkeypatch.setattr(collection, "insert_one", unreachable)
        with pytest.raises(StoreUnavailableError):
            await sessions.rotate(raw_token)
        monkeypatch.setattr(collection, "insert_one", insert)

        assert stored_session(database, original.id).revoked is False
        _, successor = await sessions.rotate(raw_token)

        assert successor.family_id == original.id
        assert await sessions.count_active(user_id) == 2

    @pytest.mark.asyncio
    async def test_failed_consume_discards_successor(self, core, database, monkeypatch):
        """Test that a failed revoke of the presented session removes the stored successor."""
        sessions = core.services.session
        user_id = uuid4()
        raw_token, original = await sessions.issue(user_id)
        collection = database["refresh_sessions"]

        async def unreachable(query, update, **kwargs):
            raise AutoReconnect("connection reset")

        with monkeypatch.context() as patch:
            patch.setattr(collection, "find_one_and_update", unreachable)
            with pytest.raises(StoreUnavailableError):
                await sessions.rotate(raw_token)

        assert [doc["_id"] for doc in collection.docs] == [original.id]
        assert stored_session(database, original.id).revoked is False
        await sessions.rotate(raw_token)
        assert await sessions.count_active(user_id) == 1

    @pytest.mark.asyncio
    async def test_driver_errors_become_store_unavailable(self, core, database):
        """Test that driver failures surface as StoreUnavailableError."""
        database["refresh_sessions"].fail_with = ServerSelectionTimeoutError("no servers")

        with pytest.raises(StoreUnavailableError):
            await core.services.session.rotate(generate_refresh_token())
        with pytest.raises(StoreUnavailableError):
            await core.services.session.issue(uuid4())


class TestRevoke:
    """Tests for explicit revocation."""

    @pytest.mark.asyncio
    async def test_revoked_token_cannot_rotate(self, core, database):
        """Test that a logged out token is treated as reuse."""
        sessions = core.services.session
        raw_token, session = await sessions.issue(uuid4())

        await sessions.revoke(raw_token)

        stored = stored_session(database, session.id)
        assert stored.revoked is True
        assert stored.revoked_reason == RevokeReason.LOGOUT
        with pytest.raises(RefreshTokenReusedError):
            await sessions.rotate(raw_token)

    @pytest.mark.asyncio
    async def test_revoke_is_idempotent(self, core, database):
        """Test that revoking twice or revoking an unknown token changes nothing."""
        sessions = core.services.session
        raw_token, session = await sessions.issue(uuid4())

        await sessions.revoke(raw_token)
        first_revoked_at = stored_session(database, session.id).revoked_at
        await sessions.revoke(raw_token)
        await sessions.revoke(generate_refresh_token())

        assert stored_session(database, session.id).revoked_at == first_revoked_at

    @pytest.mark.asyncio
    async def test_revoke_all_counts_only_active(self, core):
        """Test that revoke_all reports only sessions it actually revoked."""
        sessions = core.services.session
        user_id = uuid4()
        first, _ = await sessions.issue(user_id)
        await sessions.issue(user_id)
        await sessions.issue(user_id)
        await sessions.revoke(first)

        assert await sessions.revoke_all(user_id) == 2
        assert await sessions.revoke_all(user_id) == 0

    @pytest.mark.asyncio
    async def test_count_active_ignores_expired(self, core, monkeypatch):
        """Test that expired sessions are not counted as active."""
        sessions = core.services.session
        user_id = uuid4()
        _, session = await sessions.issue(user_id)
        assert await sessions.count_active(user_id) == 1

        later = session.expires_at + timedelta(minutes=1)
        monkeypatch.setattr(session_service_module, "now", lambda: later)
        assert await sessions.count_active(user_id) == 0
