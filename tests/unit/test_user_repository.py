"""Unit tests for UserRepository against a mocked pymongo collection."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, OperationFailure

from errors import ConflictError, NotFoundError
from repositories.user_repository import EMAIL_INDEX_NAME, UserRepository
from schemas.models.user import UserDoc


# ── Helpers ───────────────────────────────────────────────────────────────────


class _Cursor:
    """Chainable async cursor over a fixed list of documents."""

    def __init__(self, docs):
        self._docs = list(docs)
        self.calls = []

    def sort(self, *args):
        self.calls.append(("sort", args))
        return self

    def skip(self, n):
        self.calls.append(("skip", n))
        return self

    def limit(self, n):
        self.calls.append(("limit", n))
        return self

    def __aiter__(self):
        self._iter = iter(self._docs)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


def _repo():
    col = MagicMock()
    col.find_one = AsyncMock(return_value=None)
    col.insert_one = AsyncMock()
    col.update_one = AsyncMock(return_value=MagicMock(matched_count=1))
    col.create_index = AsyncMock()
    col.count_documents = AsyncMock(return_value=0)
    db = MagicMock()
    db.__getitem__.return_value = col
    return UserRepository(db), col


def _doc(**overrides):
    doc = {"_id": ObjectId(), "name": "Alice", "email": "alice@x.com"}
    doc.update(overrides)
    return doc


# ── indexes ───────────────────────────────────────────────────────────────────


class TestEnsureIndexes:
    async def test_creates_unique_email_index(self):
        repo, col = _repo()
        await repo.ensure_indexes()
        first = col.create_index.await_args_list[0]
        assert first.kwargs["unique"] is True
        assert first.kwargs["name"] == EMAIL_INDEX_NAME

    async def test_existing_index_tolerated(self):
        repo, col = _repo()
        col.create_index.side_effect = OperationFailure("index already exists")
        await repo.ensure_indexes()

    async def test_other_failures_propagate(self):
        repo, col = _repo()
        col.create_index.side_effect = OperationFailure("not authorized")
        with pytest.raises(OperationFailure):
            await repo.ensure_indexes()


# ── reads ─────────────────────────────────────────────────────────────────────


class TestReads:
    async def test_find_by_email_normalises_query(self):
        repo, col = _repo()
        col.find_one.return_value = _doc()
        user = await repo.find_by_email("  ALICE@x.com ")
        col.find_one.assert_awaited_once_with({"email": "alice@x.com"})
        assert isinstance(user, UserDoc)

    async def test_find_by_email_blank_skips_query(self):
        repo, col = _repo()
        assert await repo.find_by_email("") is None
        col.find_one.assert_not_awaited()

    async def test_find_by_id_string(self):
        repo, col = _repo()
        doc = _doc()
        col.find_one.return_value = doc
        user = await repo.find_by_id(str(doc["_id"]))
        col.find_one.assert_awaited_once_with({"_id": doc["_id"]})
        assert user.id == doc["_id"]

    async def test_find_by_id_malformed(self):
        repo, col = _repo()
        assert await repo.find_by_id("nope") is None
        col.find_one.assert_not_awaited()

    async def test_get_by_id_missing(self):
        repo, _ = _repo()
        with pytest.raises(NotFoundError):
            await repo.get_by_id(str(ObjectId()))

    async def test_list_users_pages_newest_first(self):
        repo, col = _repo()
        cursor = _Cursor([_doc(), _doc(email="bob@x.com")])
        col.find = MagicMock(return_value=cursor)
        users = await repo.list_users(skip=20, limit=10)
        assert [u.email for u in users] == ["alice@x.com", "bob@x.com"]
        assert ("skip", 20) in cursor.calls
        assert ("limit", 10) in cursor.calls

    async def test_count_users(self):
        repo, col = _repo()
        col.count_documents.return_value = 7
        assert await repo.count_users() == 7


# ── writes ────────────────────────────────────────────────────────────────────


class TestCreate:
    async def test_insert_sets_timestamps_and_id(self):
        repo, col = _repo()
        new_id = ObjectId()
        col.insert_one.return_value = MagicMock(inserted_id=new_id)
        user = await repo.create(UserDoc(name="Alice", email="Alice@X.com"))

        inserted = col.insert_one.await_args.args[0]
        assert inserted["email"] == "alice@x.com"
        assert isinstance(inserted["created_at"], datetime)
        assert "_id" not in inserted or inserted["_id"] == new_id
        assert user.id == new_id

    async def test_duplicate_email_is_conflict(self):
        repo, col = _repo()
        col.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")
        with pytest.raises(ConflictError):
            await repo.create(UserDoc(name="Alice", email="alice@x.com"))


class TestUpdate:
    async def test_partial_set_with_updated_at(self):
        repo, col = _repo()
        oid = ObjectId()
        await repo.update(str(oid), {"email_verified": True})
        query, update = col.update_one.await_args.args
        assert query == {"_id": oid}
        assert update["$set"]["email_verified"] is True
        assert "updated_at" in update["$set"]

    async def test_clearing_writes_null(self):
        repo, col = _repo()
        await repo.update(ObjectId(), {"forgot_password_otp": None})
        _, update = col.update_one.await_args.args
        assert update["$set"]["forgot_password_otp"] is None

    async def test_no_match_is_not_found(self):
        repo, col = _repo()
        col.update_one.return_value = MagicMock(matched_count=0)
        with pytest.raises(NotFoundError):
            await repo.update(ObjectId(), {"name": "x"})

    async def test_malformed_id_is_not_found(self):
        repo, col = _repo()
        with pytest.raises(NotFoundError):
            await repo.update("bad-id", {"name": "x"})
        col.update_one.assert_not_awaited()

    async def test_email_collision_is_conflict(self):
        repo, col = _repo()
        col.update_one.side_effect = DuplicateKeyError("E11000 duplicate key")
        with pytest.raises(ConflictError):
            await repo.update(ObjectId(), {"email": "bob@x.com"})
