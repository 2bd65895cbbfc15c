"""
Credential store — MongoDB repository for the `users` collection.

All methods are async and work on an AsyncDatabase from pymongo's asyncio
client. Reads return UserDoc models; writes take plain field dicts.

Failure contract:
- reads of a missing or malformed id return None (find_*) or raise
  NotFoundError (get_by_id)
- create raises ConflictError when the unique email index rejects the insert
- update raises NotFoundError when no document matched
- every other PyMongoError propagates; callers do not retry
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError, OperationFailure

from errors import ConflictError, NotFoundError
from schemas.models.base import to_object_id
from schemas.models.user import UserDoc
from shared.logging import get_logger
from shared.validators import normalize_email

log = get_logger(__name__)

USERS_COLLECTION = "users"
EMAIL_INDEX_NAME = "idx_users_email"


class UserRepository:
    def __init__(self, db: AsyncDatabase) -> None:
        self._col = db[USERS_COLLECTION]

    async def ensure_indexes(self) -> None:
        """Create the unique email index; an existing equivalent index is kept."""
        try:
            await self._col.create_index(
                [("email", ASCENDING)], name=EMAIL_INDEX_NAME, unique=True
            )
            await self._col.create_index(
                [("created_at", DESCENDING)], name="idx_users_created_at"
            )
        except OperationFailure as e:
            if "already exists" not in str(e):
                raise
            log.warning("users_index_conflict", error=str(e))

    # ── reads ────────────────────────────────────────────────────────────────

    async def find_by_email(self, email: Optional[str]) -> Optional[UserDoc]:
        normalized = normalize_email(email)
        if not normalized:
            return None
        doc = await self._col.find_one({"email": normalized})
        return UserDoc.from_mongo(doc)

    async def find_by_id(self, user_id: Any) -> Optional[UserDoc]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        doc = await self._col.find_one({"_id": oid})
        return UserDoc.from_mongo(doc)

    async def get_by_id(self, user_id: Any) -> UserDoc:
        user = await self.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def list_users(self, skip: int = 0, limit: int = 20) -> list[UserDoc]:
        cursor = (
            self._col.find({})
            .sort("created_at", DESCENDING)
            .skip(max(skip, 0))
            .limit(max(limit, 1))
        )
        return [UserDoc.from_mongo(doc) async for doc in cursor]

    async def count_users(self) -> int:
        return await self._col.count_documents({})

    # ── writes ───────────────────────────────────────────────────────────────

    async def create(self, user: UserDoc) -> UserDoc:
        """Insert *user* and return it with its generated id."""
        now = datetime.now(timezone.utc)
        data = user.to_mongo()
        data["email"] = normalize_email(data.get("email"))
        data["created_at"] = data.get("created_at") or now
        data["updated_at"] = now
        try:
            result = await self._col.insert_one(data)
        except DuplicateKeyError:
            # Lost a race with a concurrent registration for the same email
            log.warning("user_create_failed", reason="duplicate_email")
            raise ConflictError("Email already registered", field="email")
        data["_id"] = result.inserted_id
        log.info("user_created", user_id=str(result.inserted_id))
        return UserDoc.from_mongo(data)

    async def update(self, user_id: Any, fields: dict[str, Any]) -> None:
        """Apply a partial ``$set`` of *fields*; ``updated_at`` is always bumped."""
        oid = to_object_id(user_id)
        if oid is None:
            raise NotFoundError("User not found")
        update = dict(fields)
        if "email" in update:
            update["email"] = normalize_email(update["email"])
        update["updated_at"] = datetime.now(timezone.utc)
        try:
            result = await self._col.update_one({"_id": oid}, {"$set": update})
        except DuplicateKeyError:
            raise ConflictError("Email already registered", field="email")
        if result.matched_count == 0:
            raise NotFoundError("User not found")
