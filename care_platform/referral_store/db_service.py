"""
Referral Database Service

MongoDB-backed referral store. Optimistic concurrency is a conditional
update on (referral_id, version); the one-active-referral-per-patient rule is
a partial unique index over active referrals.
"""

from collections.abc import Awaitable
from datetime import timedelta
from typing import Any, Callable, Optional, TypeVar

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, IndexModel
from pymongo.errors import AutoReconnect, DuplicateKeyError, PyMongoError
from structlog import get_logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import CoordinationConfig, get_config
from ..errors import ConflictError, StoreError
from .models import Referral, ReferralHistoryEntry
from .repository import ReferralRepository

logger = get_logger()

T = TypeVar("T")

# Stored datetimes keep millisecond precision
BSON_DATETIME_RESOLUTION = timedelta(milliseconds=1)


class MongoReferralRepository(ReferralRepository):
    """
    Database service for referrals and referral history.

    Transient connection errors are retried with exponential backoff; every
    other driver error surfaces as StoreError. A retried write that collides
    with its own first attempt is recognized by re-reading the stored state.
    """

    def __init__(
        self,
        db: Optional[AsyncIOMotorDatabase] = None,
        config: Optional[CoordinationConfig] = None,
    ):
        """
        Initialize referral database service.

        Args:
            db: Optional database instance. If not provided, creates new connection.
            config: Optional configuration (uses cached config if not provided)
        """
        config = config or get_config()

        if db is None:
            client = AsyncIOMotorClient(config.mongo_db_url, tz_aware=True)
            self.db = client[config.mongo_db_name]
        else:
            self.db = db

        self.referrals = self.db[config.referrals_collection]
        self.history = self.db[config.referral_history_collection]
        self.max_retries = config.store_max_retries
        self.retry_wait = wait_exponential(multiplier=1, min=2, max=10)

    async def ensure_indexes(self) -> None:
        """Create indexes backing lookups, the active-referral guard and history ordering."""
        await self.referrals.create_indexes(
            [
                IndexModel([("referral_id", ASCENDING)], unique=True),
                IndexModel(
                    [("patient_id", ASCENDING)],
                    unique=True,
                    partialFilterExpression={"active": True},
                    name="one_active_referral_per_patient",
                ),
                IndexModel([("patient_id", ASCENDING), ("created_at", DESCENDING)]),
                IndexModel([("status", ASCENDING)]),
            ]
        )
        await self.history.create_indexes(
            [
                IndexModel([("referral_id", ASCENDING), ("sequence", ASCENDING)], unique=True),
                IndexModel([("timestamp", DESCENDING)]),
            ]
        )

    async def _run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run a driver call with retry on connection loss.

        DuplicateKeyError is passed through for the caller to interpret.
        """

        @retry(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self.retry_wait,
            retry=retry_if_exception_type(AutoReconnect),
            reraise=True,
        )
        async def _execute():
            return await operation()

        try:
            return await _execute()
        except DuplicateKeyError:
            raise
        except PyMongoError as e:
            logger.error("referral_store_error", error=str(e))
            raise StoreError(f"Referral store operation failed: {e}") from e

    async def _landed(self, referral: Referral) -> bool:
        """Whether the stored referral is exactly the state this write produced."""
        doc = await self._run(
            lambda: self.referrals.find_one({"referral_id": referral.referral_id})
        )
        if doc is None:
            return False

        stored = Referral.from_document(doc)
        return (
            stored.version == referral.version
            and stored.status == referral.status
            and abs(stored.updated_at - referral.updated_at) < BSON_DATETIME_RESOLUTION
        )

    async def _insert_history(self, entry: ReferralHistoryEntry) -> None:
        """Append a history entry; a retry finding its own earlier insert succeeds."""
        try:
            await self._run(lambda: self.history.insert_one(entry.to_document()))
        except DuplicateKeyError:
            stored = await self._run(
                lambda: self.history.find_one(
                    {"referral_id": entry.referral_id, "sequence": entry.sequence}
                )
            )
            if stored is None or stored.get("entry_id") != entry.entry_id:
                raise

    async def insert_referral(self, referral: Referral, entry: ReferralHistoryEntry) -> None:
        try:
            await self._run(lambda: self.referrals.insert_one(referral.to_document()))
        except DuplicateKeyError as e:
            # A retried insert collides with its own first attempt
            if not await self._landed(referral):
                if "referral_id" in str(e):
                    raise StoreError(f"Referral '{referral.referral_id}' already exists") from e
                active = await self.get_active_referral(referral.patient_id)
                raise ConflictError(
                    referral.patient_id, active.referral_id if active else None
                ) from e
            logger.warning("referral_insert_reply_lost", referral_id=referral.referral_id)

        try:
            await self._insert_history(entry)
        except (StoreError, DuplicateKeyError) as e:
            logger.error(
                "referral_history_insert_failed",
                referral_id=referral.referral_id,
                error=str(e),
            )
            await self._run(lambda: self.referrals.delete_one({"referral_id": referral.referral_id}))
            raise StoreError(
                f"Failed to record history for referral '{referral.referral_id}'"
            ) from e

    async def get_referral(self, referral_id: str) -> Optional[Referral]:
        doc = await self._run(lambda: self.referrals.find_one({"referral_id": referral_id}))
        if doc:
            return Referral.from_document(doc)
        return None

    async def get_active_referral(self, patient_id: str) -> Optional[Referral]:
        doc = await self._run(
            lambda: self.referrals.find_one({"patient_id": patient_id, "active": True})
        )
        if doc:
            return Referral.from_document(doc)
        return None

    async def list_referrals_for_patient(self, patient_id: str) -> list[Referral]:
        docs = await self._run(
            lambda: self.referrals.find({"patient_id": patient_id})
            .sort("created_at", DESCENDING)
            .to_list(length=None)
        )
        return [Referral.from_document(doc) for doc in docs]

    async def apply_transition(
        self,
        expected_version: int,
        updated: Referral,
        entry: ReferralHistoryEntry,
    ) -> bool:
        query = {"referral_id": updated.referral_id, "version": expected_version}

        # Every write bumps the version, so this is the state the swap replaces
        previous = await self._run(lambda: self.referrals.find_one(query))
        if previous is None:
            return False

        fields = _mutable_fields(updated.to_document())
        matched = await self._run(
            lambda: self.referrals.find_one_and_update(query, {"$set": fields})
        )
        if matched is None:
            if not await self._landed(updated):
                return False
            logger.warning(
                "referral_transition_reply_lost",
                referral_id=updated.referral_id,
                version=updated.version,
            )

        try:
            await self._insert_history(entry)
        except (StoreError, DuplicateKeyError) as e:
            logger.error(
                "referral_transition_rolled_back",
                referral_id=updated.referral_id,
                version=updated.version,
                error=str(e),
            )
            await self._run(
                lambda: self.referrals.update_one(
                    {"referral_id": updated.referral_id, "version": updated.version},
                    {"$set": _mutable_fields(previous)},
                )
            )
            raise StoreError(
                f"Failed to record history for referral '{updated.referral_id}'"
            ) from e

        return True

    async def list_history(self, referral_id: str) -> list[ReferralHistoryEntry]:
        docs = await self._run(
            lambda: self.history.find({"referral_id": referral_id})
            .sort("sequence", ASCENDING)
            .to_list(length=None)
        )
        return [ReferralHistoryEntry.from_document(doc) for doc in docs]


def _mutable_fields(doc: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in doc.items() if k not in ("_id", "referral_id", "created_at")}
