"""Supabase client for database operations."""

import logging
from datetime import datetime
from typing import Any, Callable, Optional, Tuple

import httpx
from supabase import acreate_client, AsyncClient
from postgrest.exceptions import APIError

from mobile_auth.exceptions import StoreUnavailableError
from mobile_auth.models.internal_models import User, OtpChallenge
from mobile_auth.utils.otp_utils import ensure_utc

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


def _parse_timestamp(value: str) -> datetime:
    return ensure_utc(datetime.fromisoformat(value.replace('Z', '+00:00')))


def _to_user(row: dict) -> User:
    return User(
        id=int(row["id"]),
        mobile_number=row["mobile_number"],
        created_at=_parse_timestamp(row["created_at"])
    )


def _to_challenge(row: dict) -> OtpChallenge:
    return OtpChallenge(
        id=row.get("id"),
        user_id=int(row["user_id"]),
        mobile_number=row["mobile_number"],
        otp=row["otp"],
        expiry_time=_parse_timestamp(row["expiry_time"]),
        created_at=_parse_timestamp(row["created_at"])
    )


class SupabaseClient:
    """
    Lifecycle-managed handle on the Supabase async client.

    The underlying client is created on first use and reused afterwards.
    Connectivity failures drop it so the next call connects again.
    """

    def __init__(self, url: str, key: str):
        """Initialize handle with connection settings; no I/O happens here."""
        self._client: Optional[AsyncClient] = None
        self._url = url
        self._key = key

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def get_client(self) -> AsyncClient:
        """Get or create the Supabase client instance."""
        if self._client is None:
            try:
                self._client = await acreate_client(self._url, self._key)
                logger.info("Supabase client initialized")
            except Exception as e:
                logger.error(f"Supabase client initialization failed: {e}")
                raise StoreUnavailableError("Database is unavailable") from e
        return self._client

    def reset(self) -> None:
        """Forget the cached client so the next call reconnects."""
        if self._client is not None:
            logger.warning("Resetting Supabase client after connectivity failure")
        self._client = None

    async def execute(self, build: Callable[[AsyncClient], Any]):
        """
        Build a query against the client and execute it.

        Args:
            build: Callable receiving the client and returning a request builder

        Returns:
            The PostgREST API response

        Raises:
            APIError: For errors reported by PostgREST itself
            StoreUnavailableError: If the store cannot be reached
        """
        client = await self.get_client()
        try:
            return await build(client).execute()
        except APIError:
            raise
        except (httpx.HTTPError, OSError) as e:
            logger.error(f"Database connectivity error: {e}")
            self.reset()
            raise StoreUnavailableError("Database is unavailable") from e

    async def health_check(self) -> bool:
        """Check if database connection is healthy."""
        try:
            await self.execute(lambda c: c.table("users").select("id").limit(1))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def close(self) -> None:
        """Release the underlying HTTP session."""
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.postgrest.aclose()
        except Exception as e:
            logger.warning(f"Failed to close Supabase client cleanly: {e}")
        logger.info("Supabase client closed")


class UserRepository:
    """Repository for user identity operations."""

    def __init__(self, supabase_client: SupabaseClient):
        """Initialize repository with Supabase client."""
        self.client = supabase_client

    async def get_user_by_mobile(self, mobile_number: str) -> Optional[User]:
        """Retrieve user by normalized mobile number."""
        try:
            result = await self.client.execute(
                lambda c: c.table("users")
                .select("id, mobile_number, created_at")
                .eq("mobile_number", mobile_number)
                .limit(1)
            )
        except APIError as e:
            logger.error(f"Database error retrieving user by mobile {mobile_number}: {e}")
            raise StoreUnavailableError("Failed to read user") from e

        if not result.data:
            return None
        return _to_user(result.data[0])

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        """Retrieve user by ID."""
        try:
            result = await self.client.execute(
                lambda c: c.table("users")
                .select("id, mobile_number, created_at")
                .eq("id", user_id)
                .limit(1)
            )
        except APIError as e:
            logger.error(f"Database error retrieving user {user_id}: {e}")
            raise StoreUnavailableError("Failed to read user") from e

        if not result.data:
            return None
        return _to_user(result.data[0])

    async def get_or_create_user(self, mobile_number: str) -> Tuple[User, bool]:
        """
        Resolve the user for a normalized mobile number, creating it if needed.

        The insert is a no-op on a mobile number conflict, so concurrent first
        requests for the same number leave exactly one row behind.

        Returns:
            Tuple of (user, is_new_user)
        """
        existing = await self.get_user_by_mobile(mobile_number)
        if existing is not None:
            return existing, False

        try:
            result = await self.client.execute(
                lambda c: c.table("users").upsert(
                    {"mobile_number": mobile_number},
                    on_conflict="mobile_number",
                    ignore_duplicates=True
                )
            )
            created = result.data
        except APIError as e:
            if e.code != UNIQUE_VIOLATION:
                logger.error(f"Database error creating user {mobile_number}: {e}")
                raise StoreUnavailableError("Failed to create user") from e
            created = None

        if created:
            user = _to_user(created[0])
            logger.info(f"Created user {user.id} for {mobile_number}")
            return user, True

        # Another request inserted the same number first
        existing = await self.get_user_by_mobile(mobile_number)
        if existing is None:
            raise StoreUnavailableError("User row missing after insert conflict")
        logger.info(f"Resolved concurrently created user {existing.id}")
        return existing, False


class OtpRepository:
    """Repository for the single-slot OTP challenge per user."""

    def __init__(self, supabase_client: SupabaseClient):
        """Initialize repository with Supabase client."""
        self.client = supabase_client

    async def upsert_challenge(self, challenge: OtpChallenge) -> OtpChallenge:
        """Create or overwrite the challenge for ``challenge.user_id``."""
        challenge_data = {
            "user_id": challenge.user_id,
            "mobile_number": challenge.mobile_number,
            "otp": challenge.otp,
            "expiry_time": challenge.expiry_time.isoformat(),
            "created_at": challenge.created_at.isoformat()
        }

        try:
            result = await self.client.execute(
                lambda c: c.table("otps").upsert(challenge_data, on_conflict="user_id")
            )
        except APIError as e:
            logger.error(f"Database error storing challenge for user {challenge.user_id}: {e}")
            raise StoreUnavailableError("Failed to store challenge") from e

        if not result.data:
            raise StoreUnavailableError("Failed to store challenge")

        challenge.id = result.data[0].get("id")
        logger.info(f"Stored challenge for user {challenge.user_id}")
        return challenge

    async def get_challenge(self, user_id: int, mobile_number: str) -> Optional[OtpChallenge]:
        """Load the standing challenge for a user."""
        try:
            result = await self.client.execute(
                lambda c: c.table("otps")
                .select("*")
                .eq("user_id", user_id)
                .eq("mobile_number", mobile_number)
                .limit(1)
            )
        except APIError as e:
            logger.error(f"Database error loading challenge for user {user_id}: {e}")
            raise StoreUnavailableError("Failed to load challenge") from e

        if not result.data:
            return None
        return _to_challenge(result.data[0])

    async def consume_challenge(self, user_id: int, otp: str) -> bool:
        """
        Delete the challenge only if it still holds ``otp``.

        Returns:
            True if this call removed the row, False if it was already gone
        """
        try:
            result = await self.client.execute(
                lambda c: c.table("otps")
                .delete()
                .eq("user_id", user_id)
                .eq("otp", otp)
            )
        except APIError as e:
            logger.error(f"Database error consuming challenge for user {user_id}: {e}")
            raise StoreUnavailableError("Failed to consume challenge") from e

        consumed = len(result.data) > 0
        if consumed:
            logger.info(f"Consumed challenge for user {user_id}")
        else:
            logger.warning(f"Challenge for user {user_id} already consumed")
        return consumed


class DatabaseManager:
    """High-level database manager that coordinates repositories."""

    def __init__(self, client: SupabaseClient):
        """Initialize database manager with client and repositories."""
        self.client = client
        self.users = UserRepository(self.client)
        self.otps = OtpRepository(self.client)

    async def connect(self) -> None:
        """Open the store connection eagerly."""
        await self.client.get_client()

    async def health_check(self) -> bool:
        """Check overall database health."""
        return await self.client.health_check()

    async def close(self) -> None:
        await self.client.close()
