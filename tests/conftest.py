"""
Shared fixtures: settings, a controllable clock and an in-memory store.
"""

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

import pytest

from mobile_auth.config import Settings
from mobile_auth.models.internal_models import OtpChallenge, User
from mobile_auth.services.token_service import TokenService
from mobile_auth.utils.otp_utils import utc_now

TEST_SECRET = "test-signing-secret-with-enough-entropy-0123456789"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or utc_now()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class InMemoryUserRepository:
    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.rows: Dict[int, User] = {}
        self._next_id = 1

    async def get_user_by_mobile(self, mobile_number: str) -> Optional[User]:
        for user in self.rows.values():
            if user.mobile_number == mobile_number:
                return user
        return None

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        return self.rows.get(user_id)

    async def get_or_create_user(self, mobile_number: str) -> Tuple[User, bool]:
        existing = await self.get_user_by_mobile(mobile_number)
        if existing is not None:
            return existing, False
        user = User(id=self._next_id, mobile_number=mobile_number, created_at=self.clock())
        self.rows[user.id] = user
        self._next_id += 1
        return user, True


class InMemoryOtpRepository:
    def __init__(self):
        self.rows: Dict[int, OtpChallenge] = {}
        self.writes: List[OtpChallenge] = []
        self._next_id = 1

    async def upsert_challenge(self, challenge: OtpChallenge) -> OtpChallenge:
        stored = replace(challenge, id=self._next_id)
        self._next_id += 1
        self.rows[challenge.user_id] = stored
        self.writes.append(stored)
        challenge.id = stored.id
        return challenge

    async def get_challenge(self, user_id: int, mobile_number: str) -> Optional[OtpChallenge]:
        challenge = self.rows.get(user_id)
        if challenge is None or challenge.mobile_number != mobile_number:
            return None
        return challenge

    async def consume_challenge(self, user_id: int, otp: str) -> bool:
        challenge = self.rows.get(user_id)
        if challenge is None or challenge.otp != otp:
            return False
        del self.rows[user_id]
        return True


class InMemoryDatabase:
    """Stand-in for ``DatabaseManager`` with the same repository surface."""

    def __init__(self, clock: FakeClock):
        self.users = InMemoryUserRepository(clock)
        self.otps = InMemoryOtpRepository()
        self.healthy = True
        self.connected = False
        self.closed = False

    async def connect(self) -> None:
        self.connected = True

    async def health_check(self) -> bool:
        return self.healthy

    async def close(self) -> None:
        self.closed = True


class RecordingSmsSender:
    def __init__(self, result: bool = True, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.sent: List[Tuple[str, str]] = []
        self.closed = False

    async def send_otp(self, mobile_number: str, otp: str) -> bool:
        self.sent.append((mobile_number, otp))
        if self.error is not None:
            raise self.error
        return self.result

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def database(clock):
    return InMemoryDatabase(clock)


@pytest.fixture
def sms_sender():
    return RecordingSmsSender()


@pytest.fixture
def token_service():
    return TokenService(secret=TEST_SECRET)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        jwt_secret=TEST_SECRET,
        supabase_url="http://localhost:54321",
        supabase_key="test-key",
        dev_mode=False
    )


@pytest.fixture
def dev_settings(settings):
    return settings.model_copy(update={"dev_mode": True})
