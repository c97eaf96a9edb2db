from datetime import datetime, timezone

import pytest

from tests.helpers import FakeRedis


@pytest.fixture
def fixed_now():
    return datetime(2024, 3, 10, 6, 0, tzinfo=timezone.utc)


@pytest.fixture
def fake_redis():
    return FakeRedis()
