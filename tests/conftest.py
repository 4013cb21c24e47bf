from __future__ import annotations

import os
import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

os.environ.setdefault("SENDFLOW_LOG_DIR", str(Path(tempfile.gettempdir()) / "sendflow-test-logs"))

from sendflow.core.models import Profile  # noqa: E402
from tests.fakes import FakeStore  # noqa: E402

SENDER_ID = "00000000-0000-0000-0000-00000000000a"
RECIPIENT_ID = "00000000-0000-0000-0000-00000000000b"
PLATFORM_ID = "00000000-0000-0000-0000-0000000000ff"


@pytest.fixture
def store() -> FakeStore:
    return FakeStore(
        profiles=[
            Profile(
                id=SENDER_ID,
                full_name="Awa Sender",
                phone="+237 670 000 001",
                email="awa@example.com",
                country="Cameroon",
                balance=Decimal("10000"),
            ),
            Profile(
                id=RECIPIENT_ID,
                full_name="Bello Recipient",
                phone="+237670000002",
                email="bello@example.com",
                country="Cameroon",
                balance=Decimal("500"),
            ),
            Profile(id=PLATFORM_ID, full_name="SendFlow", role="admin", balance=Decimal("0")),
        ]
    )
