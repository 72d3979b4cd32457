import sys
from datetime import datetime
from pathlib import Path

import pytest

# Ensure hearth_app and reports are importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hearth_app.hearth.ledger import SessionLedger  # noqa: E402
from hearth_app.hearth.scheduler import ManualScheduler  # noqa: E402
from hearth_app.hearth.storage import Storage  # noqa: E402


@pytest.fixture
def storage(tmp_path):
    return Storage(tmp_path / "hearth.db")


@pytest.fixture
def ledger(storage):
    return SessionLedger(storage)


@pytest.fixture
def scheduler():
    # 2024-03-15 10:00:00 local time
    return ManualScheduler(start_millis=int(datetime(2024, 3, 15, 10, 0).timestamp() * 1000))
