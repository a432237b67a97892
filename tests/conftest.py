import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

# Ensure project root is on sys.path to allow `import agents`, `import connectors`, etc.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config.config import ExpiryAutomationConfig  # noqa: E402
from models.batch import MedicineBatch  # noqa: E402

TODAY = date(2026, 3, 1)
COLOMBO = ZoneInfo("Asia/Colombo")


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def config() -> ExpiryAutomationConfig:
    """Default settings with short bounds so a hung call cannot stall the suite."""
    return ExpiryAutomationConfig(call_timeout_seconds=2.0, run_deadline_seconds=10.0)


@pytest.fixture
def make_batch():
    """Factory for batches expiring ``days`` after TODAY."""
    counter = {"n": 0}

    def _make(days: int, selling_price=100, cost_price=50, **overrides) -> MedicineBatch:
        counter["n"] += 1
        n = counter["n"]
        fields = dict(
            id=f"batch_{n:03d}",
            gtin=f"0000000000{n:04d}",
            batch_id=f"LOT{n:03d}",
            medicine_name=f"Medicine {n}",
            location=f"Shelf A-{n}",
            expiry_date=TODAY + timedelta(days=days),
            stock_count=10,
            cost_price=Decimal(str(cost_price)),
            selling_price=Decimal(str(selling_price)),
        )
        fields.update(overrides)
        return MedicineBatch(**fields)

    return _make
