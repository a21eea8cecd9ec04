import os
import sys
from pathlib import Path

import pytest

# Ensure backend/ is on sys.path for `import esta_risk`
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Tests never touch a file database unless they build one themselves
os.environ.setdefault("RISK_STORE_BACKEND", "memory")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from factories import NOW, FixedClock  # noqa: E402


@pytest.fixture
def clock():
    return FixedClock(NOW)
