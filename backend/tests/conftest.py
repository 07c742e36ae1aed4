import sys
from pathlib import Path

import pytest


# Ensure the backend root is importable when tests are run without installing the package.
BACKEND = Path(__file__).resolve().parents[1]
if str(BACKEND) not in sys.path:
    sys.path.insert(0, str(BACKEND))

from strike_coach.config import Settings


@pytest.fixture
def settings():
    """Default engine settings, independent of any local .env file."""
    return Settings(_env_file=None)
