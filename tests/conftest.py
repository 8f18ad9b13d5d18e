"""Test configuration ensuring local package import when editable install not active.

If users invoke `pytest` outside the project's virtualenv, we still add the project
root to sys.path so `import sla_app` works.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sla_app.core.roster import clear_config_cache  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_roster_cache():
    clear_config_cache()
    yield
    clear_config_cache()
