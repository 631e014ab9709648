"""Pytest configuration helpers for the Pokedex sync project.

The ``pytest`` plugin system automatically imports ``tests.conftest``; we use
that to put the repository root on ``sys.path`` before any test module imports
application code.
"""

from __future__ import annotations

import pytest

from tests import _ensure_repo_on_path


def pytest_configure(config: pytest.Config) -> None:
    """Hook executed by pytest prior to running any tests."""

    _ensure_repo_on_path()
