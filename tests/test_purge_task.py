"""
tests/test_purge_task.py -- Unit tests for the background refresh-token purge loop.

Covers:
  - a failing purge is logged and the loop keeps running
  - successful purges log the number of removed rows
"""

from __future__ import annotations

import asyncio
import logging
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from api.main import _purge_loop
from auth.errors import StoreUnavailableError


class _StopLoop(BaseException):
    """Raised by the fake store to end the otherwise endless loop."""


def _app(*outcomes) -> SimpleNamespace:
    store = MagicMock()
    store.purge_expired_refresh_tokens.side_effect = list(outcomes)
    return SimpleNamespace(state=SimpleNamespace(user_store=store))


def test_loop_survives_purge_failures(caplog):
    app = _app(RuntimeError("disk full"), StoreUnavailableError(), 3, _StopLoop())
    with patch("api.main._PURGE_INTERVAL_SECONDS", 0), caplog.at_level(logging.INFO, logger="chirpy.api"):
        with pytest.raises(_StopLoop):
            asyncio.run(_purge_loop(app))

    assert app.state.user_store.purge_expired_refresh_tokens.call_count == 4
    assert "Refresh token purge failed unexpectedly" in caplog.text
    assert "Refresh token purge failed: store_unavailable" in caplog.text
    assert "Purged 3 expired refresh token(s)" in caplog.text
