# ============================================================================
# APPLICATION WIRING TESTS
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Tests - Background refresh loop
# PURPOSE: Verify the refresh loop survives failing polls
# CREATED: 19 OCT 2026
# ============================================================================
"""
Application Wiring Tests

Run with:
    pytest tests/test_main.py -v
"""

import asyncio
import logging
from unittest.mock import MagicMock

import pytest

from main import refresh_loop


class StopLoop(BaseException):
    """Ends the otherwise endless refresh loop."""


class TestRefreshLoop:

    def test_keeps_polling_after_errors(self, caplog):
        service = MagicMock()
        service.refresh_all.side_effect = [KeyError("h1"), RuntimeError("engine gone"), None, StopLoop()]

        with caplog.at_level(logging.ERROR), pytest.raises(StopLoop):
            asyncio.run(refresh_loop(service, 0))

        assert service.refresh_all.call_count == 4
        failures = [r for r in caplog.records if "Background refresh failed" in r.getMessage()]
        assert len(failures) == 2
