"""
Tests for best-effort notification delivery.
"""

import asyncio
import logging

import pytest

from visa_api.core import notifier


class TestNotify:
    @pytest.mark.asyncio
    async def test_delivers_in_background(self):
        delivered = []

        async def send():
            await asyncio.sleep(0)
            delivered.append("sent")
            return True

        notifier.notify(send(), "test email")
        assert notifier.pending_count() == 1

        await notifier.drain()

        assert delivered == ["sent"]
        assert notifier.pending_count() == 0

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self, caplog):
        async def send():
            raise ConnectionError("smtp down")

        with caplog.at_level(logging.ERROR, logger="visa_api.core.notifier"):
            notifier.notify(send(), "failing email")
            await notifier.drain()

        assert "failing email" in caplog.text

    @pytest.mark.asyncio
    async def test_false_result_is_logged(self, caplog):
        async def send():
            return False

        with caplog.at_level(logging.ERROR, logger="visa_api.core.notifier"):
            notifier.notify(send(), "rejected email")
            await notifier.drain()

        assert "Notification not delivered: rejected email" in caplog.text
