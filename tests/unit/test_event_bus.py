"""
Unit tests for the referral event bus.
"""

import pytest
from structlog.testing import capture_logs

from care_platform.referral_store.models import Referral, ReferralStatus
from care_platform.shared_services.event_bus import (
    ReferralEvent,
    ReferralEventBus,
    ReferralTransition,
)


def _event(transition=ReferralTransition.SCHEDULED):
    referral = Referral(
        patient_id="pat-1",
        provider_id="p-heart",
        service_type="Cardiology",
        status=ReferralStatus.SCHEDULED,
        version=2,
    )
    return ReferralEvent(
        referral=referral,
        transition=transition,
        old_status=ReferralStatus.SENT,
        new_status=ReferralStatus.SCHEDULED,
        actor="Care Coordinator",
    )


class TestReferralEventBus:
    """Tests for ReferralEventBus."""

    @pytest.mark.asyncio
    async def test_sync_and_async_handlers(self):
        """Test both handler kinds receive the event."""
        bus = ReferralEventBus()
        received = []

        async def async_handler(event):
            received.append(("async", event.transition))

        bus.subscribe(lambda event: received.append(("sync", event.transition)))
        bus.subscribe(async_handler)

        delivered = await bus.publish(_event())

        assert delivered == 2
        assert ("sync", ReferralTransition.SCHEDULED) in received
        assert ("async", ReferralTransition.SCHEDULED) in received

    @pytest.mark.asyncio
    async def test_transition_filter(self):
        """Test handlers registered for a transition only see that transition."""
        bus = ReferralEventBus()
        cancelled = []
        bus.subscribe(cancelled.append, ReferralTransition.CANCELLED)

        await bus.publish(_event(ReferralTransition.SCHEDULED))
        await bus.publish(_event(ReferralTransition.CANCELLED))

        assert [e.transition for e in cancelled] == [ReferralTransition.CANCELLED]

    @pytest.mark.asyncio
    async def test_failing_handler_is_isolated(self):
        """Test one failing handler does not stop the others."""
        bus = ReferralEventBus()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(received.append)

        delivered = await bus.publish(_event())

        assert delivered == 1
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_failing_handler_logs_traceback(self):
        """Test handler failures are logged with exception info."""
        bus = ReferralEventBus()

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(broken)

        with capture_logs() as logs:
            await bus.publish(_event())

        failure = next(e for e in logs if e["event"] == "referral_event_handler_failed")
        assert failure["log_level"] == "error"
        assert failure["exc_info"] is True
        assert failure["handler"] == "broken"

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        """Test removed handlers stop receiving events."""
        bus = ReferralEventBus()
        received = []
        bus.subscribe(received.append)
        bus.subscribe(received.append, ReferralTransition.SCHEDULED)

        bus.unsubscribe(received.append)
        delivered = await bus.publish(_event())

        assert delivered == 0
        assert received == []
