"""
Referral Event Bus

In-process publish/subscribe for referral domain events. Notification
delivery (toasts, sounds, desktop alerts) subscribes here instead of being
called from lifecycle code.
"""

import inspect
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from structlog import get_logger

from ..referral_store.models import Referral, ReferralStatus, utc_now

logger = get_logger()


class ReferralTransition(str, Enum):
    """Kind of lifecycle step an event reports."""

    CREATED = "created"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ReferralEvent(BaseModel):
    """Structured domain event emitted after a successful lifecycle transition."""

    model_config = ConfigDict(frozen=True)

    referral: Referral
    transition: ReferralTransition
    old_status: ReferralStatus
    new_status: ReferralStatus
    actor: str
    occurred_at: datetime = Field(default_factory=utc_now)


EventHandler = Callable[[ReferralEvent], Union[None, Awaitable[None]]]


class ReferralEventBus:
    """
    Dispatches referral events to registered handlers.

    Handlers may be plain or async callables. A failing handler is logged and
    skipped; it never propagates into the lifecycle operation that published.
    """

    def __init__(self) -> None:
        self._handlers: dict[ReferralTransition, list[EventHandler]] = {}
        self._default_handlers: list[EventHandler] = []

    def subscribe(
        self,
        handler: EventHandler,
        transition: Optional[ReferralTransition] = None,
    ) -> None:
        """
        Register a handler.

        Args:
            handler: Callable receiving the event
            transition: Only deliver this transition (all transitions if not provided)
        """
        if transition is None:
            self._default_handlers.append(handler)
        else:
            self._handlers.setdefault(transition, []).append(handler)
        logger.debug(
            "referral_event_handler_registered",
            transition=transition.value if transition else "*",
        )

    def unsubscribe(self, handler: EventHandler) -> None:
        """Remove a handler from every registration."""
        self._default_handlers = [h for h in self._default_handlers if h != handler]
        for transition, handlers in self._handlers.items():
            self._handlers[transition] = [h for h in handlers if h != handler]

    async def publish(self, event: ReferralEvent) -> int:
        """
        Deliver an event to matching handlers.

        Returns:
            Number of handlers that completed without error
        """
        handlers = self._handlers.get(event.transition, []) + self._default_handlers
        delivered = 0

        for handler in handlers:
            try:
                result: Any = handler(event)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception:
                logger.exception(
                    "referral_event_handler_failed",
                    transition=event.transition.value,
                    referral_id=event.referral.referral_id,
                    handler=getattr(handler, "__name__", repr(handler)),
                )

        return delivered
