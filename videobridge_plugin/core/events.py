"""Host property event dispatcher.

Version: 1.0.0

The host notifies plugins whenever one of its properties is set or deleted.
This module fans those notifications out to registered listeners. A
subscription is an explicit object returned by ``subscribe`` and handed back
to ``unsubscribe``, so a listener's lifetime follows whoever owns the
subscription rather than a process-wide registry.

Event kinds:
- property.set / property.deleted: regular host properties
- xml_property.set / xml_property.deleted: properties sourced from the host's
  XML configuration file
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class PropertyEventKind(str, Enum):
    """Kinds of property notifications sent by the host."""

    PROPERTY_SET = "property.set"
    PROPERTY_DELETED = "property.deleted"
    XML_PROPERTY_SET = "xml_property.set"
    XML_PROPERTY_DELETED = "xml_property.deleted"


@runtime_checkable
class PropertyEventListener(Protocol):
    """Callbacks invoked by the host for property changes.

    ``params`` contains the new value under the ``"value"`` key for the
    ``*_set`` callbacks.
    """

    def property_set(self, name: str, params: Dict[str, Any]) -> None:
        ...

    def property_deleted(self, name: str, params: Dict[str, Any]) -> None:
        ...

    def xml_property_set(self, name: str, params: Dict[str, Any]) -> None:
        ...

    def xml_property_deleted(self, name: str, params: Dict[str, Any]) -> None:
        ...


@dataclass(eq=False)
class PropertySubscription:
    """Handle for a registered listener."""

    listener: PropertyEventListener
    owner: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    active: bool = True


_CALLBACKS = {
    PropertyEventKind.PROPERTY_SET: "property_set",
    PropertyEventKind.PROPERTY_DELETED: "property_deleted",
    PropertyEventKind.XML_PROPERTY_SET: "xml_property_set",
    PropertyEventKind.XML_PROPERTY_DELETED: "xml_property_deleted",
}


class PropertyEventDispatcher:
    """Fans host property notifications out to subscribed listeners.

    Listener failures are logged and contained; one faulty listener never
    prevents the others from being notified.

    Usage:
        dispatcher = PropertyEventDispatcher()
        subscription = dispatcher.subscribe(listener, owner="videobridge")
        dispatcher.property_set("some.property", {"value": "42"})
        dispatcher.unsubscribe(subscription)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: List[PropertySubscription] = []

    def subscribe(
        self,
        listener: PropertyEventListener,
        owner: Optional[str] = None,
    ) -> PropertySubscription:
        """Register ``listener`` for all property notifications.

        Args:
            listener: Object implementing the four callbacks
            owner: Optional label used in log messages

        Returns:
            Subscription object for later unsubscribe
        """
        subscription = PropertySubscription(listener=listener, owner=owner)
        with self._lock:
            self._subscriptions.append(subscription)

        logger.debug("Subscribed property listener (owner: %s)", owner or "unknown")
        return subscription

    def unsubscribe(self, subscription: Optional[PropertySubscription]) -> bool:
        """Remove a subscription.

        Never raises: unknown, already removed or missing subscriptions are
        reported by the return value only.

        Returns:
            True if the subscription was active and is now removed
        """
        if subscription is None:
            return False

        with self._lock:
            try:
                self._subscriptions.remove(subscription)
            except ValueError:
                return False
            subscription.active = False

        logger.debug(
            "Unsubscribed property listener (owner: %s)",
            subscription.owner or "unknown"
        )
        return True

    def get_subscriptions(self) -> List[PropertySubscription]:
        with self._lock:
            return list(self._subscriptions)

    # =========================================================================
    # Host-facing notification entry points
    # =========================================================================

    def property_set(self, name: str, params: Dict[str, Any]) -> None:
        self.dispatch(PropertyEventKind.PROPERTY_SET, name, params)

    def property_deleted(self, name: str, params: Optional[Dict[str, Any]] = None) -> None:
        self.dispatch(PropertyEventKind.PROPERTY_DELETED, name, params or {})

    def xml_property_set(self, name: str, params: Dict[str, Any]) -> None:
        self.dispatch(PropertyEventKind.XML_PROPERTY_SET, name, params)

    def xml_property_deleted(self, name: str, params: Optional[Dict[str, Any]] = None) -> None:
        self.dispatch(PropertyEventKind.XML_PROPERTY_DELETED, name, params or {})

    def dispatch(
        self,
        kind: PropertyEventKind,
        name: str,
        params: Dict[str, Any],
    ) -> int:
        """Deliver one notification to every subscriber.

        Returns:
            Number of listeners that handled the event without raising
        """
        callback_name = _CALLBACKS[kind]
        delivered = 0

        # Snapshot so listeners may unsubscribe while being notified.
        for subscription in self.get_subscriptions():
            try:
                getattr(subscription.listener, callback_name)(name, params)
                delivered += 1
            except Exception as e:
                logger.error(
                    "Error in property listener for '%s' (%s, owner: %s): %s",
                    name,
                    kind.value,
                    subscription.owner or "unknown",
                    e,
                    exc_info=True,
                )

        logger.debug("Dispatched %s '%s' to %d listeners", kind.value, name, delivered)
        return delivered
