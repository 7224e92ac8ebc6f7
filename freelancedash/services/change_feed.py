"""
In-process change feed.

Services publish ``(collection, event, document)`` after their transaction
commits; dashboards subscribe per collection instead of polling the store.
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from flask import current_app, has_app_context

logger = logging.getLogger(__name__)


class Subscription:
    def __init__(self, feed, collection: str, callback: Callable, match=None) -> None:
        self._feed = feed
        self.collection = collection
        self.callback = callback
        self.match = match
        self.active = True

    def matches(self, document: Dict[str, Any]) -> bool:
        if self.match is None:
            return True
        if callable(self.match):
            return bool(self.match(document))
        return all(document.get(k) == v for k, v in self.match.items())

    def cancel(self) -> None:
        """Stop delivery. Safe to call more than once."""
        self.active = False
        self._feed._remove(self)


class ChangeFeed:
    def __init__(self) -> None:
        # collection -> subscriptions
        self._subscriptions: Dict[str, List[Subscription]] = {}
        self._lock = threading.Lock()

    def subscribe(self, collection: str, callback: Callable, match=None) -> Subscription:
        sub = Subscription(self, collection, callback, match)
        with self._lock:
            self._subscriptions.setdefault(collection, []).append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subscriptions.get(sub.collection)
            if subs is not None and sub in subs:
                subs.remove(sub)
                if not subs:
                    self._subscriptions.pop(sub.collection, None)

    def subscriber_count(self, collection: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(collection, []))

    def publish(self, collection: str, event: str, document: Dict[str, Any]) -> int:
        with self._lock:
            targets = list(self._subscriptions.get(collection, []))

        delivered = 0
        for sub in targets:
            if not sub.active or not sub.matches(document):
                continue
            try:
                sub.callback(event, document)
                delivered += 1
            except Exception:
                logger.exception("Subscriber on %s failed handling %s", collection, event)
        return delivered


def current_feed() -> Optional[ChangeFeed]:
    if has_app_context():
        return current_app.extensions.get("change_feed")
    return None


def publish(feed, collection, event, document):
    feed = feed or current_feed()
    if feed is not None:
        feed.publish(collection, event, document)
