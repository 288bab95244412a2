"""
In-process snapshot subscriptions.

Subscribers register a callback on a topic (e.g. ``conversation:<id>``) and
receive the full, ordered state of that topic right away and again after
every change. Nothing finer-grained than a full snapshot is delivered, so
callers that need "what is new" compare against what they saw last.

WebSocket clients get the same snapshots through Channels groups (see
apps.websocket.services); this hub serves in-process consumers such as
background workers and tests.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Callback = Callable[[Any], None]
Loader = Callable[[], Any]


class SnapshotHub:
    """
    Topic-keyed registry of snapshot callbacks.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[Callback]] = defaultdict(list)

    def subscribe(self, topic: str, load: Loader, callback: Callback) -> Callable[[], None]:
        """
        Register ``callback`` for ``topic`` and deliver the current snapshot.

        Returns:
            A function that removes the subscription. Calling it twice is harmless.
        """
        with self._lock:
            self._subscribers[topic].append(callback)

        callback(load())

        def unsubscribe():
            with self._lock:
                callbacks = self._subscribers.get(topic)
                if callbacks and callback in callbacks:
                    callbacks.remove(callback)
                    if not callbacks:
                        del self._subscribers[topic]

        return unsubscribe

    def has_subscribers(self, topic: str) -> bool:
        with self._lock:
            return bool(self._subscribers.get(topic))

    def publish(self, topic: str, load: Loader) -> int:
        """
        Deliver a fresh snapshot of ``topic`` to every subscriber.

        ``load`` only runs when somebody is listening. A failing callback is
        logged and does not stop delivery to the others.

        Returns:
            Number of callbacks invoked
        """
        with self._lock:
            callbacks = list(self._subscribers.get(topic, ()))

        if not callbacks:
            return 0

        snapshot = load()
        for callback in callbacks:
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f'[snapshots] Subscriber for {topic} failed: {e}', exc_info=True)

        return len(callbacks)

    def clear(self):
        with self._lock:
            self._subscribers.clear()


# Process-wide hub shared by the messaging and conversation services
snapshot_hub = SnapshotHub()
