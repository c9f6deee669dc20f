"""Score change notifications.

Subscribers register a callback per lead owner and receive an event dict
after a lead's new score has been persisted. Delivery is in-process; a
websocket or queue transport can subscribe the same way.
"""

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

SCORE_UPDATED = "lead.score_updated"

Subscriber = Callable[[Dict[str, Any]], None]


class ScoreNotifier:
    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = {}
        self._lock = threading.Lock()

    def subscribe(self, owner: str, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for an owner's leads. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers.setdefault(owner, []).append(callback)

        def unsubscribe():
            with self._lock:
                callbacks = self._subscribers.get(owner, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def subscriber_count(self, owner: str) -> int:
        with self._lock:
            return len(self._subscribers.get(owner, []))

    def publish(self, owner: Optional[str], event: Dict[str, Any]) -> int:
        """Deliver an event to an owner's subscribers. Returns the number delivered."""
        if not owner:
            return 0

        with self._lock:
            callbacks = list(self._subscribers.get(owner, []))

        delivered = 0
        for callback in callbacks:
            try:
                callback(event)
                delivered += 1
            except Exception as e:
                logger.error(f"Score notification to {owner} failed: {e}")
        return delivered

    def score_updated(self, lead) -> int:
        """Broadcast a lead's freshly persisted score"""
        event = {
            "type": SCORE_UPDATED,
            "lead_id": lead.lead_id,
            "score": lead.score.current,
            "previous_score": lead.score.previous,
            "confidence": lead.score.confidence,
            "last_calculated": (
                lead.score.last_calculated.isoformat() if lead.score.last_calculated else None
            ),
            "sent_at": datetime.utcnow().isoformat(),
        }
        return self.publish(lead.owner, event)
