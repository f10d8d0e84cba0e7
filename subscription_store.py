"""
SUBSCRIPTION STORE

In-memory ETH-threshold subscriptions per Telegram chat.

- Several thresholds per recipient; re-adding one is a no-op
- Forum thread ids registered per recipient (fan-out targets)
- snapshot() gives the pipeline a stable, sorted copy so command handling
  can mutate the store while blocks are being matched
"""

from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Set, Union
import threading

from models import Subscription


def parse_threshold(value: Union[str, int, float, Decimal]) -> Decimal:
    """
    Parse a user-supplied ETH amount.

    Raises:
        ValueError: not a finite, non-negative number
    """
    try:
        threshold = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid ETH value: {value!r}") from e
    if not threshold.is_finite() or threshold < 0:
        raise ValueError(f"ETH value must be a non-negative number: {value!r}")
    return threshold


class SubscriptionStore:

    def __init__(self):
        self._thresholds: Dict[int, Set[Decimal]] = {}
        self._threads: Dict[int, Set[int]] = {}
        self._lock = threading.Lock()

    def add(self, recipient_id: int, threshold, thread_id: Optional[int] = None) -> bool:
        """Subscribe; returns False when the threshold was already registered."""
        threshold = parse_threshold(threshold)
        with self._lock:
            thresholds = self._thresholds.setdefault(recipient_id, set())
            if thread_id is not None:
                self._threads.setdefault(recipient_id, set()).add(thread_id)
            if threshold in thresholds:
                return False
            thresholds.add(threshold)
            return True

    def remove(self, recipient_id: int, threshold) -> bool:
        """Unsubscribe one threshold; returns False when it was not registered."""
        threshold = parse_threshold(threshold)
        with self._lock:
            thresholds = self._thresholds.get(recipient_id)
            if not thresholds or threshold not in thresholds:
                return False
            thresholds.discard(threshold)
            return True

    def has_subscriptions(self, recipient_id: int) -> bool:
        with self._lock:
            return bool(self._thresholds.get(recipient_id))

    def list_thresholds(self, recipient_id: int) -> List[Decimal]:
        with self._lock:
            return sorted(self._thresholds.get(recipient_id, ()))

    def snapshot(self) -> List[Subscription]:
        """Stable copy ordered by (recipient, threshold)"""
        with self._lock:
            subscriptions = [
                Subscription(
                    recipient_id=recipient_id,
                    threshold=threshold,
                    thread_ids=frozenset(self._threads.get(recipient_id, ())),
                )
                for recipient_id, thresholds in self._thresholds.items()
                for threshold in thresholds
            ]
        subscriptions.sort(key=lambda s: (str(s.recipient_id), s.threshold))
        return subscriptions
