"""
Alert Dispatcher - subscription matching and fan-out

A candidate matches a subscription when either its contract balance or its
pooled ETH reaches the subscription's threshold. Each match is delivered to
every registered thread of the recipient, or once to the default chat when
no thread is registered, never twice per (token, recipient, threshold,
thread) within a pass.
"""
import logging
from typing import Iterable, List

from models import Candidate, NotificationEvent, Subscription
from telegram_notifier import TransportError, format_gem_alert

logger = logging.getLogger(__name__)


class SubscriptionMatcher:

    def match(self, candidate: Candidate, subscriptions: Iterable[Subscription]) -> List[NotificationEvent]:
        balance_eth = candidate.balance_eth
        liquidity_eth = candidate.liquidity_eth

        events = []
        seen = set()
        for subscription in subscriptions:
            threshold = subscription.threshold
            if not (balance_eth >= threshold or liquidity_eth >= threshold):
                continue

            targets = sorted(subscription.thread_ids) or [None]
            for thread_id in targets:
                event = NotificationEvent(
                    candidate=candidate,
                    recipient_id=subscription.recipient_id,
                    threshold=threshold,
                    thread_id=thread_id,
                )
                if event.key in seen:
                    continue
                seen.add(event.key)
                events.append(event)
        return events


class AlertDispatcher:
    """
    Matches an enriched candidate against a store snapshot and sends one
    alert per resulting event through the transport.
    """

    def __init__(self, store, transport, chain_config: dict, matcher: SubscriptionMatcher = None):
        self.store = store
        self.transport = transport
        self.chain_config = chain_config
        self.matcher = matcher or SubscriptionMatcher()
        self.stats = {
            'alerts_sent': 0,
            'alerts_failed': 0,
        }

    async def dispatch(self, candidate: Candidate) -> int:
        """Returns the number of alerts delivered."""
        events = self.matcher.match(candidate, self.store.snapshot())
        if not events:
            logger.info(
                f"🔕 {candidate.token_symbol} ({candidate.contract_address}) matched no subscription "
                f"(balance {candidate.balance_eth} ETH, LP {candidate.liquidity_eth} ETH)"
            )
            return 0

        delivered = 0
        for event in events:
            text = format_gem_alert(candidate, event.threshold, self.chain_config)
            try:
                sent = await self.transport.send(event.recipient_id, text, thread_id=event.thread_id)
            except TransportError as e:
                self.stats['alerts_failed'] += 1
                logger.warning(f"⚠️  Alert to {event.recipient_id} failed: {e}")
                continue
            if not sent:
                continue
            delivered += 1
            self.stats['alerts_sent'] += 1
            logger.info(
                f"📨 Sent {candidate.token_symbol} alert to {event.recipient_id}"
                f"{f' thread {event.thread_id}' if event.thread_id is not None else ''} "
                f"(threshold {event.threshold} ETH)"
            )
        return delivered
