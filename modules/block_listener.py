import asyncio
import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class NewBlockFeed:
    """
    Block listener per chain.
    Polls eth_blockNumber and hands every new height to its subscribers.

    A run of `disconnect_after` failed polls is treated as a chain-client
    disconnect: on_disconnect fires once, and on_reconnect fires on the
    next successful poll. Heights missed while disconnected are not
    replayed.
    """

    def __init__(self, adapter, poll_interval: float = 3.0, disconnect_after: int = 5,
                 on_disconnect: Optional[Callable[[], None]] = None,
                 on_reconnect: Optional[Callable[[], None]] = None,
                 max_catchup: int = 16):
        self.adapter = adapter
        self.chain = getattr(adapter, 'chain_name', '') or 'chain'
        self.poll_interval = poll_interval
        self.disconnect_after = max(1, disconnect_after)
        self.on_disconnect = on_disconnect
        self.on_reconnect = on_reconnect
        self.max_catchup = max_catchup

        self.latest_block = 0
        self.subscribers: List[Callable[[int], object]] = []
        self.is_running = False
        self.disconnected = False
        self.consecutive_failures = 0
        self._task = None

    def subscribe(self, callback: Callable[[int], object]):
        """
        Subscribe to new block events.
        Callback signature: def callback(block_number: int)
        """
        if callback not in self.subscribers:
            self.subscribers.append(callback)
            logger.info(f"🔗 [{self.chain.upper()}] New subscriber registered for block feed")

    def start(self):
        if not self.is_running:
            self.is_running = True
            self._task = asyncio.create_task(self._poll_loop(), name=f"block-feed-{self.chain}")
            logger.info(f"🔗 [{self.chain.upper()}] Block feed started (interval: {self.poll_interval}s)")

    async def stop(self):
        self.is_running = False
        if self._task:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

    def _publish(self, block_number: int):
        for callback in self.subscribers:
            try:
                callback(block_number)
            except Exception as cb_e:
                logger.warning(f"⚠️  [{self.chain.upper()}] Subscriber error: {cb_e}")

    async def poll_once(self):
        """One eth_blockNumber round-trip; publishes every height above the last one seen"""
        try:
            new_block = await self.adapter.get_block_number()
        except Exception as e:
            self._record_failure(e)
            return

        if self.disconnected:
            self.disconnected = False
            logger.info(f"✅ [{self.chain.upper()}] Chain client reconnected at block {new_block}")
            if self.on_reconnect:
                self.on_reconnect()
            # No backfill of blocks missed during the outage
            self.latest_block = new_block - 1
        self.consecutive_failures = 0

        if self.latest_block == 0:
            self.latest_block = new_block - 1
            logger.info(f"🔗 [{self.chain.upper()}] Initial block: {new_block}")

        if new_block <= self.latest_block:
            return

        first = max(self.latest_block + 1, new_block - self.max_catchup + 1)
        self.latest_block = new_block
        for block_number in range(first, new_block + 1):
            logger.debug(f"🔥 [{self.chain.upper()}] New block detected: {block_number}")
            self._publish(block_number)

    def _record_failure(self, error: Exception):
        self.consecutive_failures += 1
        logger.warning(f"⚠️  [{self.chain.upper()}] Block poll error ({self.consecutive_failures}): {error}")
        if not self.disconnected and self.consecutive_failures >= self.disconnect_after:
            self.disconnected = True
            logger.error(
                f"🚨 [{self.chain.upper()}] Chain client disconnected after "
                f"{self.consecutive_failures} failed polls - pausing ingestion"
            )
            if self.on_disconnect:
                self.on_disconnect()

    async def _poll_loop(self):
        while self.is_running:
            await self.poll_once()
            delay = self.poll_interval if not self.consecutive_failures else min(
                self.poll_interval * (2 ** min(self.consecutive_failures, 4)), 60)
            await asyncio.sleep(delay)
