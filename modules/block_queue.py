"""
BLOCK INGESTION QUEUE
=====================
Serializes block processing behind a bounded, height-ordered queue.

Hard Constraints:
1. One block in flight at a time, lowest height first
2. Never more than max_pending unstarted heights; overflow evicts the
   oldest unstarted height (dropped-due-to-backpressure)
3. The in-flight block is never evicted
4. Heights at or below the last started height are stale and ignored
"""

import asyncio
import heapq
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Set

logger = logging.getLogger(__name__)


class BlockIngestionQueue:

    def __init__(self, processor: Callable[[int], Awaitable], max_pending: int = 32,
                 name: str = "ethereum"):
        if max_pending < 1:
            raise ValueError("max_pending must be >= 1")
        self.processor = processor
        self.max_pending = max_pending
        self.name = name

        self._pending: List[int] = []       # min-heap of unstarted heights
        self._pending_set: Set[int] = set()
        self._in_flight: Optional[int] = None
        self._last_started = -1

        self._wakeup = asyncio.Event()
        self._running = asyncio.Event()     # cleared while paused
        self._running.set()
        self._accepting = True
        self._closed = False
        self._consumer: Optional[asyncio.Task] = None
        self._current: Optional[asyncio.Task] = None

        self.stats_counters: Dict[str, int] = {
            'submitted': 0,
            'processed': 0,
            'failed': 0,
            'dropped_backpressure': 0,
            'stale': 0,
        }

    @property
    def in_flight(self) -> Optional[int]:
        return self._in_flight

    @property
    def pending(self) -> List[int]:
        return sorted(self._pending)

    @property
    def is_paused(self) -> bool:
        return not self._running.is_set()

    def submit(self, block_number: int) -> bool:
        """Enqueue a height. Returns False when ignored (stopped, duplicate or stale)."""
        if not self._accepting:
            return False

        if block_number <= self._last_started or block_number in self._pending_set:
            self.stats_counters['stale'] += 1
            logger.debug(f"[{self.name.upper()}] Ignoring stale/duplicate block {block_number}")
            return False

        self.stats_counters['submitted'] += 1
        if len(self._pending) >= self.max_pending:
            evicted = heapq.heappushpop(self._pending, block_number)
            self._pending_set.add(block_number)
            self._pending_set.discard(evicted)
            self.stats_counters['dropped_backpressure'] += 1
            logger.warning(
                f"⚠️  [{self.name.upper()}] Queue full ({self.max_pending}) - "
                f"dropped block {evicted} due to backpressure"
            )
            accepted = evicted != block_number
        else:
            heapq.heappush(self._pending, block_number)
            self._pending_set.add(block_number)
            accepted = True

        self._wakeup.set()
        return accepted

    def pause(self):
        if self._running.is_set():
            self._running.clear()
            logger.warning(f"⏸️  [{self.name.upper()}] Block ingestion paused")

    def resume(self):
        if not self._running.is_set():
            self._running.set()
            logger.info(f"▶️  [{self.name.upper()}] Block ingestion resumed")

    def start(self):
        if self._consumer is None:
            self._consumer = asyncio.create_task(self._consume(), name=f"block-queue-{self.name}")
            logger.info(f"📥 [{self.name.upper()}] Block ingestion queue started (max pending: {self.max_pending})")

    async def _consume(self):
        while not self._closed:
            await self._running.wait()
            if self._closed:
                break

            if not self._pending:
                self._wakeup.clear()
                await self._wakeup.wait()
                continue

            block_number = heapq.heappop(self._pending)
            self._pending_set.discard(block_number)
            self._in_flight = block_number
            self._last_started = block_number

            self._current = asyncio.create_task(self.processor(block_number),
                                                name=f"block-{self.name}-{block_number}")
            try:
                await asyncio.shield(self._current)
                self.stats_counters['processed'] += 1
            except asyncio.CancelledError:
                if not self._current.cancelled():
                    # The consumer itself was cancelled; leave the block to stop()
                    raise
                logger.warning(f"🛑 [{self.name.upper()}] Block {block_number} cancelled")
            except Exception as e:
                self.stats_counters['failed'] += 1
                logger.error(f"❌ [{self.name.upper()}] Block {block_number} failed: {e}", exc_info=True)
            finally:
                self._in_flight = None
                self._current = None

    async def join(self):
        """Wait until every pending height has been processed (used by tests and replays)"""
        while (self._pending or self._in_flight is not None) and not self._closed:
            await asyncio.sleep(0.01)

    async def stop(self, grace: float = 15.0):
        """
        Stop accepting heights, drop unstarted ones, give the in-flight block
        `grace` seconds to finish, then cancel it.
        """
        self._accepting = False
        dropped = len(self._pending)
        self._pending.clear()
        self._pending_set.clear()
        if dropped:
            logger.info(f"🧹 [{self.name.upper()}] Discarded {dropped} unstarted blocks on shutdown")

        current = self._current
        if current is not None and not current.done():
            done, _ = await asyncio.wait({current}, timeout=grace)
            if not done:
                logger.warning(f"⏱️  [{self.name.upper()}] Grace period expired - cancelling block {self._in_flight}")
                current.cancel()
                await asyncio.gather(current, return_exceptions=True)

        self._closed = True
        self._wakeup.set()
        self._running.set()
        if self._consumer is not None:
            self._consumer.cancel()
            await asyncio.gather(self._consumer, return_exceptions=True)
            self._consumer = None
        logger.info(f"📴 [{self.name.upper()}] Block ingestion queue stopped")

    def stats(self) -> Dict[str, int]:
        return dict(self.stats_counters, pending=len(self._pending))
