"""
Block pipeline: receipt triage -> bounded enrichment -> dispatch.

One BlockPipeline.process_block() call per height, driven by the
BlockIngestionQueue consumer.
"""
import asyncio
import logging

from models import Candidate

logger = logging.getLogger(__name__)


class BlockPipeline:

    def __init__(self, scanner, enricher, dispatcher, max_workers: int = 4):
        self.scanner = scanner
        self.enricher = enricher
        self.dispatcher = dispatcher
        self._workers = asyncio.Semaphore(max(1, max_workers))
        self._dispatching = set()
        self.stats = {
            'blocks': 0,
            'deployments': 0,
            'tokens': 0,
            'candidate_errors': 0,
        }

    async def process_block(self, block_number: int):
        logger.info(f"📦 Processing block {block_number}")
        candidates = await self.scanner.get_contract_creations(block_number)
        self.stats['blocks'] += 1
        self.stats['deployments'] += len(candidates)
        if not candidates:
            return

        await asyncio.gather(*(self._process_candidate(c) for c in candidates))

    async def _process_candidate(self, candidate: Candidate):
        async with self._workers:
            try:
                enriched = await self.enricher.enrich(candidate)
            except Exception as e:
                self.stats['candidate_errors'] += 1
                logger.error(f"❌ Enrichment failed for {candidate.contract_address}: {e}", exc_info=True)
                return

        if enriched is None:
            return
        self.stats['tokens'] += 1

        # Once started, a candidate's fan-out completes even during shutdown
        task = asyncio.ensure_future(self.dispatcher.dispatch(enriched))
        self._dispatching.add(task)
        task.add_done_callback(self._dispatching.discard)
        try:
            await asyncio.shield(task)
        except Exception as e:
            self.stats['candidate_errors'] += 1
            logger.error(f"❌ Dispatch failed for {candidate.contract_address}: {e}", exc_info=True)

    async def drain(self):
        """Wait for fan-outs that were already started (shutdown)."""
        if self._dispatching:
            logger.info(f"⏳ Waiting for {len(self._dispatching)} in-progress alert fan-out(s)")
            await asyncio.gather(*list(self._dispatching), return_exceptions=True)
