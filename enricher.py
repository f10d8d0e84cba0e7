"""
Candidate Enricher

Staged enrichment of a freshly deployed contract:

  Stage 1: Token metadata (cheap; classifies token vs. non-token)
  Stage 2: Contract balance + deployer (+ deployer balance), concurrently
  Stage 3: Provenance  ||  settle wait -> liquidity, concurrently

Each stage mutates the same Candidate. enrich() returns None for discarded
candidates (not a token, decimals == 0, or abandoned during shutdown).
"""
import asyncio
import logging
from typing import Optional

from chain_adapters.base_adapter import ChainError, InvalidContractError
from models import Candidate
from retry_utils import retry_async

logger = logging.getLogger(__name__)


class CandidateEnricher:

    def __init__(self, adapter, provenance_resolver, liquidity_resolver, settle_timer,
                 max_retries: int = 3, base_delay: float = 1.0):
        self.adapter = adapter
        self.provenance = provenance_resolver
        self.liquidity = liquidity_resolver
        self.settle_timer = settle_timer
        self.max_retries = max_retries
        self.base_delay = base_delay

    async def _retry(self, func, *args):
        return await retry_async(func, *args, max_retries=self.max_retries,
                                 base_delay=self.base_delay)

    async def classify(self, candidate: Candidate) -> bool:
        """Stage 1. False means discard: not an ERC20-class token of interest."""
        address = candidate.contract_address
        try:
            metadata = await self._retry(self.adapter.get_token_metadata, address)
        except InvalidContractError:
            logger.debug(f"Not a token contract: {address}")
            return False
        except ChainError as e:
            logger.warning(f"⚠️  Metadata unavailable for {address}, skipping: {e}")
            return False

        candidate.token_name = metadata.get('name') or 'UNKNOWN'
        candidate.token_symbol = metadata.get('symbol') or '???'
        candidate.decimals = int(metadata.get('decimals') or 0)

        if not candidate.is_fungible:
            logger.debug(f"Not an ERC20 token (decimals=0): {address}")
            return False

        logger.info(f"🪙 ERC20 token deployed: {candidate.token_name} ({candidate.token_symbol}) {address}")
        return True

    async def _resolve_deployer(self, candidate: Candidate) -> Optional[str]:
        # Receipt triage already knows the sender of the creating transaction
        if candidate.deployer_address:
            return candidate.deployer_address
        return await self._retry(self.adapter.find_contract_deployer, candidate.contract_address)

    async def _deployer_balance(self, deployer: Optional[str]) -> Optional[int]:
        if not deployer:
            return None
        try:
            return await self._retry(self.adapter.get_balance, deployer)
        except ChainError as e:
            logger.warning(f"⚠️  Deployer balance unavailable for {deployer}: {e}")
            return None

    async def fetch_funding(self, candidate: Candidate) -> bool:
        """Stage 2. False when balance or deployer cannot be fetched."""
        address = candidate.contract_address
        try:
            balance, deployer = await asyncio.gather(
                self._retry(self.adapter.get_balance, address),
                self._resolve_deployer(candidate),
            )
        except ChainError as e:
            logger.warning(f"⚠️  Funding lookup failed for {address}, skipping: {e}")
            return False

        candidate.balance_wei = int(balance)
        candidate.deployer_address = deployer
        candidate.deployer_balance_wei = await self._deployer_balance(deployer)
        logger.info(f"💰 {candidate.token_symbol}: balance {candidate.balance_eth} ETH, deployer {deployer}")
        return True

    async def _settled_liquidity(self, candidate: Candidate) -> bool:
        if not await self.settle_timer.wait():
            return False
        pool = await self.liquidity.resolve(candidate.contract_address)
        candidate.lp_pair_address = pool.pair_address
        candidate.lp_reserve_wei = pool.weth_reserve_wei
        logger.info(f"💧 {candidate.token_symbol}: LP {pool.pair_address} holds {candidate.liquidity_eth} ETH")
        return True

    async def enrich(self, candidate: Candidate) -> Optional[Candidate]:
        if not await self.classify(candidate):
            return None
        if not await self.fetch_funding(candidate):
            return None

        # Stage 3: independent sub-steps merged into the same candidate
        _, settled = await asyncio.gather(
            self.provenance.resolve(candidate),
            self._settled_liquidity(candidate),
        )
        if not settled:
            logger.info(f"🛑 Settle wait cancelled - abandoning {candidate.contract_address}")
            return None
        return candidate
