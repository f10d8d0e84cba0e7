import logging
from typing import List

from web3 import Web3

from models import Candidate
from retry_utils import retry_async

logger = logging.getLogger(__name__)


class DeploymentScanner:
    """Receipt triage: turns a block's contract-creation receipts into Candidates."""

    def __init__(self, adapter, max_retries: int = 3, base_delay: float = 1.0):
        self.adapter = adapter
        self.max_retries = max_retries
        self.base_delay = base_delay

    async def get_contract_creations(self, block_number: int) -> List[Candidate]:
        """
        Candidates for every receipt of block_number with a created contract.
        A block whose receipts cannot be fetched is skipped (empty list).
        """
        try:
            receipts = await retry_async(self.adapter.get_receipts, block_number,
                                         max_retries=self.max_retries, base_delay=self.base_delay)
        except Exception as e:
            logger.warning(f"⏭️  Block {block_number} skipped - receipts unavailable: {e}")
            return []

        candidates = []
        for receipt in receipts:
            contract_address = receipt.get('contractAddress')
            if not contract_address:
                continue

            tx_hash = receipt.get('transactionHash', '')
            if not isinstance(tx_hash, str):
                tx_hash = Web3.to_hex(tx_hash)

            candidates.append(Candidate(
                contract_address=contract_address,
                deployer_address=receipt.get('from'),
                block_number=block_number,
                tx_hash=tx_hash,
            ))

        if candidates:
            logger.info(f"📋 Block {block_number}: {len(candidates)} contract deployment(s) out of {len(receipts)} receipts")
        return candidates
