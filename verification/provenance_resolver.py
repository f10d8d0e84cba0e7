"""
Provenance Resolver

Verified source -> links; unverified or unreachable registry -> verified=False.
"""
import logging

from chain_adapters.base_adapter import TransientError
from models import Candidate
from retry_utils import retry_async

from .etherscan_client import EtherscanError
from .link_extractor import extract_links

logger = logging.getLogger(__name__)


class ProvenanceResolver:
    """Fills Candidate.verified and Candidate.links from the verification registry."""

    def __init__(self, registry, max_retries: int = 3, base_delay: float = 1.0):
        self.registry = registry
        self.max_retries = max_retries
        self.base_delay = base_delay

    async def resolve(self, candidate: Candidate) -> Candidate:
        address = candidate.contract_address

        try:
            verified = await retry_async(self.registry.is_verified, address,
                                         max_retries=self.max_retries, base_delay=self.base_delay)
        except (TransientError, EtherscanError) as e:
            logger.warning(f"⚠️  [PROVENANCE] Registry unavailable for {address}, treating as unverified: {e}")
            verified = False

        candidate.verified = verified
        if not verified:
            return candidate

        try:
            source_code = await retry_async(self.registry.get_source_code, address,
                                            max_retries=self.max_retries, base_delay=self.base_delay)
        except (TransientError, EtherscanError) as e:
            logger.warning(f"⚠️  [PROVENANCE] Could not fetch source for {address}: {e}")
            return candidate

        if source_code:
            candidate.links = extract_links(source_code)
            logger.info(
                f"🔗 [PROVENANCE] {address} website={candidate.links.website} "
                f"telegram={candidate.links.telegram} x={candidate.links.x}"
            )
        return candidate
