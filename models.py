"""
Pipeline data model

Candidate: one per contract-creation receipt, mutated in place by each
enrichment stage and dropped after dispatch.
Subscription / NotificationEvent: matcher inputs and outputs.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import FrozenSet, Optional

from web3 import Web3


def wei_to_eth(wei: Optional[int]) -> Decimal:
    """18-decimal fixed-point conversion from wei to ETH."""
    if not wei:
        return Decimal(0)
    return Decimal(Web3.from_wei(int(wei), 'ether'))


@dataclass
class TokenLinks:
    website: Optional[str] = None
    telegram: Optional[str] = None
    x: Optional[str] = None

    def is_complete(self) -> bool:
        return bool(self.website and self.telegram and self.x)


@dataclass
class Candidate:
    """A freshly deployed contract travelling through the enrichment stages."""
    contract_address: str
    deployer_address: Optional[str] = None
    block_number: int = 0
    tx_hash: str = ""

    # Token metadata
    token_name: str = ""
    token_symbol: str = ""
    decimals: int = 0

    # Funding
    balance_wei: int = 0
    deployer_balance_wei: Optional[int] = None

    # Provenance
    verified: bool = False
    links: TokenLinks = field(default_factory=TokenLinks)

    # Liquidity
    lp_pair_address: Optional[str] = None
    lp_reserve_wei: Optional[int] = None

    @property
    def is_fungible(self) -> bool:
        return self.decimals > 0

    @property
    def balance_eth(self) -> Decimal:
        return wei_to_eth(self.balance_wei)

    @property
    def liquidity_eth(self) -> Decimal:
        return wei_to_eth(self.lp_reserve_wei)

    @property
    def deployer_balance_eth(self) -> Decimal:
        return wei_to_eth(self.deployer_balance_wei)


@dataclass(frozen=True)
class Subscription:
    recipient_id: int
    threshold: Decimal
    thread_ids: FrozenSet[int] = frozenset()


@dataclass(frozen=True)
class NotificationEvent:
    candidate: Candidate
    recipient_id: int
    threshold: Decimal
    thread_id: Optional[int] = None

    @property
    def key(self) -> tuple:
        return (
            self.candidate.contract_address.lower(),
            self.recipient_id,
            self.threshold,
            self.thread_id,
        )
