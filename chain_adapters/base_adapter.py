"""
Chain adapter base interface consumed by the block pipeline
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class ChainError(Exception):
    """Base class for chain client failures"""


class TransientError(ChainError):
    """Rate limit, timeout or connection failure - safe to retry"""


class InvalidContractError(ChainError):
    """Address is not a token contract (call reverted / no such function)"""


class ChainAdapter(ABC):
    """Base interface for all blockchain adapters"""

    def __init__(self, config: dict):
        self.config = config
        self.chain_name = ""

    @abstractmethod
    def connect(self) -> bool:
        """Connect to the blockchain and verify connectivity"""
        pass

    @abstractmethod
    async def get_block_number(self) -> int:
        pass

    @abstractmethod
    async def get_receipts(self, block_number: int) -> List[Dict[str, Any]]:
        """
        All transaction receipts of a block.
        Each receipt exposes at least 'contractAddress' (None unless the tx
        deployed a contract), 'from' and 'transactionHash'.
        """
        pass

    @abstractmethod
    async def get_token_metadata(self, token_address: str) -> Dict[str, Any]:
        """
        Fetch token name, symbol, decimals.
        Returns: {'name': str, 'symbol': str, 'decimals': int}
        Raises InvalidContractError for non-token contracts.
        """
        pass

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        """Native balance in wei at the latest block"""
        pass

    @abstractmethod
    async def find_contract_deployer(self, contract_address: str) -> Optional[str]:
        pass

    @abstractmethod
    async def call_function(self, address: str, abi: list, fn_name: str, *args) -> Any:
        """Read-only eth_call of fn_name on the contract at address"""
        pass

    def get_chain_prefix(self) -> str:
        """Return chain prefix for log lines"""
        return f"[{self.chain_name.upper()}]"
