"""
EVM chain adapters used by the gem detector.
"""
import logging

from .base_adapter import ChainAdapter, ChainError, TransientError, InvalidContractError
from .evm_adapter import EVMAdapter
from .base_adapter_impl import BaseChainAdapter
from .ethereum_adapter import EthereumAdapter

logger = logging.getLogger(__name__)

ADAPTERS = {
    'ethereum': EthereumAdapter,
    'base': BaseChainAdapter,
}


def get_adapter_for_chain(chain_name: str, config: dict):
    """Adapter instance for chain_name (see chains.yaml), or None if unsupported."""
    adapter_class = ADAPTERS.get(chain_name.lower())
    if adapter_class is None:
        logger.error(f"❌ Unsupported chain '{chain_name}' (supported: {', '.join(ADAPTERS)})")
        return None
    return adapter_class(config)


__all__ = [
    'ADAPTERS',
    'ChainAdapter',
    'ChainError',
    'TransientError',
    'InvalidContractError',
    'EVMAdapter',
    'BaseChainAdapter',
    'EthereumAdapter',
    'get_adapter_for_chain',
]
