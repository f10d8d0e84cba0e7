"""Base network adapter"""
from .evm_adapter import EVMAdapter


class BaseChainAdapter(EVMAdapter):
    """
    Base (chain id 8453), Uniswap V2 deployment on Base.
    Receipts are read per transaction, which every Base RPC provider serves.
    """

    supports_block_receipts = False

    def __init__(self, config):
        super().__init__(config)
        self.chain_name = "base"
