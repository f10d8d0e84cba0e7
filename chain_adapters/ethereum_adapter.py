"""Ethereum mainnet adapter"""
from .evm_adapter import EVMAdapter


class EthereumAdapter(EVMAdapter):
    """
    Ethereum mainnet (chain id 1). New tokens are paired on the Uniswap V2
    factory and verified through Etherscan.
    """

    def __init__(self, config):
        super().__init__(config)
        self.chain_name = "ethereum"
