"""
Uniswap V2 Liquidity Resolver

Finds the TOKEN/WETH pair through the factory and reads the WETH-side
reserve as the pooled ETH estimate. No pair, or any failed call, means
zero detectable liquidity.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from web3 import Web3

from retry_utils import retry_async

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

UNISWAP_V2_FACTORY_ABI = [
    {"constant": True, "inputs": [
        {"name": "tokenA", "type": "address"},
        {"name": "tokenB", "type": "address"}
    ], "name": "getPair", "outputs": [{"name": "pair", "type": "address"}], "type": "function"}
]

UNISWAP_V2_PAIR_ABI = [
    {"constant": True, "inputs": [], "name": "getReserves", "outputs": [
        {"name": "reserve0", "type": "uint112"},
        {"name": "reserve1", "type": "uint112"},
        {"name": "blockTimestampLast", "type": "uint32"}
    ], "type": "function"},
    {"constant": True, "inputs": [], "name": "token0", "outputs": [{"name": "", "type": "address"}], "type": "function"}
]


@dataclass
class PoolLiquidity:
    pair_address: Optional[str] = None
    weth_reserve_wei: int = 0


class LiquidityResolver:
    """
    Resolves pooled ETH for a token via the chain adapter's read-only calls.
    """

    def __init__(self, adapter, factory_address: str, weth_address: str,
                 max_retries: int = 3, base_delay: float = 1.0):
        self.adapter = adapter
        self.factory_address = Web3.to_checksum_address(factory_address)
        self.weth_address = Web3.to_checksum_address(weth_address)
        self.max_retries = max_retries
        self.base_delay = base_delay

    async def _call(self, address: str, abi: list, fn_name: str, *args):
        return await retry_async(self.adapter.call_function, address, abi, fn_name, *args,
                                 max_retries=self.max_retries, base_delay=self.base_delay)

    async def get_pair_address(self, token_address: str) -> Optional[str]:
        """Factory getPair(token, WETH); None when no pool exists"""
        pair = await self._call(self.factory_address, UNISWAP_V2_FACTORY_ABI, 'getPair',
                                Web3.to_checksum_address(token_address), self.weth_address)
        if not pair or pair.lower() == ZERO_ADDRESS:
            return None
        return pair

    async def get_weth_reserve(self, pair_address: str) -> int:
        reserves = await self._call(pair_address, UNISWAP_V2_PAIR_ABI, 'getReserves')
        token0 = await self._call(pair_address, UNISWAP_V2_PAIR_ABI, 'token0')

        # Determine which reserve is WETH
        if token0.lower() == self.weth_address.lower():
            return int(reserves[0])
        return int(reserves[1])

    async def resolve(self, token_address: str) -> PoolLiquidity:
        try:
            pair_address = await self.get_pair_address(token_address)
        except Exception as e:
            logger.warning(f"⚠️  [LIQUIDITY] getPair failed for {token_address}: {e}")
            return PoolLiquidity()

        if pair_address is None:
            logger.debug(f"[LIQUIDITY] No WETH pair for {token_address}")
            return PoolLiquidity()

        try:
            reserve = await self.get_weth_reserve(pair_address)
        except Exception as e:
            logger.warning(f"⚠️  [LIQUIDITY] Reserve read failed for pair {pair_address}: {e}")
            return PoolLiquidity(pair_address=pair_address)

        return PoolLiquidity(pair_address=pair_address, weth_reserve_wei=reserve)
