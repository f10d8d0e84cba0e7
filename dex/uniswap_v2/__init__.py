"""
Uniswap V2 DEX Module.

Pair lookup and pooled-ETH estimation for freshly deployed tokens.
"""

from .liquidity_resolver import LiquidityResolver, PoolLiquidity, ZERO_ADDRESS

__all__ = [
    'LiquidityResolver',
    'PoolLiquidity',
    'ZERO_ADDRESS'
]
