"""
EVM-based chain adapter with shared logic for Ethereum and Base
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests
from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, MethodUnavailable

from .base_adapter import ChainAdapter, InvalidContractError, TransientError

logger = logging.getLogger(__name__)


ERC20_ABI = [
    {"constant": True, "inputs": [], "name": "name", "outputs": [{"name": "", "type": "string"}], "type": "function"},
    {"constant": True, "inputs": [], "name": "symbol", "outputs": [{"name": "", "type": "string"}], "type": "function"},
    {"constant": True, "inputs": [], "name": "decimals", "outputs": [{"name": "", "type": "uint8"}], "type": "function"},
]

# Provider errors that mean "try again later" rather than "bad request"
TRANSIENT_EXCEPTIONS = (
    asyncio.TimeoutError,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    ConnectionError,
    OSError,
)

CONTRACT_EXCEPTIONS = (ContractLogicError, BadFunctionCallOutput)


def _is_rate_limited(error: Exception) -> bool:
    text = str(error).lower()
    return '429' in text or 'rate limit' in text or 'too many requests' in text


def _is_method_missing(error: Exception) -> bool:
    if isinstance(error, MethodUnavailable):
        return True
    text = str(error).lower()
    return '-32601' in text or 'method not found' in text or 'does not exist' in text


class EVMAdapter(ChainAdapter):
    """Shared EVM chain adapter for Ethereum-compatible chains"""

    # eth_getBlockReceipts; switched off at runtime if the node rejects it
    supports_block_receipts = True

    def __init__(self, config: dict):
        super().__init__(config)
        self.w3 = None
        self.rpc_timeout = float(config.get('rpc_timeout', 10.0))

    def connect(self) -> bool:
        """Connect to EVM chain via RPC"""
        try:
            self.w3 = Web3(Web3.HTTPProvider(self.config['rpc_url'],
                                             request_kwargs={'timeout': self.rpc_timeout}))

            if not self.w3.is_connected():
                logger.error(f"❌ {self.get_chain_prefix()} Could not connect to RPC")
                return False

            logger.info(f"✅ {self.get_chain_prefix()} Connected! Block: {self.w3.eth.block_number}")
            return True
        except Exception as e:
            logger.error(f"❌ {self.get_chain_prefix()} Connection error: {e}")
            return False

    async def _run_with_timeout(self, func, *args, timeout: Optional[float] = None):
        """Run blocking web3 call in a thread, mapping provider failures to TransientError"""
        timeout = timeout or self.rpc_timeout
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise TransientError(f"{self.get_chain_prefix()} RPC timeout ({timeout}s)") from e
        except requests.exceptions.HTTPError as e:
            if e.response is not None and e.response.status_code in (429, 502, 503, 504):
                raise TransientError(f"{self.get_chain_prefix()} HTTP {e.response.status_code}") from e
            raise
        except TRANSIENT_EXCEPTIONS as e:
            raise TransientError(f"{self.get_chain_prefix()} RPC error: {e}") from e
        except CONTRACT_EXCEPTIONS:
            raise
        except Exception as e:
            if _is_rate_limited(e):
                raise TransientError(f"{self.get_chain_prefix()} rate limited: {e}") from e
            raise

    async def get_block_number(self) -> int:
        return await self._run_with_timeout(lambda: self.w3.eth.block_number)

    async def get_receipts(self, block_number: int) -> List[Dict[str, Any]]:
        if self.supports_block_receipts:
            try:
                receipts = await self._run_with_timeout(self.w3.eth.get_block_receipts, block_number)
                return list(receipts or [])
            except Exception as e:
                if isinstance(e, TransientError) or not _is_method_missing(e):
                    raise
                logger.warning(f"⚠️  {self.get_chain_prefix()} eth_getBlockReceipts unavailable, "
                               f"using per-transaction receipts: {e}")
                self.supports_block_receipts = False

        block = await self._run_with_timeout(self.w3.eth.get_block, block_number)
        receipts = []
        for tx_hash in block.get('transactions', []):
            receipts.append(await self._run_with_timeout(self.w3.eth.get_transaction_receipt, tx_hash))
        return receipts

    async def get_token_metadata(self, token_address: str) -> Dict[str, Any]:
        token_address = Web3.to_checksum_address(token_address)
        token_contract = self.w3.eth.contract(address=token_address, abi=ERC20_ABI)

        # decimals() decides whether this is a token at all
        try:
            decimals = await self._run_with_timeout(token_contract.functions.decimals().call)
        except CONTRACT_EXCEPTIONS as e:
            raise InvalidContractError(f"{token_address} has no decimals(): {e}") from e

        name = await self._call_text(token_contract.functions.name().call, 'UNKNOWN')
        symbol = await self._call_text(token_contract.functions.symbol().call, '???')
        return {'name': name, 'symbol': symbol, 'decimals': int(decimals)}

    async def _call_text(self, call, default: str) -> str:
        # bytes32-style or missing name/symbol should not disqualify a token
        try:
            value = await self._run_with_timeout(call)
        except CONTRACT_EXCEPTIONS:
            return default
        return value or default

    async def get_balance(self, address: str) -> int:
        address = Web3.to_checksum_address(address)
        return int(await self._run_with_timeout(self.w3.eth.get_balance, address))

    async def _has_code(self, address: str, block_number: int) -> bool:
        code = await self._run_with_timeout(self.w3.eth.get_code, address, block_number)
        return bool(code)

    async def find_contract_deployer(self, contract_address: str) -> Optional[str]:
        """
        Locate the creation block by binary search over historical code,
        then read the creating receipt's sender. Requires an archive node.
        """
        address = Web3.to_checksum_address(contract_address)
        latest = await self.get_block_number()
        if not await self._has_code(address, latest):
            return None

        low, high = 0, latest
        while low < high:
            mid = (low + high) // 2
            if await self._has_code(address, mid):
                high = mid
            else:
                low = mid + 1

        for receipt in await self.get_receipts(low):
            created = receipt.get('contractAddress')
            if created and created.lower() == address.lower():
                return receipt['from']

        # Created by another contract (factory deploy)
        logger.debug(f"{self.get_chain_prefix()} No direct deployment receipt for {address} in block {low}")
        return None

    async def call_function(self, address: str, abi: list, fn_name: str, *args) -> Any:
        contract = self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        fn = getattr(contract.functions, fn_name)
        try:
            return await self._run_with_timeout(fn(*args).call)
        except CONTRACT_EXCEPTIONS as e:
            raise InvalidContractError(f"{fn_name}() failed on {address}: {e}") from e
