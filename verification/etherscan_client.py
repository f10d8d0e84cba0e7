"""
ETHERSCAN API CLIENT

Verification registry lookups (Etherscan V2 multichain API):
- getabi: is the contract source published?
- getsourcecode: the published source text

Rate limits: free keys allow ~5 calls/sec. Throttled and timed-out calls
raise TransientError so callers can retry with backoff.
"""

import asyncio
import json
import logging
from datetime import datetime
from typing import Dict, Optional

import aiohttp

from chain_adapters.base_adapter import TransientError

logger = logging.getLogger(__name__)

NOT_VERIFIED_MARKER = "contract source code not verified"
RATE_LIMIT_MARKERS = ("rate limit", "max calls per sec")


class EtherscanError(Exception):
    """Non-retryable registry error (bad key, malformed response)"""


class EtherscanClient:
    """
    Etherscan API client.

    One aiohttp session per client; call close() on shutdown.
    """

    DEFAULT_URL = "https://api.etherscan.io/v2/api"

    def __init__(self, config: Dict = None):
        """
        Args:
            config: chain config with 'etherscan_api_key', 'chain_id',
                    'etherscan_api_url' and optional 'min_request_interval_seconds'
        """
        self.config = config or {}
        self.api_key = self.config.get('etherscan_api_key', '')
        self.chain_id = self.config.get('chain_id', 1)
        self.base_url = self.config.get('etherscan_api_url') or self.DEFAULT_URL
        self.min_request_interval = self.config.get('min_request_interval_seconds', 0.25)
        self.request_timeout = self.config.get('request_timeout_seconds', 20)
        self.session = None
        self.last_request_time = None
        self.request_count = 0
        self._throttle_lock = asyncio.Lock()

    async def _ensure_session(self):
        """Ensure aiohttp session exists."""
        if self.session is None:
            self.session = aiohttp.ClientSession()

    async def close(self):
        """Close aiohttp session."""
        if self.session:
            await self.session.close()
            self.session = None

    async def _throttle(self):
        # Enforce minimum interval between requests across concurrent workers
        async with self._throttle_lock:
            if self.last_request_time:
                elapsed = (datetime.now() - self.last_request_time).total_seconds()
                if elapsed < self.min_request_interval:
                    await asyncio.sleep(self.min_request_interval - elapsed)
            self.last_request_time = datetime.now()
            self.request_count += 1

    async def _request(self, action: str, address: str) -> Dict:
        """
        Run one contract-module query and return the decoded payload.

        Raises:
            TransientError: HTTP 429/5xx, timeouts, connection errors, API throttling
            EtherscanError: anything else that is not a valid payload
        """
        await self._ensure_session()
        await self._throttle()

        params = {
            'chainid': self.chain_id,
            'module': 'contract',
            'action': action,
            'address': address,
            'apikey': self.api_key,
        }
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)

        try:
            async with self.session.get(self.base_url, params=params, timeout=timeout) as response:
                if response.status == 429 or response.status >= 500:
                    raise TransientError(f"[ETHERSCAN] HTTP {response.status} for {action}")
                if response.status != 200:
                    raise EtherscanError(f"[ETHERSCAN] HTTP {response.status} for {action}")
                try:
                    payload = await response.json(content_type=None)
                except (aiohttp.ContentTypeError, json.JSONDecodeError, ValueError) as e:
                    raise EtherscanError(f"[ETHERSCAN] invalid JSON for {action}: {e}") from e
        except asyncio.TimeoutError as e:
            raise TransientError(f"[ETHERSCAN] Timeout: {action} {address}") from e
        except aiohttp.ClientError as e:
            raise TransientError(f"[ETHERSCAN] Request error: {e}") from e

        if not isinstance(payload, dict):
            raise EtherscanError(f"[ETHERSCAN] unexpected payload for {action}")

        result = payload.get('result')
        if payload.get('status') != '1' and isinstance(result, str):
            if any(marker in result.lower() for marker in RATE_LIMIT_MARKERS):
                raise TransientError(f"[ETHERSCAN] Rate limited: {result}")
        return payload

    async def is_verified(self, address: str) -> bool:
        """True when the contract ABI (hence source) is published"""
        payload = await self._request('getabi', address)
        result = payload.get('result')
        if payload.get('status') == '1':
            return not (isinstance(result, str) and result.lower().startswith(NOT_VERIFIED_MARKER))
        if isinstance(result, str) and result.lower().startswith(NOT_VERIFIED_MARKER):
            return False
        raise EtherscanError(f"[ETHERSCAN] getabi failed: {payload.get('message')} {result}")

    async def get_source_code(self, address: str) -> Optional[str]:
        """Published source text, or None when the registry has none"""
        payload = await self._request('getsourcecode', address)
        result = payload.get('result')
        if payload.get('status') == '1' and isinstance(result, list) and result:
            return result[0].get('SourceCode') or None
        logger.debug(f"[ETHERSCAN] No source code for {address}: {payload.get('message')}")
        return None

    def get_stats(self) -> Dict:
        return {
            'request_count': self.request_count,
            'last_request': self.last_request_time.isoformat() if self.last_request_time else None,
            'source': self.__class__.__name__,
        }
