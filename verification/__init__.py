"""
VERIFICATION MODULE

Contract provenance via the Etherscan verification registry:
published source -> website / Telegram / X links.
"""

from .etherscan_client import EtherscanClient, EtherscanError
from .link_extractor import extract_links, normalize_link
from .provenance_resolver import ProvenanceResolver

__all__ = [
    'EtherscanClient',
    'EtherscanError',
    'extract_links',
    'normalize_link',
    'ProvenanceResolver',
]
