import os
import yaml
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# RPC / API credentials
ETH_RPC_URL = os.getenv("ETH_RPC_URL", os.getenv("ALCHEMY_RPC_URL", ""))
BASE_RPC_URL = os.getenv("BASE_RPC_URL", "https://mainnet.base.org")
ETHERSCAN_API_KEY = os.getenv("ETHERSCAN_API_KEY", "")

# Telegram configuration
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", os.getenv("TELEGRAM_TOKEN", ""))

# Subscriptions
DEFAULT_THRESHOLD_ETH = os.getenv("DEFAULT_THRESHOLD_ETH", "2.2")  # /start without a value
COMMAND_POLL_INTERVAL = float(os.getenv("COMMAND_POLL_INTERVAL", "2.0"))

# Block ingestion
BLOCK_POLL_INTERVAL = float(os.getenv("BLOCK_POLL_INTERVAL", "3.0"))
MAX_PENDING_BLOCKS = int(os.getenv("MAX_PENDING_BLOCKS", "32"))  # drop-oldest beyond this
DISCONNECT_AFTER_FAILURES = int(os.getenv("DISCONNECT_AFTER_FAILURES", "5"))
SHUTDOWN_GRACE_SECONDS = float(os.getenv("SHUTDOWN_GRACE_SECONDS", "15"))

# Enrichment
ENRICH_WORKERS = int(os.getenv("ENRICH_WORKERS", "4"))
SETTLE_DELAY_SECONDS = float(os.getenv("SETTLE_DELAY_SECONDS", "0"))  # wait before LP lookup
RPC_TIMEOUT = float(os.getenv("RPC_TIMEOUT", "10.0"))
RETRY_ATTEMPTS = int(os.getenv("RETRY_ATTEMPTS", "3"))
RETRY_BASE_DELAY = float(os.getenv("RETRY_BASE_DELAY", "1.0"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Multi-chain configuration
CHAINS_CONFIG_PATH = Path(__file__).parent / "chains.yaml"

def load_chain_configs():
    """Load chain configurations from chains.yaml"""
    if CHAINS_CONFIG_PATH.exists():
        with open(CHAINS_CONFIG_PATH, 'r') as f:
            return yaml.safe_load(f)
    return {"chains": {}}

def get_enabled_chains():
    """Return list of enabled chain names"""
    configs = load_chain_configs()
    return [name for name, config in configs.get('chains', {}).items() 
            if config.get('enabled', False)]

def get_chain_config(chain_name: str) -> dict:
    """
    Chain constants from chains.yaml merged with runtime settings.
    Raises KeyError for chains missing from chains.yaml.
    """
    chain = dict(CHAIN_CONFIGS.get('chains', {})[chain_name.lower()])
    chain['chain_name'] = chain_name.lower()
    chain['rpc_url'] = os.getenv(chain.get('rpc_env', ''), '') or (
        ETH_RPC_URL if chain_name.lower() == 'ethereum' else BASE_RPC_URL
    )
    chain['rpc_timeout'] = RPC_TIMEOUT
    chain['etherscan_api_key'] = ETHERSCAN_API_KEY
    return chain

# Load chain configs on import
CHAIN_CONFIGS = load_chain_configs()
