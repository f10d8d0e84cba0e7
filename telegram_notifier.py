"""
Telegram Notifier - gem alerts and command replies

Transport for the alert dispatcher:
- One send() per (chat, thread) target
- Markdown "New Gem Detected" layout with explorer / socials / honeypot links
- Link previews disabled
"""
import logging
from decimal import Decimal
from typing import Optional

from telegram import Bot, LinkPreviewOptions
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.helpers import escape_markdown

from models import Candidate

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """A message could not be delivered to one recipient"""


def format_eth(value: Decimal) -> str:
    """Plain decimal ETH string without exponent or trailing zeros"""
    return format(value.normalize(), 'f') if value else '0'


def format_gem_alert(candidate: Candidate, threshold: Decimal, chain_config: dict) -> str:
    """Build the Markdown alert body for one matched subscription."""
    explorer = chain_config.get('explorer_url', 'https://etherscan.io').rstrip('/')
    honeypot = chain_config.get('honeypot_url', 'https://honeypot.is/ethereum').rstrip('/')

    contract = candidate.contract_address
    deployer = candidate.deployer_address or 'unknown'
    contract_url = f"{explorer}/address/{contract}"
    deployer_line = (
        f"[{deployer}]({explorer}/address/{deployer})" if candidate.deployer_address else deployer
    )

    deployer_balance = (
        f"`{format_eth(candidate.deployer_balance_eth)}` ETH"
        if candidate.deployer_balance_wei is not None else "`n/a`"
    )

    socials = []
    if candidate.links.website:
        socials.append(f"[Website]({candidate.links.website})")
    if candidate.links.x:
        socials.append(f"[X]({candidate.links.x})")
    if candidate.links.telegram:
        socials.append(f"[Telegram]({candidate.links.telegram})")
    socials.append(f"[Honeypot]({honeypot}?address={contract})")

    verified = "✅ Verified" if candidate.verified else "❌ Unverified"

    return (
        f"*New Gem Detected* ✅\n\n"
        f"*Name*: {escape_markdown(candidate.token_name or 'UNKNOWN')}\n"
        f"*Symbol*: {escape_markdown(candidate.token_symbol or '???')}\n"
        f"*Source*: {verified}\n\n"
        f"*Link*: {contract_url}\n"
        f"*Contract Address*: [{contract}]({contract_url})\n"
        f"*Deployer Address*: {deployer_line}\n\n"
        f"*Contract Balance*: `{format_eth(candidate.balance_eth)}` ETH\n"
        f"*Deployer Balance*: {deployer_balance}\n"
        f"*Uniswap LP Balance*: `{format_eth(candidate.liquidity_eth)}` ETH\n\n"
        f"{'  '.join(socials)}\n\n"
        f"_Alert threshold: {format_eth(threshold)} ETH_"
    )


class TelegramNotifier:
    """
    Sends Markdown messages to chats and forum threads.

    send() raises TransportError so the dispatcher can skip one recipient
    without affecting the others.
    """

    def __init__(self, bot_token: str, bot: Optional[Bot] = None):
        self.bot_token = bot_token
        self.enabled = bool(bot_token) or bot is not None
        self.bot = bot or (Bot(token=bot_token) if bot_token else None)
        self.sent_count = 0

    async def start(self):
        if self.bot is not None:
            await self.bot.initialize()

    async def close(self):
        if self.bot is not None:
            await self.bot.shutdown()

    async def send(self, recipient_id: int, text: str, thread_id: Optional[int] = None,
                   markdown: bool = True) -> bool:
        if not self.enabled:
            logger.debug(f"Telegram disabled - dropping message for {recipient_id}")
            return False

        try:
            await self.bot.send_message(
                chat_id=recipient_id,
                text=text,
                message_thread_id=thread_id,
                parse_mode=ParseMode.MARKDOWN if markdown else None,
                link_preview_options=LinkPreviewOptions(is_disabled=True),
            )
        except TelegramError as e:
            raise TransportError(f"Telegram send error for {recipient_id}/{thread_id}: {e}") from e

        self.sent_count += 1
        return True
