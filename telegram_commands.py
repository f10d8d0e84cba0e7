"""
Telegram Command Handler
Subscription commands: /start <eth>, /stop <eth>, /list, /help
"""

import asyncio
import aiohttp
import logging
from typing import Optional

from telegram.helpers import escape_markdown

from subscription_store import SubscriptionStore, parse_threshold
from telegram_notifier import TransportError

logger = logging.getLogger(__name__)

HELP_MESSAGE = """
*Available commands*:
/start <value> - Subscribe to notifications for tokens with balance >= <value> ETH
/stop <value> - Unsubscribe from notifications for <value> ETH
/list - View your active subscriptions
/help - Get available commands
"""

BOT_COMMANDS = [
    {"command": "start", "description": "Subscribe to notifications"},
    {"command": "stop", "description": "Unsubscribe from notifications"},
    {"command": "list", "description": "View your active subscriptions"},
    {"command": "help", "description": "Get available commands"},
]


class TelegramCommandHandler:
    """Handle Telegram bot commands that manage ETH-threshold subscriptions."""

    def __init__(self, bot_token: str, store: SubscriptionStore, notifier,
                 default_threshold: str = "2.2", poll_interval: float = 2.0):
        """
        Initialize command handler.

        Args:
            bot_token: Telegram bot token (getUpdates polling)
            store: SubscriptionStore mutated by the commands
            notifier: TelegramNotifier used for replies
            default_threshold: threshold used by a bare /start
        """
        self.bot_token = (bot_token or '').strip().strip('"').strip("'")
        self.store = store
        self.telegram = notifier
        self.default_threshold = parse_threshold(default_threshold)
        self.poll_interval = poll_interval
        self.error_backoff = 5.0
        self.enabled = bool(self.bot_token)

        # Track last update ID to avoid processing duplicates
        self.last_update_id = 0
        self.session: Optional[aiohttp.ClientSession] = None

    @property
    def api_url(self) -> str:
        return f"https://api.telegram.org/bot{self.bot_token}"

    async def start_polling(self):
        """Start polling for commands (runs as background task)."""
        if not self.enabled:
            logger.info("Command handler disabled (missing bot token)")
            return

        self.session = aiohttp.ClientSession()
        try:
            await self._register_commands()
            logger.info("📱 Telegram command handler started")
            while True:
                try:
                    await self._poll_updates()
                    await asyncio.sleep(self.poll_interval)
                except Exception as e:
                    logger.error(f"Command polling error: {e}", exc_info=True)
                    await asyncio.sleep(self.error_backoff)  # Back off on error
        finally:
            await self.session.close()
            self.session = None

    async def _register_commands(self):
        try:
            async with self.session.post(f"{self.api_url}/setMyCommands",
                                         json={"commands": BOT_COMMANDS},
                                         timeout=aiohttp.ClientTimeout(total=10)) as resp:
                if resp.status != 200:
                    logger.warning(f"setMyCommands returned HTTP {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Could not register bot commands: {e}")

    async def _poll_updates(self):
        """Poll Telegram for new messages."""
        params = {
            'offset': self.last_update_id + 1,
            'timeout': 1,
        }
        try:
            async with self.session.get(f"{self.api_url}/getUpdates", params=params,
                                        timeout=aiohttp.ClientTimeout(total=5)) as resp:
                if resp.status != 200:
                    return
                data = await resp.json()
        except asyncio.TimeoutError:
            return  # Normal timeout, continue polling

        if not data.get('ok'):
            return

        for update in data.get('result', []):
            self.last_update_id = max(self.last_update_id, update['update_id'])
            await self.process_update(update)

    async def process_update(self, update: dict):
        """Process a single update."""
        message = update.get('message')
        if not message:
            return

        text = (message.get('text') or '').strip()
        if not text.startswith('/'):
            return

        chat_id = message.get('chat', {}).get('id')
        thread_id = message.get('message_thread_id')
        first_name = message.get('from', {}).get('first_name', 'there')

        # Parse command, dropping any @BotName suffix
        parts = text.split()
        command = parts[0].split('@', 1)[0].lower()
        args = parts[1:]

        logger.info(f"📨 Received command: {command} {args} from {chat_id}")

        if command == '/start':
            await self._handle_start(chat_id, thread_id, first_name, args)
        elif command == '/stop':
            await self._handle_stop(chat_id, thread_id, args)
        elif command == '/list':
            await self._handle_list(chat_id, thread_id)
        elif command == '/help':
            await self._reply(chat_id, thread_id, HELP_MESSAGE)

    async def _handle_start(self, chat_id: int, thread_id: Optional[int], first_name: str, args):
        try:
            threshold = parse_threshold(args[0]) if args else self.default_threshold
        except ValueError:
            await self._reply(chat_id, thread_id, "Please provide a valid ETH value, e.g. /start 2.5", markdown=False)
            return

        self.store.add(chat_id, threshold, thread_id=thread_id)
        await self._reply(
            chat_id, thread_id,
            f"Welcome, {escape_markdown(first_name)}! 👋\n*You have successfully subscribed to the bot* 🚀.\n"
            f"You will receive notifications when a token with a balance of *{threshold} ETH* "
            f"or more is detected. 💰\n\nUse /help to view available commands."
        )

    async def _handle_stop(self, chat_id: int, thread_id: Optional[int], args):
        if not self.store.has_subscriptions(chat_id):
            await self._reply(chat_id, thread_id, "You don't have any active subscriptions.", markdown=False)
            return
        if not args:
            await self._reply(chat_id, thread_id, "Usage: /stop <value>", markdown=False)
            return

        try:
            threshold = parse_threshold(args[0])
        except ValueError:
            await self._reply(chat_id, thread_id, "Please provide a valid ETH value, e.g. /stop 2.5", markdown=False)
            return

        self.store.remove(chat_id, threshold)
        await self._reply(chat_id, thread_id,
                          f"You have unsubscribed from notifications for {threshold} ETH.", markdown=False)

    async def _handle_list(self, chat_id: int, thread_id: Optional[int]):
        thresholds = self.store.list_thresholds(chat_id)
        if not thresholds:
            await self._reply(chat_id, thread_id, "You don't have any active subscriptions.", markdown=False)
            return
        subscriptions = ", ".join(str(t) for t in thresholds)
        await self._reply(chat_id, thread_id, f"Your active subscriptions: {subscriptions} ETH", markdown=False)

    async def _reply(self, chat_id: int, thread_id: Optional[int], text: str, markdown: bool = True):
        try:
            await self.telegram.send(chat_id, text, thread_id=thread_id, markdown=markdown)
        except TransportError as e:
            logger.error(f"Reply to {chat_id} failed: {e}")
