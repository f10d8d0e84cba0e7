
import unittest
from unittest.mock import MagicMock

from modules.block_listener import NewBlockFeed


class ScriptedAdapter:
    """get_block_number() replays a list of heights / exceptions"""

    chain_name = "ethereum"

    def __init__(self, script):
        self.script = list(script)

    async def get_block_number(self):
        value = self.script.pop(0)
        if isinstance(value, Exception):
            raise value
        return value


class TestNewBlockFeed(unittest.IsolatedAsyncioTestCase):

    def make_feed(self, script, **kwargs):
        published = []
        feed = NewBlockFeed(ScriptedAdapter(script), **kwargs)
        feed.subscribe(published.append)
        return feed, published

    async def test_first_poll_publishes_current_block_only(self):
        feed, published = self.make_feed([100])
        await feed.poll_once()
        self.assertEqual(published, [100])

    async def test_publishes_every_new_height(self):
        feed, published = self.make_feed([100, 100, 103])
        for _ in range(3):
            await feed.poll_once()
        self.assertEqual(published, [100, 101, 102, 103])

    async def test_catchup_is_capped(self):
        feed, published = self.make_feed([100, 150], max_catchup=4)
        await feed.poll_once()
        await feed.poll_once()
        self.assertEqual(published, [100, 147, 148, 149, 150])

    async def test_disconnect_and_reconnect_without_backfill(self):
        on_disconnect = MagicMock()
        on_reconnect = MagicMock()
        error = ConnectionError("rpc down")
        feed, published = self.make_feed(
            [100, error, error, error, 120],
            disconnect_after=2, on_disconnect=on_disconnect, on_reconnect=on_reconnect,
        )

        for _ in range(5):
            await feed.poll_once()

        on_disconnect.assert_called_once()
        on_reconnect.assert_called_once()
        self.assertFalse(feed.disconnected)
        self.assertEqual(feed.consecutive_failures, 0)
        self.assertEqual(published, [100, 120])

    async def test_subscriber_error_does_not_block_others(self):
        feed, published = self.make_feed([7])
        broken = MagicMock(side_effect=RuntimeError("boom"))
        feed.subscribers.insert(0, broken)

        await feed.poll_once()

        broken.assert_called_once_with(7)
        self.assertEqual(published, [7])

    def test_subscribe_is_idempotent(self):
        feed, _ = self.make_feed([])
        callback = MagicMock()
        feed.subscribe(callback)
        feed.subscribe(callback)
        self.assertEqual(len(feed.subscribers), 2)


if __name__ == '__main__':
    unittest.main()
