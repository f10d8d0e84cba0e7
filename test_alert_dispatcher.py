
import unittest
from decimal import Decimal
from unittest.mock import AsyncMock

from alert_dispatcher import AlertDispatcher, SubscriptionMatcher
from models import Candidate, Subscription, TokenLinks
from subscription_store import SubscriptionStore
from telegram_notifier import TransportError, format_eth, format_gem_alert

TOKEN = "0x" + "ab" * 20
DEPLOYER = "0x" + "de" * 20

CHAIN_CONFIG = {
    'explorer_url': 'https://etherscan.io',
    'honeypot_url': 'https://honeypot.is/ethereum',
}


def make_candidate(balance_eth=0, liquidity_eth=0, **kwargs):
    return Candidate(
        contract_address=TOKEN,
        deployer_address=DEPLOYER,
        token_name="Gem Token",
        token_symbol="GEM",
        decimals=18,
        balance_wei=int(Decimal(balance_eth) * 10**18),
        lp_reserve_wei=int(Decimal(liquidity_eth) * 10**18),
        **kwargs
    )


class TestSubscriptionMatcher(unittest.TestCase):

    def setUp(self):
        self.matcher = SubscriptionMatcher()

    def test_threshold_zero_matches_empty_token(self):
        events = self.matcher.match(make_candidate(), [Subscription(1, Decimal(0))])
        self.assertEqual(len(events), 1)
        self.assertIsNone(events[0].thread_id)

    def test_balance_or_liquidity_reaches_threshold(self):
        subscriptions = [Subscription(1, Decimal(2)), Subscription(1, Decimal(10))]

        by_balance = self.matcher.match(make_candidate(balance_eth=3), subscriptions)
        by_liquidity = self.matcher.match(make_candidate(balance_eth=0, liquidity_eth="2.0"), subscriptions)
        neither = self.matcher.match(make_candidate(balance_eth="1.99", liquidity_eth="1.5"), subscriptions)

        self.assertEqual([e.threshold for e in by_balance], [Decimal(2)])
        self.assertEqual([e.threshold for e in by_liquidity], [Decimal(2)])
        self.assertEqual(neither, [])

    def test_one_event_per_thread(self):
        events = self.matcher.match(make_candidate(balance_eth=1),
                                    [Subscription(-100, Decimal(1), frozenset({5, 3}))])
        self.assertEqual([e.thread_id for e in events], [3, 5])

    def test_duplicate_subscriptions_are_deduplicated(self):
        subscription = Subscription(1, Decimal(1))
        events = self.matcher.match(make_candidate(balance_eth=1), [subscription, subscription])
        self.assertEqual(len(events), 1)


class TestAlertDispatcher(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.store = SubscriptionStore()
        self.transport = AsyncMock()
        self.transport.send.return_value = True
        self.dispatcher = AlertDispatcher(self.store, self.transport, CHAIN_CONFIG)

    async def test_two_thresholds_one_alert(self):
        self.store.add(1, "2")
        self.store.add(1, "10")

        delivered = await self.dispatcher.dispatch(make_candidate(balance_eth=3))

        self.assertEqual(delivered, 1)
        self.transport.send.assert_awaited_once()
        recipient, text = self.transport.send.await_args.args
        self.assertEqual(recipient, 1)
        self.assertIn("Alert threshold: 2 ETH", text)

    async def test_two_threads_two_dispatches(self):
        self.store.add(-100, "1", thread_id=11)
        self.store.add(-100, "1", thread_id=22)

        delivered = await self.dispatcher.dispatch(make_candidate(balance_eth=5))

        self.assertEqual(delivered, 2)
        threads = [call.kwargs['thread_id'] for call in self.transport.send.await_args_list]
        self.assertEqual(threads, [11, 22])

    async def test_transport_failure_does_not_block_other_recipients(self):
        self.store.add(1, "1")
        self.store.add(2, "1")
        self.transport.send.side_effect = [TransportError("chat not found"), True]

        delivered = await self.dispatcher.dispatch(make_candidate(balance_eth=1))

        self.assertEqual(delivered, 1)
        self.assertEqual(self.transport.send.await_count, 2)
        self.assertEqual(self.dispatcher.stats, {'alerts_sent': 1, 'alerts_failed': 1})

    async def test_no_match_sends_nothing(self):
        self.store.add(1, "50")
        self.assertEqual(await self.dispatcher.dispatch(make_candidate(balance_eth=1)), 0)
        self.transport.send.assert_not_awaited()

    async def test_disabled_transport_is_not_counted(self):
        self.store.add(1, "0")
        self.transport.send.return_value = False
        self.assertEqual(await self.dispatcher.dispatch(make_candidate()), 0)


class TestGemAlertFormat(unittest.TestCase):

    def test_format_eth(self):
        self.assertEqual(format_eth(Decimal("2.500")), "2.5")
        self.assertEqual(format_eth(Decimal("0")), "0")
        self.assertEqual(format_eth(Decimal("1E+1")), "10")

    def test_alert_body(self):
        candidate = make_candidate(
            balance_eth="2.5", liquidity_eth="4",
            verified=True,
            deployer_balance_wei=10**18,
            links=TokenLinks(website="https://gem.io", telegram="https://t.me/gem", x=None),
        )
        candidate.token_name = "Gem_Token"

        text = format_gem_alert(candidate, Decimal("2"), CHAIN_CONFIG)

        self.assertTrue(text.startswith("*New Gem Detected*"))
        self.assertIn("Gem\\_Token", text)
        self.assertIn("✅ Verified", text)
        self.assertIn(f"https://etherscan.io/address/{TOKEN}", text)
        self.assertIn(f"[{DEPLOYER}](https://etherscan.io/address/{DEPLOYER})", text)
        self.assertIn("*Contract Balance*: `2.5` ETH", text)
        self.assertIn("*Deployer Balance*: `1` ETH", text)
        self.assertIn("*Uniswap LP Balance*: `4` ETH", text)
        self.assertIn("[Website](https://gem.io)", text)
        self.assertIn("[Telegram](https://t.me/gem)", text)
        self.assertNotIn("[X]", text)
        self.assertIn(f"[Honeypot](https://honeypot.is/ethereum?address={TOKEN})", text)

    def test_unknown_deployer_balance(self):
        text = format_gem_alert(make_candidate(), Decimal("0"), CHAIN_CONFIG)
        self.assertIn("❌ Unverified", text)
        self.assertIn("*Deployer Balance*: `n/a`", text)
        self.assertIn("*Uniswap LP Balance*: `0` ETH", text)


if __name__ == '__main__':
    unittest.main()
