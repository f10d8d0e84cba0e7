
import unittest
from decimal import Decimal

from subscription_store import SubscriptionStore, parse_threshold


class TestParseThreshold(unittest.TestCase):

    def test_valid_values(self):
        self.assertEqual(parse_threshold("2.5"), Decimal("2.5"))
        self.assertEqual(parse_threshold(" 0 "), Decimal("0"))
        self.assertEqual(parse_threshold(10), Decimal("10"))

    def test_invalid_values(self):
        for value in ("abc", "", "-1", "NaN", "inf"):
            with self.assertRaises(ValueError, msg=value):
                parse_threshold(value)


class TestSubscriptionStore(unittest.TestCase):

    def setUp(self):
        self.store = SubscriptionStore()

    def test_add_and_list(self):
        self.assertTrue(self.store.add(100, "10"))
        self.assertTrue(self.store.add(100, "2"))
        self.assertFalse(self.store.add(100, "2.0"))  # same Decimal value

        self.assertEqual(self.store.list_thresholds(100), [Decimal("2"), Decimal("10")])
        self.assertTrue(self.store.has_subscriptions(100))
        self.assertFalse(self.store.has_subscriptions(200))

    def test_remove(self):
        self.store.add(100, "1")
        self.assertTrue(self.store.remove(100, "1"))
        self.assertFalse(self.store.remove(100, "1"))
        self.assertFalse(self.store.remove(300, "1"))
        self.assertFalse(self.store.has_subscriptions(100))
        self.assertEqual(self.store.list_thresholds(100), [])

    def test_thread_registered_on_duplicate_threshold(self):
        self.store.add(-1001, "1")
        self.assertEqual(self.store.snapshot()[0].thread_ids, frozenset())

        self.assertFalse(self.store.add(-1001, "1", thread_id=7))
        self.assertEqual(self.store.snapshot()[0].thread_ids, frozenset({7}))

    def test_snapshot_is_sorted_copy(self):
        self.store.add(200, "5")
        self.store.add(100, "3", thread_id=4)
        self.store.add(100, "1", thread_id=9)

        snapshot = self.store.snapshot()
        self.assertEqual([(s.recipient_id, s.threshold) for s in snapshot],
                         [(100, Decimal("1")), (100, Decimal("3")), (200, Decimal("5"))])
        self.assertEqual(snapshot[0].thread_ids, frozenset({4, 9}))
        self.assertEqual(snapshot[2].thread_ids, frozenset())

        # Later mutations do not leak into an existing snapshot
        self.store.remove(200, "5")
        self.assertEqual(len(snapshot), 3)
        self.assertEqual(len(self.store.snapshot()), 2)


if __name__ == '__main__':
    unittest.main()
