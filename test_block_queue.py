
import asyncio
import unittest

from modules.block_queue import BlockIngestionQueue


class RecordingProcessor:

    def __init__(self, gate: asyncio.Event = None, fail_on=()):
        self.processed = []
        self.started = asyncio.Event()
        self.gate = gate
        self.fail_on = set(fail_on)

    async def __call__(self, block_number):
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if block_number in self.fail_on:
            raise RuntimeError(f"boom {block_number}")
        self.processed.append(block_number)


class TestBlockIngestionQueue(unittest.IsolatedAsyncioTestCase):

    async def test_processes_in_height_order(self):
        processor = RecordingProcessor()
        queue = BlockIngestionQueue(processor, max_pending=8)
        for height in (12, 10, 11):
            self.assertTrue(queue.submit(height))

        queue.start()
        await asyncio.wait_for(queue.join(), timeout=1)
        await queue.stop(grace=0)

        self.assertEqual(processor.processed, [10, 11, 12])
        self.assertEqual(queue.stats()['processed'], 3)

    async def test_backpressure_drops_oldest_unstarted(self):
        gate = asyncio.Event()
        processor = RecordingProcessor(gate=gate)
        queue = BlockIngestionQueue(processor, max_pending=2)

        queue.submit(1)
        queue.start()
        await asyncio.wait_for(processor.started.wait(), timeout=1)
        self.assertEqual(queue.in_flight, 1)

        queue.submit(2)
        queue.submit(3)
        queue.submit(4)  # evicts 2, never the in-flight 1

        self.assertEqual(queue.pending, [3, 4])
        self.assertEqual(queue.stats()['dropped_backpressure'], 1)

        gate.set()
        await asyncio.wait_for(queue.join(), timeout=1)
        await queue.stop(grace=0)
        self.assertEqual(processor.processed, [1, 3, 4])

    async def test_stale_and_duplicate_heights_ignored(self):
        gate = asyncio.Event()
        processor = RecordingProcessor(gate=gate)
        queue = BlockIngestionQueue(processor)

        queue.submit(5)
        queue.start()
        await asyncio.wait_for(processor.started.wait(), timeout=1)

        self.assertFalse(queue.submit(5))
        self.assertFalse(queue.submit(3))
        self.assertTrue(queue.submit(6))
        self.assertFalse(queue.submit(6))
        self.assertEqual(queue.stats()['stale'], 3)

        gate.set()
        await asyncio.wait_for(queue.join(), timeout=1)
        await queue.stop(grace=0)
        self.assertEqual(processor.processed, [5, 6])

    async def test_failed_block_does_not_stop_consumer(self):
        processor = RecordingProcessor(fail_on={2})
        queue = BlockIngestionQueue(processor)
        for height in (1, 2, 3):
            queue.submit(height)

        queue.start()
        await asyncio.wait_for(queue.join(), timeout=1)
        await queue.stop(grace=0)

        self.assertEqual(processor.processed, [1, 3])
        self.assertEqual(queue.stats()['failed'], 1)

    async def test_pause_and_resume(self):
        processor = RecordingProcessor()
        queue = BlockIngestionQueue(processor)
        queue.pause()
        self.assertTrue(queue.is_paused)
        queue.start()

        queue.submit(1)
        await asyncio.sleep(0.05)
        self.assertEqual(processor.processed, [])

        queue.resume()
        await asyncio.wait_for(queue.join(), timeout=1)
        await queue.stop(grace=0)
        self.assertEqual(processor.processed, [1])

    async def test_stop_lets_in_flight_block_finish(self):
        gate = asyncio.Event()
        processor = RecordingProcessor(gate=gate)
        queue = BlockIngestionQueue(processor)
        queue.submit(1)
        queue.submit(2)
        queue.start()
        await asyncio.wait_for(processor.started.wait(), timeout=1)

        asyncio.get_running_loop().call_later(0.05, gate.set)
        await queue.stop(grace=1)

        self.assertEqual(processor.processed, [1])  # 2 was never started
        self.assertFalse(queue.submit(3))

    async def test_stop_cancels_after_grace(self):
        processor = RecordingProcessor(gate=asyncio.Event())
        queue = BlockIngestionQueue(processor)
        queue.submit(1)
        queue.start()
        await asyncio.wait_for(processor.started.wait(), timeout=1)

        await asyncio.wait_for(queue.stop(grace=0.05), timeout=1)
        self.assertEqual(processor.processed, [])
        self.assertIsNone(queue.in_flight)

    def test_rejects_invalid_capacity(self):
        with self.assertRaises(ValueError):
            BlockIngestionQueue(lambda h: None, max_pending=0)


if __name__ == '__main__':
    unittest.main()
