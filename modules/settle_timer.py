import asyncio


class SettleTimer:
    """
    Cancellable wait used before expensive downstream lookups, giving the
    deployer time to create and fund a pool after the token deploy.
    cancel() wakes every pending wait at once so shutdown is not held up.
    """

    def __init__(self, delay_seconds: float = 0.0):
        self.delay_seconds = max(0.0, float(delay_seconds))
        self._cancelled = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self):
        self._cancelled.set()

    async def wait(self) -> bool:
        """True once the delay elapsed, False if cancelled first"""
        if self._cancelled.is_set():
            return False
        if self.delay_seconds <= 0:
            return True
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=self.delay_seconds)
        except asyncio.TimeoutError:
            return True
        return False
