import asyncio
import unittest

from dircycle.mode.timer import ConfirmTimer

from fakes import FakeScheduler


class ConfirmTimerTests(unittest.TestCase):
    def test_arm_cancels_previous_handle(self) -> None:
        scheduler = FakeScheduler()
        timer = ConfirmTimer(scheduler)
        fired = []
        timer.arm(1.0, "/a", fired.append)
        timer.arm(1.0, "/b", fired.append)
        self.assertTrue(scheduler.handles[0].cancelled)
        self.assertEqual(timer.path, "/b")
        scheduler.advance(1.0)
        self.assertEqual(fired, ["/b"])
        self.assertFalse(timer.pending)

    def test_cancel_clears_pending(self) -> None:
        scheduler = FakeScheduler()
        timer = ConfirmTimer(scheduler)
        timer.arm(1.0, "/a", lambda path: None)
        self.assertTrue(timer.pending)
        timer.cancel()
        self.assertFalse(timer.pending)
        self.assertIsNone(timer.path)

    def test_callback_from_old_generation_does_nothing(self) -> None:
        scheduler = FakeScheduler()
        timer = ConfirmTimer(scheduler)
        fired = []
        timer.arm(1.0, "/a", fired.append)
        old = scheduler.handles[0]
        timer.arm(1.0, "/b", fired.append)
        old.run()
        self.assertEqual(fired, [])
        self.assertEqual(timer.path, "/b")


class ConfirmTimerLoopTests(unittest.IsolatedAsyncioTestCase):
    async def test_fires_once_on_running_loop(self) -> None:
        timer = ConfirmTimer()
        fired = []
        timer.arm(0.01, "/a", fired.append)
        await asyncio.sleep(0.1)
        self.assertEqual(fired, ["/a"])
        self.assertFalse(timer.pending)

    async def test_rearm_on_running_loop_fires_latest_only(self) -> None:
        timer = ConfirmTimer()
        fired = []
        timer.arm(0.01, "/a", fired.append)
        timer.arm(0.02, "/b", fired.append)
        await asyncio.sleep(0.1)
        self.assertEqual(fired, ["/b"])


if __name__ == "__main__":
    unittest.main()
