import threading
import unittest

from warehouse.core.periodic import PeriodicTask


class TestPeriodicTask(unittest.TestCase):
    def test_ticks_until_stopped(self):
        ticked = threading.Event()
        calls = []

        def action():
            calls.append(1)
            ticked.set()
            raise RuntimeError("tick failure is logged")

        task = PeriodicTask("test-task", 0.01, action)
        with self.assertLogs("warehouse.core.periodic", level="ERROR"):
            task.start()
            self.assertTrue(ticked.wait(2.0))
            task.stop()
            task.join(2.0)
        self.assertFalse(task.running)
        self.assertGreaterEqual(len(calls), 1)


if __name__ == "__main__":
    unittest.main()
