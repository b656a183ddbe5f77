import threading
import time
import unittest

from workspace_api.utils.fanout import fan_out


class TestFanOut(unittest.TestCase):
    def test_results_keep_input_order(self):
        def slow_square(n):
            time.sleep(0.01 * (5 - n))
            return n * n

        self.assertEqual(fan_out(slow_square, range(5), max_workers=5), [0, 1, 4, 9, 16])

    def test_empty_input(self):
        self.assertEqual(fan_out(lambda x: x, [], max_workers=3), [])

    def test_concurrency_is_bounded(self):
        lock = threading.Lock()
        state = {"running": 0, "peak": 0}

        def work(_):
            with lock:
                state["running"] += 1
                state["peak"] = max(state["peak"], state["running"])
            time.sleep(0.02)
            with lock:
                state["running"] -= 1

        fan_out(work, range(12), max_workers=3)
        self.assertLessEqual(state["peak"], 3)
        self.assertGreater(state["peak"], 1)

    def test_first_error_is_raised_and_pending_work_cancelled(self):
        started = []

        def work(n):
            started.append(n)
            if n == 0:
                raise RuntimeError("boom")
            time.sleep(0.05)
            return n

        with self.assertRaises(RuntimeError):
            fan_out(work, range(20), max_workers=2)
        self.assertLess(len(started), 20)

    def test_invalid_worker_count(self):
        with self.assertRaises(ValueError):
            fan_out(lambda x: x, [1], max_workers=0)


if __name__ == "__main__":
    unittest.main()
