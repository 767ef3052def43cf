import threading
import unittest

from finboard.core.ids import IdGenerator


class IdGeneratorTests(unittest.TestCase):
    def test_ids_scale_the_millisecond_clock(self):
        ids = IdGenerator(clock=lambda: 1700000000.5)
        self.assertEqual(ids.next_id(), 1700000000500000)

    def test_same_tick_yields_increasing_ids(self):
        ids = IdGenerator(clock=lambda: 5.0)
        issued = [ids.next_id() for _ in range(5000)]
        self.assertEqual(len(set(issued)), 5000)
        self.assertEqual(issued, sorted(issued))

    def test_clock_going_backwards_does_not_repeat(self):
        ticks = iter([10.0, 9.0, 9.0])
        ids = IdGenerator(clock=lambda: next(ticks))
        first, second, third = ids.next_id(), ids.next_id(), ids.next_id()
        self.assertLess(first, second)
        self.assertLess(second, third)

    def test_unique_across_threads(self):
        ids = IdGenerator()
        issued = []
        lock = threading.Lock()

        def worker():
            batch = [ids.next_id() for _ in range(500)]
            with lock:
                issued.extend(batch)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(issued), len(set(issued)))


if __name__ == "__main__":
    unittest.main()
