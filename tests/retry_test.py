import unittest
from unittest import mock

from remote_iso.discovery import PeerScan
from remote_iso.retry import DiscoveryRetryLoop


class FakeScan:
    """Scan that completes whenever the test says so."""

    def __init__(self, url=None, complete=True):
        self.url = url
        self.complete = complete
        self.started = False
        self.joined = False

    def start(self):
        self.started = True

    def is_complete(self):
        return self.complete

    def join(self, timeout=None):
        self.joined = True
        return self.complete


class DiscoveryRetryLoopTests(unittest.TestCase):

    def setUp(self):
        self.now = 0.0
        self.scans: list[FakeScan] = []
        self.results: list[str | None] = []
        self.on_found = mock.Mock()

    def scan_factory(self):
        scan = FakeScan(url=self.results.pop(0) if self.results else None)
        self.scans.append(scan)
        return scan

    def make_loop(self) -> DiscoveryRetryLoop:
        return DiscoveryRetryLoop(self.on_found,
                                  scan_factory=self.scan_factory,
                                  retry_interval_sec=30.0,
                                  clock=lambda: self.now)

    def test_found_hands_off_once(self):
        self.results = ["http://10.0.0.2:1002"]
        loop = self.make_loop()
        loop.start()

        for _ in range(5):
            loop.tick()

        self.on_found.assert_called_once_with("http://10.0.0.2:1002")
        self.assertTrue(loop.found)
        self.assertEqual(len(self.scans), 1)

    def test_incomplete_scan_waits(self):
        loop = self.make_loop()
        loop.start()
        self.scans[0].complete = False

        self.now += 100.0
        loop.tick()
        loop.tick()

        self.assertEqual(len(self.scans), 1)
        self.on_found.assert_not_called()

    def test_retries_after_interval(self):
        self.results = [None, "http://10.0.0.3:1003"]
        loop = self.make_loop()
        loop.start()

        loop.tick()  # Arms the retry.
        self.now += 29.0
        loop.tick()
        self.assertEqual(len(self.scans), 1, "Should not retry before the interval.")

        self.now += 2.0
        loop.tick()
        self.assertEqual(len(self.scans), 2, "Expected a fresh scan after the interval.")
        self.assertTrue(self.scans[0].joined, "The old scan should be finished with first.")
        self.assertTrue(self.scans[1].started)

        loop.tick()
        self.on_found.assert_called_once_with("http://10.0.0.3:1003")

    def test_retry_deadline_is_reset(self):
        loop = self.make_loop()
        loop.start()

        loop.tick()
        self.now += 31.0
        loop.tick()
        self.assertEqual(len(self.scans), 2)

        # Second scan failed too, the next retry is another full interval away.
        loop.tick()
        self.now += 29.0
        loop.tick()
        self.assertEqual(len(self.scans), 2)
        self.now += 2.0
        loop.tick()
        self.assertEqual(len(self.scans), 3)

    def test_tick_before_start(self):
        loop = self.make_loop()
        loop.tick()

        self.assertEqual(self.scans, [])

    def test_start_twice(self):
        loop = self.make_loop()
        loop.start()
        loop.start()

        self.assertEqual(len(self.scans), 1)

    def test_run_with_real_scans(self):
        found = []
        loop = DiscoveryRetryLoop(found.append, scan_factory=lambda: PeerScan(find=lambda: "http://10.0.0.2:1002"))

        loop.run(poll_interval_sec=0.01)

        self.assertEqual(found, ["http://10.0.0.2:1002"])
        self.assertTrue(loop.close(5))

    def test_stop_ends_run(self):
        loop = self.make_loop()
        original_tick = loop.tick

        def tick():
            original_tick()
            loop.stop()

        loop.tick = tick
        loop.run(poll_interval_sec=0.01)

        self.on_found.assert_not_called()
        self.assertTrue(loop.close())


if __name__ == "__main__":
    unittest.main()
