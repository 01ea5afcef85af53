import unittest
from unittest import mock

import requests

from remote_iso.registration import Heartbeat, get_local_ip, register_server


class RegisterServerTests(unittest.TestCase):

    @mock.patch("remote_iso.registration.requests.get")
    @mock.patch("remote_iso.registration.get_local_ip", return_value="192.168.1.5")
    def test_sends_local_ip_and_port(self, mock_ip, mock_get):
        mock_get.return_value = mock.Mock(status_code=200)

        self.assertTrue(register_server(41234, hostname="rendezvous.test", report_port=8080))

        mock_get.assert_called_once()
        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], "http://rendezvous.test:8080/match/update")
        self.assertEqual(kwargs["params"], {"local": "192.168.1.5", "port": 41234})

    @mock.patch("remote_iso.registration.requests.get")
    @mock.patch("remote_iso.registration.get_local_ip", return_value=None)
    def test_unresolvable_host_is_a_silent_no_op(self, mock_ip, mock_get):
        self.assertFalse(register_server(41234))
        mock_get.assert_not_called()

    @mock.patch("remote_iso.registration.requests.get", side_effect=requests.ConnectionError("down"))
    @mock.patch("remote_iso.registration.get_local_ip", return_value="192.168.1.5")
    def test_request_failure_is_not_raised(self, mock_ip, mock_get):
        self.assertFalse(register_server(41234))
        self.assertEqual(mock_get.call_count, 1, "Registration should not be retried.")

    @mock.patch("remote_iso.registration.requests.get")
    @mock.patch("remote_iso.registration.get_local_ip", return_value="192.168.1.5")
    def test_response_status_is_ignored(self, mock_ip, mock_get):
        mock_get.return_value = mock.Mock(status_code=500)

        self.assertTrue(register_server(41234))

    def test_local_ip_towards_loopback(self):
        self.assertEqual(get_local_ip("127.0.0.1", 80), "127.0.0.1")


class HeartbeatTests(unittest.TestCase):

    def setUp(self):
        self.now = 1000.0
        self.register = mock.Mock(return_value=True)
        self.heartbeat = Heartbeat(41234, interval_sec=540.0, register=self.register, clock=lambda: self.now)

    def test_beat_registers_immediately(self):
        self.heartbeat.beat()

        self.register.assert_called_once_with(41234)
        self.assertEqual(self.heartbeat.last_register, 1000.0)

    def test_waits_for_interval(self):
        self.heartbeat.beat()

        self.now += 540.0
        self.assertFalse(self.heartbeat.maybe_beat(), "Should only register once the interval has passed.")
        self.now += 0.5
        self.assertTrue(self.heartbeat.maybe_beat())
        self.assertEqual(self.register.call_count, 2)

        self.now += 100.0
        self.assertFalse(self.heartbeat.maybe_beat())
        self.assertEqual(self.register.call_count, 2)

    def test_failure_still_resets_interval(self):
        self.register.return_value = False
        self.heartbeat.beat()

        self.now += 10.0
        self.assertFalse(self.heartbeat.maybe_beat())
        self.assertEqual(self.register.call_count, 1)


if __name__ == "__main__":
    unittest.main()
