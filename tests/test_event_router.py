"""
Unit tests for EventRouter dispatch.
"""

import threading
import unittest
from unittest.mock import Mock

from py2lirc.core.client import LircClient
from py2lirc.core.protocol import Event
from py2lirc.services.event_router import EventRouter

from mock_lircd_server import MockLircd


POWER = Event(0x10, 0, "KEY_POWER", "TV")
MUTE = Event(0x20, 0, "KEY_MUTE", "amp")


class TestEventRouterDispatch(unittest.TestCase):
    """Test handler matching."""

    def setUp(self):
        self.router = EventRouter()

    def test_exact_match(self):
        handler = Mock()
        self.router.register("TV", "KEY_POWER", handler)

        self.assertEqual(self.router.dispatch(POWER), 1)
        handler.assert_called_once_with(POWER)
        self.assertEqual(self.router.dispatch(MUTE), 0)

    def test_wildcards(self):
        any_tv, any_power, everything = Mock(), Mock(), Mock()
        self.router.register("TV", None, any_tv)
        self.router.register(None, "KEY_POWER", any_power)
        self.router.register(None, None, everything)

        self.router.dispatch(POWER)
        self.router.dispatch(MUTE)

        self.assertEqual(any_tv.call_count, 1)
        self.assertEqual(any_power.call_count, 1)
        self.assertEqual(everything.call_count, 2)

    def test_most_specific_first(self):
        order = []
        self.router.register(None, None, lambda e: order.append("any"))
        self.router.register("TV", "KEY_POWER", lambda e: order.append("exact"))

        self.router.dispatch(POWER)
        self.assertEqual(order, ["exact", "any"])

    def test_handler_error_does_not_stop_others(self):
        failing = Mock(side_effect=RuntimeError("boom"))
        working = Mock()
        self.router.register("TV", "KEY_POWER", failing)
        self.router.register("TV", "KEY_POWER", working)

        self.assertEqual(self.router.dispatch(POWER), 1)
        working.assert_called_once_with(POWER)
        self.assertEqual(self.router.get_stats()['handler_errors'], 1)

    def test_unregister(self):
        handler = Mock()
        self.router.register("TV", "KEY_POWER", handler)
        self.router.unregister("TV", "KEY_POWER", handler)
        self.router.unregister("TV", "KEY_POWER", handler)

        self.router.dispatch(POWER)
        handler.assert_not_called()
        self.assertEqual(self.router.get_stats()['events_unhandled'], 1)


class TestEventRouterRun(unittest.TestCase):
    """Test draining a live client."""

    def test_run_until_connection_closes(self):
        daemon, client_socket = MockLircd.socketpair()
        client = LircClient(client_socket)
        router = EventRouter()
        received = []
        done = threading.Event()

        def on_power(event):
            received.append(event)
            done.set()

        router.register("TV", "KEY_POWER", on_power)
        runner = threading.Thread(target=router.run, args=(client,))
        runner.start()

        try:
            daemon.broadcast("0000000000000010", "0", "KEY_POWER", "TV")
            self.assertTrue(done.wait(2.0))
        finally:
            client.close()
            runner.join(timeout=2.0)
            daemon.stop()

        self.assertFalse(runner.is_alive())
        self.assertEqual(received, [POWER])


if __name__ == '__main__':
    unittest.main()
