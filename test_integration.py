"""
Integration tests for the UDP broadcast chat.
Runs a relay and participants over real UDP sockets on loopback.
"""

import time
import unittest
from relay import Relay
from participant import Participant


def wait_for(predicate, timeout=3.0):
    """Poll predicate until it is true or timeout expires"""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


class DisplayRecorder:
    """Collects everything a participant hands to its display layer"""

    def __init__(self, participant):
        self.participant = participant
        self.lines = []

    def poll(self):
        self.lines.extend(self.participant.bridge.drain_inbound())
        return self.lines

    def has(self, line):
        return line in self.poll()


class TestIntegration(unittest.TestCase):
    """Integration tests for relay-participant communication"""

    def setUp(self):
        """Set up relay and two participants on ephemeral loopback ports"""
        self.relay = Relay(port=0, host='127.0.0.1', timeout=0.2)
        self.relay.start()

        self.alice = self._participant(1)
        self.bob = self._participant(2)
        self.alice_display = DisplayRecorder(self.alice)
        self.bob_display = DisplayRecorder(self.bob)

    def tearDown(self):
        """Clean up relay and participants"""
        self.alice.stop()
        self.bob.stop()
        self.relay.stop()

    def _participant(self, participant_id):
        participant = Participant(participant_id, port=self.relay.port,
                                  broadcast_address='127.0.0.1', bind_host='127.0.0.1',
                                  bind_port=0, timeout=0.2)
        participant.start()
        return participant

    def test_relay_learns_participants(self):
        """Test membership grows as participants speak"""
        self.assertEqual(self.relay.get_status()['known_peers'], 0)

        self.alice.submit("hello")
        self.assertTrue(wait_for(lambda: self.relay.get_status()['known_peers'] == 1))

        self.bob.submit("hi")
        self.assertTrue(wait_for(lambda: self.relay.get_status()['known_peers'] == 2))

    def test_messages_reach_known_peers(self):
        """Test messages are forwarded only to participants already known"""
        self.alice.submit("first")
        self.assertTrue(wait_for(lambda: self.relay.get_status()['known_peers'] == 1))

        self.bob.submit("second")
        self.assertTrue(wait_for(lambda: self.alice_display.has("User 2: second")),
                        "Alice should receive Bob's message")

        self.alice.submit("third: with colon")
        self.assertTrue(wait_for(lambda: self.bob_display.has("User 1: third: with colon")),
                        "Bob should receive Alice's message")

        # Bob was unknown when Alice sent her first message
        self.assertNotIn("User 1: first", self.bob_display.poll())

    def test_local_echo_and_no_self_echo(self):
        self.alice.submit("first")
        self.assertTrue(wait_for(lambda: self.relay.get_status()['known_peers'] == 1))
        self.bob.submit("ping")
        self.assertTrue(wait_for(lambda: self.alice_display.has("User 2: ping")))

        self.assertIn("Me: first", self.alice_display.poll())
        self.assertIn("Me: ping", self.bob_display.poll())
        self.assertFalse(any(line.startswith("User 1:") for line in self.alice_display.poll()))
        self.assertFalse(any(line.startswith("User 2:") for line in self.bob_display.poll()))

    def test_raw_datagram_forwarded(self):
        """Test foreign-protocol datagrams are shown verbatim"""
        self.alice.submit("join")
        self.assertTrue(wait_for(lambda: self.relay.get_status()['known_peers'] == 1))

        self.bob.sock.sendto(b"abc:hello", ('127.0.0.1', self.relay.port))
        self.assertTrue(wait_for(lambda: self.alice_display.has("abc:hello")))

    def test_relay_status(self):
        """Test relay status reporting"""
        status = self.relay.get_status()

        self.assertEqual(status['port'], self.relay.port)
        self.assertTrue(status['is_running'])
        self.assertIn('known_peers', status)
        self.assertIn('datagrams_received', status)
        self.assertIn('datagrams_forwarded', status)


class TestStartupErrors(unittest.TestCase):
    """Tests for fatal socket setup failures"""

    def test_relay_bind_failure_raises(self):
        relay = Relay(port=0, host='203.0.113.1')
        with self.assertRaises(OSError):
            relay.start()
        self.assertFalse(relay.is_running)

    def test_participant_bind_failure_raises(self):
        participant = Participant(1, bind_host='203.0.113.1', bind_port=0)
        with self.assertRaises(OSError):
            participant.start()
        self.assertFalse(participant.is_running)


def run_integration_tests():
    """Run integration tests"""
    unittest.main(argv=[''], verbosity=2, exit=False)


if __name__ == '__main__':
    run_integration_tests()
