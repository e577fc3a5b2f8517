"""
Relay for the UDP broadcast chat.
Features:
- Learns participants from the source address of every datagram
- Forwards each datagram unmodified to every other known participant
- One sender thread per participant, so a slow target never stalls the others
- Members are never evicted; silent peers stay known until the relay exits
"""

import socket
import threading
import queue
import time
import logging
from typing import Dict, List, Optional, Set, Tuple

from broadcast import create_broadcast_socket
from config import (
    BIND_ADDRESS, BROADCAST_PORT, MAX_DATAGRAM_SIZE, THREAD_JOIN_TIMEOUT, UDP_TIMEOUT
)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

PeerAddress = Tuple[str, int]


class MembershipTable:
    """Set of peer addresses observed by the relay"""

    def __init__(self):
        self._members: Set[PeerAddress] = set()
        self._lock = threading.Lock()

    def observe(self, addr: PeerAddress) -> bool:
        """Add addr if unknown. Returns True if it was new"""
        with self._lock:
            if addr in self._members:
                return False
            self._members.add(addr)
            return True

    def snapshot_except(self, addr: PeerAddress) -> List[PeerAddress]:
        """Point-in-time copy of all members other than addr"""
        with self._lock:
            return [member for member in self._members if member != addr]

    def __contains__(self, addr) -> bool:
        with self._lock:
            return addr in self._members

    def __len__(self) -> int:
        with self._lock:
            return len(self._members)


class PeerChannel:
    """FIFO of datagrams for one peer, drained by its own sender thread"""

    def __init__(self, sock: socket.socket, addr: PeerAddress, on_sent=None, on_failure=None):
        self.sock = sock
        self.addr = addr
        self.on_sent = on_sent
        self.on_failure = on_failure
        self.sent = 0

        self._queue: queue.Queue = queue.Queue()
        self._thread: Optional[threading.Thread] = None

        self.logger = logging.getLogger(f"PeerChannel-{addr[0]}:{addr[1]}")

    def start(self):
        self._thread = threading.Thread(target=self._send_loop, daemon=True)
        self._thread.start()

    def enqueue(self, payload: bytes):
        self._queue.put(payload)

    def close(self, timeout: float = THREAD_JOIN_TIMEOUT):
        """Send everything already queued, then stop the sender thread"""
        self._queue.put(None)
        if self._thread:
            self._thread.join(timeout=timeout)

    def _send_loop(self):
        while True:
            payload = self._queue.get()
            if payload is None:
                break
            try:
                self.sock.sendto(payload, self.addr)
                self.sent += 1
                if self.on_sent:
                    self.on_sent()
            except OSError as e:
                # Fire-and-forget: one failed send never affects other peers
                self.logger.debug(f"Send to {self.addr} failed: {e}")
                if self.on_failure:
                    self.on_failure()


class Relay:
    """Forwards datagrams between every participant it has heard from"""

    def __init__(self, port: int = BROADCAST_PORT, host: str = BIND_ADDRESS,
                 timeout: float = UDP_TIMEOUT):
        self.port = port
        self.host = host
        self.timeout = timeout

        self.is_running = False
        self.sock: Optional[socket.socket] = None

        self.members = MembershipTable()
        # Only touched by the receive thread
        self.channels: Dict[PeerAddress, PeerChannel] = {}

        self.datagrams_received = 0
        self.datagrams_forwarded = 0
        self.send_failures = 0
        self._stats_lock = threading.Lock()

        self.receive_thread: Optional[threading.Thread] = None

        self.logger = logging.getLogger(f"Relay-{port}")

    def start(self):
        """Bind the socket and start the receive loop. Socket errors propagate"""
        self.sock = create_broadcast_socket(self.port, self.host, timeout=self.timeout)
        self.port = self.sock.getsockname()[1]
        self.is_running = True

        self.receive_thread = threading.Thread(target=self._receive_loop, daemon=True)
        self.receive_thread.start()

        self.logger.info(f"Relay listening on {self.host}:{self.port}")

    def stop(self):
        """Stop receiving, flush pending forwards and close the socket"""
        self.is_running = False

        if self.receive_thread:
            self.receive_thread.join(timeout=THREAD_JOIN_TIMEOUT)

        for channel in list(self.channels.values()):
            channel.close()

        if self.sock:
            self.sock.close()

        self.logger.info("Relay stopped")

    def _receive_loop(self):
        """Receive datagrams until stopped; receive errors never end the loop"""
        while self.is_running:
            try:
                payload, sender = self.sock.recvfrom(MAX_DATAGRAM_SIZE)
            except socket.timeout:
                continue
            except OSError as e:
                if self.is_running:
                    self.logger.error(f"Error receiving datagram: {e}")
                continue

            self._handle_datagram(payload, sender)

    def _handle_datagram(self, payload: bytes, sender: PeerAddress) -> List[PeerAddress]:
        """Record the sender and queue payload for every other member"""
        with self._stats_lock:
            self.datagrams_received += 1

        if self.members.observe(sender):
            self.logger.info(f"New participant {sender[0]}:{sender[1]}")
            channel = PeerChannel(self.sock, sender, on_sent=self._record_sent,
                                  on_failure=self._record_failure)
            channel.start()
            self.channels[sender] = channel

        targets = self.members.snapshot_except(sender)
        for target in targets:
            self.channels[target].enqueue(payload)
        return targets

    def _record_sent(self):
        with self._stats_lock:
            self.datagrams_forwarded += 1

    def _record_failure(self):
        with self._stats_lock:
            self.send_failures += 1

    def get_status(self) -> dict:
        """Get relay status"""
        with self._stats_lock:
            received = self.datagrams_received
            forwarded = self.datagrams_forwarded
            failures = self.send_failures

        return {
            'port': self.port,
            'is_running': self.is_running,
            'known_peers': len(self.members),
            'datagrams_received': received,
            'datagrams_forwarded': forwarded,
            'send_failures': failures,
        }


def main():
    """Main entry point for relay"""
    import sys

    port = int(sys.argv[1]) if len(sys.argv) > 1 else BROADCAST_PORT

    relay = Relay(port)
    try:
        relay.start()
    except OSError as e:
        relay.logger.error(f"Could not bind relay socket: {e}")
        sys.exit(1)

    print(f"Relay running on port {relay.port}")
    print("Press Ctrl+C to stop")

    try:
        while True:
            time.sleep(1)
            status = relay.get_status()
            print(f"\rStatus: Peers={status['known_peers']}, "
                  f"Received={status['datagrams_received']}, "
                  f"Forwarded={status['datagrams_forwarded']}",
                  end='', flush=True)
    except KeyboardInterrupt:
        print("\nShutting down...")
        relay.stop()


if __name__ == '__main__':
    main()
