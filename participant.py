"""
Participant for the UDP broadcast chat.
Sends typed lines as broadcast datagrams and shows messages from others.
"""

import os
import socket
import threading
import logging
from typing import Iterable, Optional

from bridge import Bridge
from broadcast import create_broadcast_socket
from config import (
    BIND_ADDRESS, BROADCAST_ADDRESS, BROADCAST_PORT, MAX_DATAGRAM_SIZE,
    THREAD_JOIN_TIMEOUT, UDP_TIMEOUT
)
from protocol import MAX_SENDER_ID, MessageTooLargeError, WireMessage, local_echo

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


class Participant:
    """Network side of one chat participant"""

    def __init__(self, participant_id: Optional[int] = None, port: int = BROADCAST_PORT,
                 broadcast_address: str = BROADCAST_ADDRESS, bind_host: str = BIND_ADDRESS,
                 bind_port: Optional[int] = None, bridge: Optional[Bridge] = None,
                 timeout: float = UDP_TIMEOUT):
        # The process id is stable for this process and distinguishes our own
        # echoed broadcasts from other participants on the network.
        self.participant_id = participant_id if participant_id is not None else os.getpid()
        if not 0 <= self.participant_id <= MAX_SENDER_ID:
            raise ValueError(f"participant_id must be between 0 and {MAX_SENDER_ID}, "
                             f"got {self.participant_id}")
        self.port = port
        self.broadcast_address = broadcast_address
        self.bind_host = bind_host
        self.bind_port = bind_port if bind_port is not None else port
        self.timeout = timeout

        self.bridge = bridge or Bridge()
        self.sock: Optional[socket.socket] = None
        self.is_running = False

        self.threads = []

        self.logger = logging.getLogger(f"Participant-{self.participant_id}")

    def start(self):
        """Bind the socket and start the send and receive loops. Socket errors propagate"""
        self.sock = create_broadcast_socket(self.bind_port, self.bind_host,
                                            reuse_port=True, timeout=self.timeout)
        self.is_running = True

        threads = [
            threading.Thread(target=self._receive_loop, daemon=True),
            threading.Thread(target=self._send_loop, daemon=True),
        ]
        for thread in threads:
            thread.start()
            self.threads.append(thread)

        self.logger.info(f"Participant {self.participant_id} listening on "
                         f"{self.sock.getsockname()[0]}:{self.sock.getsockname()[1]}")

    def stop(self):
        """Stop both loops and close the socket"""
        self.is_running = False

        for thread in self.threads:
            thread.join(timeout=THREAD_JOIN_TIMEOUT)
        self.threads.clear()

        if self.sock:
            self.sock.close()

        self.logger.info(f"Participant {self.participant_id} stopped")

    def submit(self, text: str) -> bool:
        """Queue text for sending and echo it locally.

        Never blocks: if the outbound queue is full the line is dropped.
        The local echo is shown either way. Returns False if dropped.
        """
        queued = self.bridge.offer_outbound(text)
        self.bridge.publish(local_echo(text))
        return queued

    def submit_lines(self, lines: Iterable[str]):
        """Submit every line produced by the display layer"""
        for line in lines:
            self.submit(line)

    def _send_loop(self):
        """Transmit queued lines until stopped"""
        while self.is_running:
            text = self.bridge.next_outbound(self.timeout)
            if text is None:
                continue
            self._transmit(text)

    def _transmit(self, text: str) -> bool:
        """Send one tagged datagram to the broadcast address"""
        try:
            data = WireMessage(text, self.participant_id).to_bytes(MAX_DATAGRAM_SIZE)
        except MessageTooLargeError as e:
            self.logger.warning(f"Dropping outbound message: {e}")
            return False

        try:
            self.sock.sendto(data, (self.broadcast_address, self.port))
            return True
        except OSError as e:
            self.logger.debug(f"Broadcast send failed: {e}")
            return False

    def _receive_loop(self):
        """Receive datagrams until stopped; receive errors never end the loop"""
        while self.is_running:
            try:
                data, _addr = self.sock.recvfrom(MAX_DATAGRAM_SIZE)
            except socket.timeout:
                continue
            except OSError as e:
                if self.is_running:
                    self.logger.error(f"Error receiving datagram: {e}")
                continue

            self._handle_datagram(data)

    def _handle_datagram(self, data: bytes) -> Optional[str]:
        """Turn a datagram into a display line, dropping our own echoes"""
        msg = WireMessage.from_bytes(data)
        if msg.is_from(self.participant_id):
            return None

        event = msg.to_display()
        self.bridge.publish(event)
        return event


def main():
    """Main entry point for interactive participant"""
    import sys
    from display import ConsoleDisplay

    port = int(sys.argv[1]) if len(sys.argv) > 1 else BROADCAST_PORT

    participant = Participant(port=port)
    try:
        participant.start()
    except OSError as e:
        participant.logger.error(f"Could not bind broadcast socket: {e}")
        sys.exit(1)

    print(f"Chatting as user {participant.participant_id} on port {port}")
    print("Type a message and press Enter. Ctrl+D or Ctrl+C to exit.")
    print()

    display = ConsoleDisplay(participant.bridge)
    display.start()
    try:
        participant.submit_lines(display.input_lines())
    except KeyboardInterrupt:
        print("\nInterrupted")
    finally:
        display.stop()
        participant.stop()


if __name__ == '__main__':
    main()
