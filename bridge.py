"""
Queues connecting the participant's network threads to the display layer.

- outbound: display layer -> send loop. Bounded; when full the newest line is
  dropped so the display layer never blocks.
- inbound: receive loop -> display layer. Unbounded; the display layer drains
  it on a fixed cadence.
"""

import queue
import threading
import logging
from typing import Iterator, List, Optional

from config import DISPLAY_POLL_INTERVAL, OUTBOUND_QUEUE_SIZE


class Bridge:
    """Pair of one-directional queues between network and display"""

    def __init__(self, outbound_size: int = OUTBOUND_QUEUE_SIZE):
        self.outbound: queue.Queue = queue.Queue(maxsize=outbound_size)
        self.inbound: queue.Queue = queue.Queue()
        self.dropped_outbound = 0

        self.logger = logging.getLogger("Bridge")

    def offer_outbound(self, text: str) -> bool:
        """Enqueue a line for sending without blocking. False if it was dropped"""
        try:
            self.outbound.put_nowait(text)
            return True
        except queue.Full:
            self.dropped_outbound += 1
            self.logger.warning(f"Outbound queue full, dropping message: {text!r}")
            return False

    def next_outbound(self, timeout: float) -> Optional[str]:
        """Wait up to timeout for the next outbound line"""
        try:
            return self.outbound.get(timeout=timeout)
        except queue.Empty:
            return None

    def publish(self, event: str):
        """Hand a display line to the display layer"""
        self.inbound.put(event)

    def drain_inbound(self) -> List[str]:
        """Take every display line currently queued"""
        events = []
        while True:
            try:
                events.append(self.inbound.get_nowait())
            except queue.Empty:
                return events

    def events(self, stop_event: threading.Event,
               interval: float = DISPLAY_POLL_INTERVAL) -> Iterator[str]:
        """Lazily yield display lines, polling every interval until stop_event is set"""
        while not stop_event.is_set():
            pending = self.drain_inbound()
            if not pending:
                stop_event.wait(interval)
                continue
            for event in pending:
                yield event
