"""
Terminal display for a participant: prints incoming lines, reads typed ones.
"""

import threading
import logging
from typing import Callable, Iterator, List, Optional

from bridge import Bridge
from config import DISPLAY_POLL_INTERVAL, THREAD_JOIN_TIMEOUT


class ConsoleDisplay:
    """Drains the bridge on a fixed cadence and keeps the message history"""

    def __init__(self, bridge: Bridge, output: Callable[[str], None] = print,
                 read_line: Callable[[], str] = input,
                 interval: float = DISPLAY_POLL_INTERVAL):
        self.bridge = bridge
        self.output = output
        self.read_line = read_line
        self.interval = interval

        self.history: List[str] = []
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self.logger = logging.getLogger("ConsoleDisplay")

    def start(self):
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._render_loop, daemon=True)
        self._thread.start()

    def stop(self):
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=THREAD_JOIN_TIMEOUT)

    def _render_loop(self):
        for event in self.bridge.events(self._stop_event, self.interval):
            self.history.append(event)
            try:
                self.output(event)
            except Exception as e:
                self.logger.error(f"Error in display output: {e}")

    def input_lines(self) -> Iterator[str]:
        """Yield non-empty typed lines until end of input"""
        while not self._stop_event.is_set():
            try:
                line = self.read_line()
            except EOFError:
                return
            if line.strip():
                yield line
