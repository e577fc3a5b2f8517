"""
Wire protocol for the UDP broadcast chat.
A datagram carries "<sender_id>:<text>"; anything else is shown as raw text.
"""

import re
from typing import Optional

from config import MAX_DATAGRAM_SIZE

# Sender ids are unsigned 32-bit integers
MAX_SENDER_ID = 0xFFFFFFFF

_SENDER_ID_PATTERN = re.compile(r'\+?[0-9]+')


class MessageTooLargeError(ValueError):
    """Encoded message does not fit into a single datagram"""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Message of {size} bytes exceeds datagram limit of {limit} bytes")
        self.size = size
        self.limit = limit


def parse_sender_id(prefix: str) -> Optional[int]:
    """Parse a sender tag, returning None if it is not an unsigned 32-bit integer"""
    if not _SENDER_ID_PATTERN.fullmatch(prefix):
        return None
    sender_id = int(prefix)
    if sender_id > MAX_SENDER_ID:
        return None
    return sender_id


class WireMessage:
    """A single chat datagram, optionally tagged with its sender id"""

    def __init__(self, text: str, sender_id: Optional[int] = None):
        self.text = text
        self.sender_id = sender_id

    def to_bytes(self, max_size: int = MAX_DATAGRAM_SIZE) -> bytes:
        """Encode for transmission; raises MessageTooLargeError above max_size"""
        if self.sender_id is None:
            data = self.text.encode('utf-8')
        else:
            data = f"{self.sender_id}:{self.text}".encode('utf-8')

        if len(data) > max_size:
            raise MessageTooLargeError(len(data), max_size)
        return data

    @staticmethod
    def from_bytes(data: bytes) -> 'WireMessage':
        """Decode a datagram.

        Invalid UTF-8 is replaced rather than rejected. The payload is split on
        the first ':' only, so the text may itself contain colons. When there is
        no ':' or the prefix is not a sender id, the whole payload becomes the
        text and sender_id is None.
        """
        decoded = data.decode('utf-8', errors='replace')
        prefix, sep, text = decoded.partition(':')
        if sep:
            sender_id = parse_sender_id(prefix)
            if sender_id is not None:
                return WireMessage(text, sender_id)
        return WireMessage(decoded)

    def is_from(self, participant_id: int) -> bool:
        return self.sender_id is not None and self.sender_id == participant_id

    def to_display(self) -> str:
        """Render as a display line for a remote participant"""
        if self.sender_id is None:
            return self.text
        return f"User {self.sender_id}: {self.text}"

    def __repr__(self):
        return f"WireMessage(sender={self.sender_id}, text={self.text!r})"


def local_echo(text: str) -> str:
    """Display line for text authored by this participant"""
    return f"Me: {text}"
