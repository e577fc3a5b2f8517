"""
UDP broadcast socket setup shared by the relay and participants.
"""

import socket
import logging

from config import BIND_ADDRESS, BROADCAST_PORT, UDP_TIMEOUT

logger = logging.getLogger("broadcast")


def create_broadcast_socket(port: int = BROADCAST_PORT, host: str = BIND_ADDRESS,
                            reuse_port: bool = False,
                            timeout: float = UDP_TIMEOUT) -> socket.socket:
    """Create a UDP socket bound to host:port with broadcast enabled.

    SO_REUSEADDR is always set. With reuse_port the socket also sets
    SO_REUSEPORT so several participants on one host can bind the same port;
    platforms without SO_REUSEPORT allow only one such process per port.

    The socket uses a receive timeout so the calling thread can notice
    shutdown. Any failure here is fatal: the socket is closed and the
    OSError propagates to the caller.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if reuse_port:
            if hasattr(socket, 'SO_REUSEPORT'):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            else:
                logger.warning("SO_REUSEPORT not supported, only one process can bind this port")
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.bind((host, port))
        sock.settimeout(timeout)
    except OSError:
        sock.close()
        raise

    logger.debug(f"Broadcast socket bound to {sock.getsockname()}")
    return sock
