"""
Configuration for the UDP broadcast chat.
"""

# Network configuration
# Relay and participants share one fixed port; participants send to the
# limited broadcast address so every host on the subnet sees the datagram.
BROADCAST_PORT = 42069
BROADCAST_ADDRESS = '255.255.255.255'
BIND_ADDRESS = '0.0.0.0'

# One datagram carries exactly one message
MAX_DATAGRAM_SIZE = 1024

# Timing configuration (in seconds)
UDP_TIMEOUT = 1.0
DISPLAY_POLL_INTERVAL = 0.03  # 30ms display drain cadence
THREAD_JOIN_TIMEOUT = 2.0

# Capacity limits
OUTBOUND_QUEUE_SIZE = 32  # newest message is dropped when full
