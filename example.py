#!/usr/bin/env python3
"""
Simple example demonstrating the UDP broadcast chat.
This creates one relay and two participants on loopback that exchange messages.
"""

import time
from relay import Relay
from participant import Participant


def main():
    """Run the example"""
    print("=" * 70)
    print("UDP Broadcast Chat - Simple Example")
    print("=" * 70)
    print()

    relay = Relay(port=0, host='127.0.0.1')
    relay.start()
    print(f"Relay started on port {relay.port}")

    # Loopback stands in for the subnet broadcast address here
    alice = Participant(1, port=relay.port, broadcast_address='127.0.0.1',
                        bind_host='127.0.0.1', bind_port=0)
    bob = Participant(2, port=relay.port, broadcast_address='127.0.0.1',
                      bind_host='127.0.0.1', bind_port=0)
    alice.start()
    bob.start()

    try:
        # The relay only learns a participant once it has sent something
        alice.submit("Hello, is anyone there?")
        time.sleep(0.3)
        bob.submit("Hi Alice, Bob here!")
        time.sleep(0.3)
        alice.submit("Great, the relay is working: 2 peers known")
        time.sleep(0.5)

        for name, participant in (("alice", alice), ("bob", bob)):
            print()
            print(f"[{name}] display:")
            for line in participant.bridge.drain_inbound():
                print(f"  {line}")

        print()
        status = relay.get_status()
        print(f"Relay status: {status['known_peers']} peers, "
              f"{status['datagrams_received']} received, "
              f"{status['datagrams_forwarded']} forwarded")
    finally:
        alice.stop()
        bob.stop()
        relay.stop()

    print("=" * 70)
    print("Example complete!")
    print()
    print("To try it yourself:")
    print("  1. Run: python relay.py")
    print("  2. Run on other hosts: python participant.py")
    print("=" * 70)


if __name__ == '__main__':
    main()
