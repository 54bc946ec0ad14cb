import asyncio
import socket

import pytest

from mdns.transport import MulticastTransport


def test_loopback_round_trip(wait):
    async def run():
        received = []
        transport = MulticastTransport(lambda address, data: received.append((address, data)),
                                       "224.0.0.251", 0)
        try:
            await transport.open()
        except OSError as e:
            pytest.skip(f"multicast socket unavailable: {e}")

        try:
            assert transport.mdns_port != 0
            try:
                transport.sock.sendto(b"ping", (transport.mdns_address, transport.mdns_port))
            except OSError as e:
                pytest.skip(f"multicast send unavailable: {e}")

            transport.send(b"mdns payload")
            await wait(lambda: any(data == b"mdns payload" for _, data in received), timeout=2.0)
        finally:
            transport.close()

        assert transport.sock is None
        return received

    received = asyncio.run(run())
    address = next(address for address, data in received if data == b"mdns payload")
    socket.inet_aton(address)


def test_send_before_open_is_ignored(caplog):
    transport = MulticastTransport(lambda address, data: None)
    transport.send(b"payload")
    assert "transport is not open" in caplog.text
