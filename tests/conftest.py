import asyncio

import pytest

class FakeTransport:
    """Records outbound packets instead of touching the network."""

    def __init__(self, on_packet):
        self.on_packet = on_packet
        self.sent = []
        self.opened = False
        self.closed = False

    async def open(self):
        self.opened = True
        return self

    def send(self, payload):
        self.sent.append(payload)

    def close(self):
        self.closed = True

@pytest.fixture
def transports():
    """List that collects every FakeTransport built by ``transport_factory``"""
    return []

@pytest.fixture
def transport_factory(transports):
    def factory(on_packet):
        transport = FakeTransport(on_packet)
        transports.append(transport)
        return transport
    return factory

async def wait_for(predicate, timeout=1.0):
    """Yield to the loop until ``predicate()`` holds or the timeout expires"""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)

@pytest.fixture
def wait():
    return wait_for
