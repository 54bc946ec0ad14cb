import asyncio
import logging
import socket
import struct
from typing import Callable, Optional

logger = logging.getLogger(__name__)

PacketCallback = Callable[[str, bytes], None]

class MulticastTransport:
    """IPv4 UDP socket joined to the mDNS multicast group."""

    def __init__(self, on_packet: PacketCallback, mdns_address: str = "224.0.0.251",
                 mdns_port: int = 5353):
        self.on_packet = on_packet
        self.mdns_address = mdns_address
        self.mdns_port = mdns_port
        self.sock: Optional[socket.socket] = None
        self.running = False
        self._receiver: Optional[asyncio.Task] = None

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        try:
            return self._configure(sock)
        except OSError:
            sock.close()
            raise

    def _configure(self, sock: socket.socket) -> socket.socket:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        try:
            # Allow other mDNS stacks on this host to share the port
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
        except (AttributeError, OSError):
            # SO_REUSEPORT not available on all systems
            pass

        sock.bind(('', self.mdns_port))
        # Port 0 binds an ephemeral port; send to whatever was picked
        self.mdns_port = sock.getsockname()[1]
        logger.info(f"Successfully bound to port {self.mdns_port}")

        mreq = struct.pack("4sl", socket.inet_aton(self.mdns_address), socket.INADDR_ANY)
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, 255)
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1)
        logger.info(f"Joined multicast group {self.mdns_address} on INADDR_ANY")

        sock.setblocking(False)
        return sock

    async def open(self):
        try:
            self.sock = self._create_socket()
        except OSError as e:
            logger.error(f"Failed to open multicast socket on port {self.mdns_port}: {e}")
            raise
        self.running = True
        self._receiver = asyncio.get_running_loop().create_task(self._receive_loop())
        return self

    async def _receive_loop(self):
        loop = asyncio.get_running_loop()
        while self.running:
            try:
                data, addr = await loop.sock_recvfrom(self.sock, 9000)
            except OSError as e:
                if not self.running:
                    break
                logger.error(f"Error receiving mDNS packet: {e}")
                await asyncio.sleep(0.1)
                continue

            logger.debug(f"Received mDNS packet from {addr[0]}, size: {len(data)} bytes")
            self.on_packet(addr[0], data)

    def send(self, payload: bytes):
        if not self.sock:
            logger.error("Cannot send mDNS packet: transport is not open")
            return
        try:
            self.sock.sendto(payload, (self.mdns_address, self.mdns_port))
        except OSError as e:
            logger.error(f"Error sending mDNS packet: {e}")

    def close(self):
        self.running = False
        if self._receiver:
            self._receiver.cancel()
            self._receiver = None
        if self.sock:
            self.sock.close()
            self.sock = None
        logger.info("Multicast transport closed")
