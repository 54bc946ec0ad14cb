import asyncio
import ipaddress
import logging
from types import MappingProxyType
from typing import Callable, List, Optional

from config import DEFAULT_QUERY
from mdns import codec
from mdns.events import EventBus, Handler
from mdns.models import Device, Message, Service
from mdns.registry import Registry, empty_registry, find_device, merge
from mdns.resolver import resolve_device
from mdns.responder import answer_questions
from mdns.transport import MulticastTransport, PacketCallback

class MDNSClient:
    """mDNS responder and resolver.

    All state (local services, device registry, active queries) belongs to
    one worker task. Public coroutines and inbound packets are queued as
    commands and run one at a time, to completion, in arrival order.
    """

    def __init__(self, services: Optional[List[Service]] = None,
                 mdns_address: str = "224.0.0.251", mdns_port: int = 5353,
                 transport_factory: Optional[Callable[[PacketCallback], MulticastTransport]] = None):
        self.services: List[Service] = list(services or [])
        self.registry: Registry = empty_registry()
        self.queries: List[str] = []
        self.events = EventBus()
        self.logger = logging.getLogger(__name__)

        self.transport_factory = transport_factory or (
            lambda callback: MulticastTransport(callback, mdns_address, mdns_port))
        self.transport = None
        self.running = False
        self._commands: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

    async def start(self):
        self._commands = asyncio.Queue()
        self.transport = self.transport_factory(self._on_packet)
        await self.transport.open()
        self._worker = asyncio.get_running_loop().create_task(self._run(self._commands))
        self.running = True
        self.logger.info(f"mDNS client started with {len(self.services)} local services")

    async def stop(self):
        self.running = False
        commands, self._commands = self._commands, None
        if self._worker:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        if commands is not None:
            self._fail_pending(commands)
        await self.events.close()
        if self.transport:
            self.transport.close()
        self.logger.info("mDNS client stopped")

    # Public API, serialized through the command queue

    async def query(self, namespace: str = DEFAULT_QUERY):
        return await self._call(self._query, namespace)

    async def register_service(self, service: Service):
        return await self._call(self._register_service, service)

    async def subscribe(self, handler: Handler):
        return await self._call(self.events.subscribe, handler)

    async def unsubscribe(self, handler: Handler):
        return await self._call(self.events.unsubscribe, handler)

    async def devices(self) -> Registry:
        return await self._call(lambda: MappingProxyType(dict(self.registry)))

    async def get_services(self) -> List[Service]:
        return await self._call(lambda: list(self.services))

    async def get_queries(self) -> List[str]:
        return await self._call(lambda: list(self.queries))

    async def _call(self, fn, *args):
        if self._commands is None:
            raise RuntimeError("mDNS client is not running")
        future = asyncio.get_running_loop().create_future()
        self._commands.put_nowait((fn, args, future))
        return await future

    def _on_packet(self, address: str, data: bytes):
        if self._commands is not None:
            self._commands.put_nowait((self.handle_packet, (address, data), None))

    def _fail_pending(self, commands: asyncio.Queue):
        while not commands.empty():
            _, _, future = commands.get_nowait()
            if future is not None and not future.done():
                future.set_exception(RuntimeError("mDNS client is not running"))

    async def _run(self, commands: asyncio.Queue):
        while True:
            fn, args, future = await commands.get()
            try:
                result = fn(*args)
            except Exception as e:
                if future is None:
                    self.logger.error(f"Error handling command {fn.__name__}: {e}", exc_info=True)
                elif not future.done():
                    future.set_exception(e)
                continue
            if future is not None and not future.done():
                future.set_result(result)

    # Command handlers

    def _send(self, packets: List[bytes]):
        for packet in packets:
            self.transport.send(packet)

    def _query(self, namespace: str):
        self._send(codec.encode_query([codec.ptr_question(namespace)]))
        if namespace not in self.queries:
            self.queries.append(namespace)
        self.logger.info(f"Sent query for {namespace}")

    def _register_service(self, service: Service):
        # Normalizes the data and rejects values the record type cannot encode
        service = Service.from_dict(service.to_dict())
        self.services.append(service)
        self.logger.info(f"Registered service {service.domain} ({service.type.name})")

    def handle_packet(self, address: str, data: bytes):
        try:
            if ipaddress.ip_address(address).version != 4:
                return
        except ValueError:
            self.logger.debug(f"Ignoring packet from unparseable address {address!r}")
            return

        try:
            message = codec.decode(data)
        except codec.DecodeError as e:
            self.logger.debug(f"Dropping packet from {address}: {e}")
            return

        if message.is_response:
            self.handle_response(address, message)
        else:
            self.handle_query(address, message)

    def handle_query(self, address: str, message: Message):
        self.logger.debug(f"Got query from {address}: {[q.domain for q in message.questions]}")
        answers = answer_questions(message.questions, self.services)
        if not answers:
            return
        self.logger.debug(f"Sending response with {len(answers)} answers")
        self._send(codec.encode_response(answers))

    def handle_response(self, address: str, message: Message):
        self.logger.debug(f"Got response from {address} with {len(message.answers)} records")
        known = find_device(self.registry, address) or Device(address=address)
        device = resolve_device(list(message.answers), known)
        self.registry, events = merge(device, self.queries, self.registry)
        for event in events:
            self.logger.info(f"Device {event.device.address} {event.kind.value} in {event.namespace}")
            self.events.notify(event)
