#!/usr/bin/env python3

import asyncio
import logging
import signal
import sys
import threading
from config import Config
from services.store import ServiceStore
from mdns.client import MDNSClient
from mdns.models import DeviceEvent
from web.app import WebApp

class MDNSDiscovery:
    def __init__(self, config: Config = None):
        self.config = config or Config.from_env()
        self.service_store = ServiceStore(self.config.services_file)
        self.client = None
        self.web_app = None
        self.stopped = None

        logging.basicConfig(
            level=getattr(logging, self.config.log_level, logging.INFO),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        self.logger = logging.getLogger(__name__)

    def log_device_event(self, event: DeviceEvent):
        device = event.device
        self.logger.info(f"[{event.namespace}] {event.kind.value}: {device.address} "
                         f"domain={device.domain} services={list(device.services)} payload={dict(device.payload)}")

    def start_web_app(self, loop: asyncio.AbstractEventLoop):
        self.web_app = WebApp(self.client, self.service_store, loop)

        def run_web_app():
            try:
                self.web_app.run(
                    host=self.config.web_host,
                    port=self.config.web_port,
                    debug=False
                )
            except Exception as e:
                self.logger.error(f"Failed to start web app: {e}")

        web_thread = threading.Thread(target=run_web_app, daemon=True)
        web_thread.start()
        self.logger.info(f"Web interface started on http://{self.config.web_host}:{self.config.web_port}")

    def setup_signal_handlers(self, loop: asyncio.AbstractEventLoop):
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self.shutdown)
            except NotImplementedError:
                # add_signal_handler is unavailable on Windows event loops
                signal.signal(signum, lambda s, f: loop.call_soon_threadsafe(self.shutdown))

    def shutdown(self):
        self.logger.info("Received shutdown signal")
        if self.stopped and not self.stopped.is_set():
            self.stopped.set()

    async def run(self):
        self.logger.info("Starting mDNS discovery")
        self.logger.info(f"mDNS address: {self.config.mdns_address}:{self.config.mdns_port}")
        self.logger.info(f"Services file: {self.config.services_file}")

        loop = asyncio.get_running_loop()
        self.stopped = asyncio.Event()
        self.setup_signal_handlers(loop)

        self.client = MDNSClient(
            self.service_store.get_all_services(),
            self.config.mdns_address,
            self.config.mdns_port
        )

        try:
            await self.client.start()
        except OSError as e:
            self.logger.error(f"Failed to start mDNS client: {e}")
            sys.exit(1)

        try:
            await self.client.subscribe(self.log_device_event)
            for namespace in self.config.queries:
                await self.client.query(namespace)

            if self.config.web_enabled:
                self.start_web_app(loop)

            await self.stopped.wait()
        finally:
            self.logger.info("Shutting down mDNS discovery...")
            await self.client.stop()

def main():
    try:
        discovery = MDNSDiscovery()
        asyncio.run(discovery.run())
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
    except Exception as e:
        print(f"Fatal error: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
