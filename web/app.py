import asyncio
from flask import Flask, request, jsonify
from flask_cors import CORS
from mdns.client import MDNSClient
from mdns.models import Service
from services.store import ServiceStore

class WebApp:
    def __init__(self, client: MDNSClient, service_store: ServiceStore,
                 loop: asyncio.AbstractEventLoop, timeout: float = 5.0):
        self.app = Flask(__name__)
        CORS(self.app)
        self.client = client
        self.service_store = service_store
        self.loop = loop
        self.timeout = timeout
        self._setup_routes()

    def _run(self, coro):
        # Flask runs in its own thread; hand the call to the client's loop
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result(self.timeout)

    def _setup_routes(self):
        @self.app.route('/api/devices', methods=['GET'])
        def get_devices():
            registry = self._run(self.client.devices())
            devices = {
                namespace: [device.to_dict() for device in bucket]
                for namespace, bucket in registry.items()
            }
            return jsonify({'devices': devices})

        @self.app.route('/api/services', methods=['GET'])
        def get_services():
            services = self._run(self.client.get_services())
            return jsonify({'services': [service.to_dict() for service in services]})

        @self.app.route('/api/services', methods=['POST'])
        def add_service():
            data = request.get_json(silent=True)

            try:
                if not isinstance(data, dict):
                    raise ValueError("Expected a JSON object")
                service = Service.from_dict(data)
            except (ValueError, TypeError) as e:
                return jsonify({'success': False, 'error': str(e)}), 400

            self._run(self.client.register_service(service))
            self.service_store.add_service(service)
            return jsonify({'success': True, 'service': service.to_dict()})

        @self.app.route('/api/queries', methods=['GET'])
        def get_queries():
            return jsonify({'queries': self._run(self.client.get_queries())})

        @self.app.route('/api/queries', methods=['POST'])
        def add_query():
            data = request.get_json(silent=True) or {}
            namespace = str(data.get('namespace', '')).strip()
            if not namespace:
                return jsonify({'success': False, 'error': "Missing 'namespace'"}), 400

            self._run(self.client.query(namespace))
            return jsonify({'success': True, 'namespace': namespace})

    def run(self, host='0.0.0.0', port=8080, debug=False):
        self.app.run(host=host, port=port, debug=debug)
