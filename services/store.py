import logging
import os
from typing import List

import yaml

from mdns.models import Service

class ServiceStore:
    """Local service advertisements kept in a YAML file.

    File layout::

        services:
          - domain: _nerves._tcp.local
            type: ptr
            data: _rosetta._tcp.local
            ttl: 120
          - domain: rosetta.local
            type: a
            data: 192.168.1.112
    """

    def __init__(self, services_file: str = "services.yaml"):
        self.services_file = services_file
        self.logger = logging.getLogger(__name__)
        self.services = self._load_services()

    def _load_services(self) -> List[Service]:
        if not os.path.exists(self.services_file):
            self.logger.info(f"No services file found at {self.services_file}")
            return []

        try:
            with open(self.services_file, 'r') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            self.logger.error(f"Error loading services from {self.services_file}: {e}")
            return []

        if not data:
            return []

        services = []
        for service_data in data.get('services') or []:
            try:
                services.append(Service.from_dict(service_data))
            except (ValueError, TypeError) as e:
                self.logger.warning(f"Skipping invalid service entry {service_data!r}: {e}")

        self.logger.info(f"Loaded {len(services)} services from {self.services_file}")
        return services

    def save_services(self):
        data = {'services': [service.to_dict() for service in self.services]}

        directory = os.path.dirname(self.services_file)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(self.services_file, 'w') as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    def add_service(self, service: Service):
        self.services.append(service)
        self.save_services()

    def get_all_services(self) -> List[Service]:
        return list(self.services)
