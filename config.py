import os
from dataclasses import dataclass, field
from typing import List

DEFAULT_QUERY = "_services._dns-sd._udp.local"

@dataclass
class Config:
    mdns_port: int = 5353
    mdns_address: str = "224.0.0.251"
    web_port: int = 8080
    web_host: str = "0.0.0.0"
    web_enabled: bool = True
    services_file: str = "services.yaml"
    log_level: str = "INFO"
    queries: List[str] = field(default_factory=lambda: [DEFAULT_QUERY])  # Namespaces queried at startup

    @classmethod
    def from_env(cls):
        # Parse startup queries from environment variable
        queries_str = os.getenv("QUERIES", DEFAULT_QUERY)
        queries = [q.strip() for q in queries_str.split(",") if q.strip()]

        return cls(
            mdns_port=int(os.getenv("MDNS_PORT", 5353)),
            mdns_address=os.getenv("MDNS_ADDRESS", "224.0.0.251"),
            web_port=int(os.getenv("WEB_PORT", 8080)),
            web_host=os.getenv("WEB_HOST", "0.0.0.0"),
            web_enabled=os.getenv("WEB_ENABLED", "true").lower() in ("1", "true", "yes"),
            services_file=os.getenv("SERVICES_FILE", "services.yaml"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            queries=queries
        )
