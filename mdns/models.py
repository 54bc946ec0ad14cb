import ipaddress
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from zeroconf.const import _TYPE_A, _TYPE_PTR, _TYPE_TXT, _CLASS_IN

OTHER = "other"  # Registry bucket for devices no active namespace has claimed

class RecordType(IntEnum):
    A = _TYPE_A
    PTR = _TYPE_PTR
    TXT = _TYPE_TXT

    @classmethod
    def parse(cls, value) -> "RecordType":
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Unsupported record type: {value!r}")

@dataclass(frozen=True)
class Question:
    domain: str
    type: int = RecordType.PTR
    class_: int = _CLASS_IN

@dataclass(frozen=True)
class ResourceRecord:
    """A decoded resource record.

    ``data`` holds the target name for PTR, an ``IPv4Address`` for A,
    the list of character strings for TXT and the raw rdata otherwise.
    """
    domain: str
    type: int
    data: Any
    ttl: int = 120
    class_: int = _CLASS_IN

@dataclass(frozen=True)
class Message:
    is_response: bool
    questions: Tuple[Question, ...] = ()
    answers: Tuple[ResourceRecord, ...] = ()  # answer, authority and additional sections in wire order

ServiceData = Union[str, ipaddress.IPv4Address, Mapping[str, str]]

@dataclass(frozen=True)
class Service:
    domain: str
    data: ServiceData
    type: RecordType
    ttl: int = 120

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Service":
        try:
            domain = str(data["domain"]).strip()
            record_type = RecordType.parse(data["type"])
            raw = data["data"]
        except KeyError as e:
            raise ValueError(f"Service definition missing field {e}")
        if not domain:
            raise ValueError("Service domain must not be empty")

        if record_type == RecordType.A:
            try:
                value = ipaddress.IPv4Address(str(raw))
            except ipaddress.AddressValueError as e:
                raise ValueError(f"Invalid IPv4 address for {domain}: {e}")
        elif record_type == RecordType.TXT:
            if not isinstance(raw, dict):
                raise ValueError(f"TXT data for {domain} must be a mapping")
            value = {str(k): str(v) for k, v in raw.items()}
        else:
            value = str(raw)

        return cls(domain=domain, data=value, type=record_type, ttl=int(data.get("ttl", 120)))

    def to_dict(self) -> Dict[str, Any]:
        if isinstance(self.data, ipaddress.IPv4Address):
            data = str(self.data)
        elif isinstance(self.data, Mapping):
            data = dict(self.data)
        else:
            data = self.data
        return {
            "domain": self.domain,
            "type": self.type.name.lower(),
            "data": data,
            "ttl": self.ttl
        }

@dataclass(frozen=True)
class Device:
    address: str
    services: Tuple[str, ...] = ()
    domain: Optional[str] = None
    payload: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # Snapshots handed to readers must not reach the owner's state
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))

    def with_services(self, names: List[str]) -> "Device":
        """Return a copy with ``names`` added in front, skipping known ones."""
        added = []
        for name in names:
            if name not in self.services and name not in added:
                added.append(name)
        if not added:
            return self
        return Device(self.address, tuple(added) + self.services, self.domain, self.payload)

    def provides(self, namespace: str) -> bool:
        return any(service.endswith(namespace) for service in self.services)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "services": list(self.services),
            "domain": self.domain,
            "payload": dict(self.payload)
        }

class EventKind(Enum):
    CLAIM = "claim"
    UPDATE = "update"

@dataclass(frozen=True)
class DeviceEvent:
    namespace: str
    device: Device
    kind: EventKind = EventKind.CLAIM
