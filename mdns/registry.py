"""Per-namespace device registry.

The registry is a plain mapping from namespace to a tuple of devices. Every
merge builds a new mapping; the previous one is left untouched so readers
holding a snapshot never observe a half-applied update.
"""
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from mdns.models import OTHER, Device, DeviceEvent, EventKind

logger = logging.getLogger(__name__)

Registry = Mapping[str, Tuple[Device, ...]]

def empty_registry() -> Dict[str, Tuple[Device, ...]]:
    return {OTHER: ()}

def find_device(registry: Registry, address: str) -> Optional[Device]:
    """Return the first known device for ``address`` across all buckets"""
    for devices in registry.values():
        for device in devices:
            if device.address == address:
                return device
    return None

def merge_device(existing: Device, incoming: Device) -> Device:
    merged = existing.with_services(list(incoming.services))
    return Device(
        address=existing.address,
        services=merged.services,
        domain=incoming.domain if incoming.domain is not None else existing.domain,
        payload=incoming.payload if incoming.payload else existing.payload
    )

def _upsert(devices: Tuple[Device, ...], device: Device) -> Tuple[Tuple[Device, ...], Optional[EventKind]]:
    for i, current in enumerate(devices):
        if current.address == device.address:
            merged = merge_device(current, device)
            if merged == current:
                return devices, None
            return devices[:i] + (merged,) + devices[i + 1:], EventKind.UPDATE
    return (device,) + devices, EventKind.CLAIM

def merge(device: Device, queries: Iterable[str],
          registry: Registry) -> Tuple[Dict[str, Tuple[Device, ...]], List[DeviceEvent]]:
    """Fold ``device`` into every namespace bucket it belongs to.

    Returns the new registry and the events to publish, in query order.
    Buckets of namespaces the device does not provide are carried forward
    unchanged.
    """
    result = dict(registry)
    result.setdefault(OTHER, ())
    events = []
    claimed = False

    for namespace in queries:
        if not device.provides(namespace):
            continue
        claimed = True
        devices, kind = _upsert(result.get(namespace, ()), device)
        result[namespace] = devices
        if kind is not None:
            stored = next(d for d in devices if d.address == device.address)
            events.append(DeviceEvent(namespace, stored, kind))
            logger.debug(f"Device {kind.value} in {namespace}: {stored}")

    if claimed:
        result[OTHER] = tuple(d for d in result[OTHER] if d.address != device.address)
    else:
        result[OTHER], _ = _upsert(result[OTHER], device)

    return result, events
