"""Fold resource records from a response into a device description."""
import logging
from typing import Dict, Iterable, List

from mdns.models import Device, RecordType, ResourceRecord

logger = logging.getLogger(__name__)

def parse_txt_payload(entries: Iterable[str]) -> Dict[str, str]:
    """Parse ``key=value`` TXT strings into a mapping.

    Keys are lower-cased and values stripped. Entries without ``=`` are
    skipped.
    """
    payload = {}
    for entry in entries:
        if '=' not in entry:
            logger.debug(f"Skipping malformed TXT entry {entry!r}")
            continue
        key, value = entry.split('=', 1)
        payload[key.lower()] = value.strip()
    return payload

def apply_record(record: ResourceRecord, device: Device) -> Device:
    if record.type == RecordType.PTR:
        return device.with_services([str(record.data), record.domain])
    elif record.type == RecordType.A:
        return Device(device.address, device.services, record.domain, device.payload)
    elif record.type == RecordType.TXT:
        if isinstance(record.data, (str, bytes)):
            return device
        return Device(device.address, device.services, device.domain, parse_txt_payload(record.data))
    else:
        return device

def resolve_device(records: List[ResourceRecord], device: Device) -> Device:
    for record in records:
        device = apply_record(record, device)
    return device
