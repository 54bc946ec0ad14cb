import ipaddress
from collections.abc import Mapping
from typing import Iterable, List

from zeroconf import DNSAddress, DNSIncoming, DNSOutgoing, DNSPointer, DNSQuestion, DNSText
from zeroconf.const import _CLASS_IN, _FLAGS_AA, _FLAGS_QR_QUERY, _FLAGS_QR_RESPONSE

from mdns.models import Message, Question, RecordType, ResourceRecord

class DecodeError(Exception):
    """Raised when an inbound packet is not a valid DNS message."""

def _strip_name(name: str) -> str:
    return name[:-1] if name.endswith('.') else name

def _fqdn(name: str) -> str:
    return name if name.endswith('.') else name + '.'

def parse_character_strings(text: bytes) -> List[str]:
    """Split TXT rdata into its length-prefixed character strings"""
    strings = []
    i = 0
    while i < len(text):
        length = text[i]
        strings.append(text[i + 1:i + 1 + length].decode('utf-8', errors='replace'))
        i += 1 + length
    return strings

def build_character_strings(entries: Iterable[str]) -> bytes:
    out = b''
    for entry in entries:
        raw = entry.encode('utf-8')[:255]
        out += bytes([len(raw)]) + raw
    return out

def _convert_record(rr) -> ResourceRecord:
    domain = _strip_name(rr.name)
    if isinstance(rr, DNSPointer):
        data = _strip_name(rr.alias)
    elif isinstance(rr, DNSAddress) and rr.type == RecordType.A:
        data = ipaddress.IPv4Address(rr.address)
    elif isinstance(rr, DNSText):
        data = parse_character_strings(rr.text)
    else:
        # AAAA, SRV, HINFO, NSEC and friends are carried opaquely
        data = rr
    return ResourceRecord(domain=domain, type=rr.type, data=data, ttl=rr.ttl, class_=rr.class_)

def decode(data: bytes) -> Message:
    try:
        incoming = DNSIncoming(data)
        # Newer zeroconf releases expose answers as a method
        a_attr = getattr(incoming, 'answers')
        records = a_attr() if callable(a_attr) else a_attr
        questions = incoming.questions
    except Exception as e:
        raise DecodeError(f"Failed to parse DNS message: {e}")

    if not incoming.valid:
        raise DecodeError("Failed to parse DNS message")

    return Message(
        is_response=bool(incoming.flags & _FLAGS_QR_RESPONSE),
        questions=tuple(Question(_strip_name(q.name), q.type, q.class_) for q in questions),
        answers=tuple(_convert_record(rr) for rr in records)
    )

def _to_zeroconf_record(record: ResourceRecord):
    name = _fqdn(record.domain)
    if record.type == RecordType.A:
        return DNSAddress(name, record.type, record.class_, record.ttl, ipaddress.IPv4Address(record.data).packed)
    if record.type == RecordType.PTR:
        return DNSPointer(name, record.type, record.class_, record.ttl, _fqdn(str(record.data)))
    if record.type == RecordType.TXT:
        if isinstance(record.data, Mapping):
            entries = [f"{k}={v}" for k, v in record.data.items()]
        else:
            entries = list(record.data)
        return DNSText(name, record.type, record.class_, record.ttl, build_character_strings(entries))
    raise ValueError(f"Cannot encode record type {record.type}")

def encode_query(questions: Iterable[Question]) -> List[bytes]:
    out = DNSOutgoing(_FLAGS_QR_QUERY)
    for question in questions:
        out.add_question(DNSQuestion(_fqdn(question.domain), question.type, question.class_))
    return out.packets()

def encode_response(answers: Iterable[ResourceRecord]) -> List[bytes]:
    out = DNSOutgoing(_FLAGS_QR_RESPONSE | _FLAGS_AA)
    for answer in answers:
        out.add_answer_at_time(_to_zeroconf_record(answer), 0)
    return out.packets()

def ptr_question(namespace: str) -> Question:
    return Question(domain=namespace, type=RecordType.PTR, class_=_CLASS_IN)
