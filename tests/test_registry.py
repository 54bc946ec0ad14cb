from mdns.models import OTHER, Device, EventKind
from mdns.registry import empty_registry, find_device, merge, merge_device


def _device(address="10.0.0.5", services=("_impl._tcp.local", "_svc._tcp.local"), **kwargs):
    return Device(address, tuple(services), **kwargs)


def test_claim_inserts_and_reports_event():
    registry, events = merge(_device(), ["_tcp.local"], empty_registry())
    assert registry["_tcp.local"] == (_device(),)
    assert [(e.namespace, e.kind) for e in events] == [("_tcp.local", EventKind.CLAIM)]


def test_no_suffix_match_never_lands_in_bucket():
    registry, events = merge(_device(services=("_http._udp.local",)), ["_tcp.local"], empty_registry())
    assert "_tcp.local" not in registry
    assert events == []
    assert registry[OTHER] == (_device(services=("_http._udp.local",)),)


def test_claim_moves_device_out_of_other():
    registry, _ = merge(_device(services=(), domain="foo.local"), ["_tcp.local"], empty_registry())
    assert find_device(registry, "10.0.0.5") is not None

    registry, events = merge(_device(domain="foo.local"), ["_tcp.local"], registry)
    assert registry[OTHER] == ()
    assert registry["_tcp.local"][0].domain == "foo.local"
    assert events[0].kind == EventKind.CLAIM


def test_new_devices_go_to_head_of_bucket():
    registry, _ = merge(_device("10.0.0.5"), ["_tcp.local"], empty_registry())
    registry, _ = merge(_device("10.0.0.6"), ["_tcp.local"], registry)
    assert [d.address for d in registry["_tcp.local"]] == ["10.0.0.6", "10.0.0.5"]


def test_dedup_by_address():
    registry = empty_registry()
    for services in (["_a._tcp.local"], ["_b._tcp.local"], ["_a._tcp.local"]):
        registry, _ = merge(_device(services=services), ["_tcp.local"], registry)
    bucket = registry["_tcp.local"]
    assert len(bucket) == 1
    assert set(bucket[0].services) == {"_a._tcp.local", "_b._tcp.local"}


def test_refresh_merges_fields_and_reports_update():
    registry, _ = merge(_device(domain="foo.local", payload={"v": "1"}), ["_tcp.local"], empty_registry())
    registry, events = merge(_device(payload={"v": "2"}), ["_tcp.local"], registry)
    stored = registry["_tcp.local"][0]
    assert stored.domain == "foo.local"
    assert stored.payload == {"v": "2"}
    assert [e.kind for e in events] == [EventKind.UPDATE]


def test_merge_is_idempotent():
    first, _ = merge(_device(domain="foo.local"), ["_tcp.local", "_svc._tcp.local"], empty_registry())
    second, events = merge(_device(domain="foo.local"), ["_tcp.local", "_svc._tcp.local"], first)
    assert second == first
    assert events == []


def test_unrelated_buckets_pass_through():
    registry, _ = merge(_device("10.0.0.7", services=("_http._udp.local",)), ["_udp.local"], empty_registry())
    updated, _ = merge(_device(), ["_udp.local", "_tcp.local"], registry)
    assert updated["_udp.local"] == registry["_udp.local"]
    assert updated["_tcp.local"] == (_device(),)


def test_previous_registry_is_not_mutated():
    registry = empty_registry()
    snapshot = dict(registry)
    merge(_device(), ["_tcp.local"], registry)
    assert registry == snapshot


def test_merge_device_keeps_address_and_unions_services():
    existing = Device("10.0.0.5", ("_a._tcp.local",), "foo.local", {"k": "v"})
    incoming = Device("10.0.0.5", ("_b._tcp.local", "_a._tcp.local"))
    merged = merge_device(existing, incoming)
    assert merged.address == "10.0.0.5"
    assert merged.services == ("_b._tcp.local", "_a._tcp.local")
    assert merged.domain == "foo.local"
    assert merged.payload == {"k": "v"}
