import asyncio

from mdns.events import EventBus


def test_subscribers_receive_events(wait):
    async def run():
        bus = EventBus()
        seen = []
        bus.subscribe(seen.append)
        bus.notify("a")
        bus.notify("b")
        await wait(lambda: seen == ["a", "b"])
        await bus.close()
    asyncio.run(run())


def test_async_handlers_are_awaited(wait):
    async def run():
        bus = EventBus()
        seen = []

        async def handler(event):
            await asyncio.sleep(0)
            seen.append(event)

        bus.subscribe(handler)
        bus.notify(1)
        await wait(lambda: seen == [1])
        await bus.close()
    asyncio.run(run())


def test_crashing_handler_is_resubscribed(wait):
    async def run():
        bus = EventBus()
        seen = []
        healthy = []

        def flaky(event):
            if event == "boom":
                raise RuntimeError("handler failure")
            seen.append(event)

        bus.subscribe(flaky)
        bus.subscribe(healthy.append)
        bus.notify("boom")
        bus.notify("after")
        await wait(lambda: seen == ["after"] and healthy == ["boom", "after"])
        assert bus.handlers() == [flaky, healthy.append]

        bus.notify("again")
        await wait(lambda: seen == ["after", "again"])
        await bus.close()
    asyncio.run(run())


def test_unsubscribe_stops_delivery(wait):
    async def run():
        bus = EventBus()
        seen = []
        bus.subscribe(seen.append)
        bus.notify("first")
        await wait(lambda: seen == ["first"])
        bus.unsubscribe(seen.append)
        bus.notify("second")
        await asyncio.sleep(0.05)
        assert seen == ["first"]
        assert bus.handlers() == []
    asyncio.run(run())


def test_full_queue_drops_new_events(wait):
    async def run():
        bus = EventBus(queue_size=1)
        seen = []
        bus.subscribe(seen.append)
        bus.notify("kept")
        bus.notify("dropped")
        await wait(lambda: seen == ["kept"])
        await asyncio.sleep(0.05)
        assert seen == ["kept"]
        await bus.close()
    asyncio.run(run())
