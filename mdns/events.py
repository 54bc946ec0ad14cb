import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]

class _Subscription:
    def __init__(self, handler: Handler, maxsize: int):
        self.handler = handler
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.task: Optional[asyncio.Task] = None
        self.restarts = 0
        self.active = True

class EventBus:
    """Publish/subscribe bus with one consumer task per subscriber.

    A handler that raises takes its consumer task down with it. The bus
    notices the exit, logs it and starts a fresh consumer on the same queue,
    so the subscriber keeps receiving later events. Publishing never waits
    on subscribers.
    """

    def __init__(self, queue_size: int = 256):
        self.queue_size = queue_size
        self._subscriptions: Dict[Handler, _Subscription] = {}

    def subscribe(self, handler: Handler):
        if handler in self._subscriptions:
            return
        subscription = _Subscription(handler, self.queue_size)
        self._subscriptions[handler] = subscription
        self._start_consumer(subscription)
        logger.debug(f"Subscribed handler {handler!r}")

    def unsubscribe(self, handler: Handler):
        subscription = self._subscriptions.pop(handler, None)
        if subscription is None:
            return
        subscription.active = False
        if subscription.task:
            subscription.task.cancel()
        logger.debug(f"Unsubscribed handler {handler!r}")

    def notify(self, event: Any):
        for subscription in list(self._subscriptions.values()):
            try:
                subscription.queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"Event queue full for {subscription.handler!r}, dropping {event!r}")

    def handlers(self) -> List[Handler]:
        return list(self._subscriptions)

    async def close(self):
        subscriptions = list(self._subscriptions.values())
        for subscription in subscriptions:
            self.unsubscribe(subscription.handler)
        tasks = [s.task for s in subscriptions if s.task]
        await asyncio.gather(*tasks, return_exceptions=True)

    def _start_consumer(self, subscription: _Subscription):
        subscription.task = asyncio.get_running_loop().create_task(self._consume(subscription))
        subscription.task.add_done_callback(lambda task: self._on_consumer_exit(subscription, task))

    def _on_consumer_exit(self, subscription: _Subscription, task: asyncio.Task):
        if task.cancelled() or not subscription.active:
            return
        error = task.exception()
        subscription.restarts += 1
        logger.error(f"Event handler {subscription.handler!r} crashed, re-subscribing "
                     f"(restart {subscription.restarts})", exc_info=error)
        self._start_consumer(subscription)

    async def _consume(self, subscription: _Subscription):
        while True:
            event = await subscription.queue.get()
            result = subscription.handler(event)
            if inspect.isawaitable(result):
                await result
