"""Source state bus for Backdrop Station.

The manager publishes SourceState changes with notify(); any number of
observers (a web panel, a CLI status line, a tray icon...) subscribe to
the sources they care about. A subscription is identified by
(source id, scope id, channel), so one observer scope can watch many
sources and be torn down in one call.

notify() never waits for subscribers. Each source gets its own bounded
queue drained by a dispatch task, which keeps per-source ordering and
means a callback that triggers another state change cannot re-enter the
notifying call. Callback errors are logged and go no further.
"""

import asyncio
import functools
import inspect
import logging
from typing import Any, Callable, Dict, List, NamedTuple, Set

import config
from core.models import SourceState

logger = logging.getLogger(__name__)


class StateSubscriber(NamedTuple):
    source_id: str
    scope_id: str
    channel: str

    @property
    def key(self) -> str:
        return f"{self.source_id}::{self.scope_id}::{self.channel}"


class _Subscription:
    __slots__ = ("subscriber", "callback", "active")

    def __init__(self, subscriber: StateSubscriber, callback: Callable):
        self.subscriber = subscriber
        self.callback = callback
        self.active = True


class StateBus:
    """Per-source queued delivery of SourceState to subscribers."""

    def __init__(self, maxsize: int = config.BUS_QUEUE_SIZE):
        self._maxsize = maxsize
        self._subscriptions: Dict[StateSubscriber, _Subscription] = {}
        self._queues: Dict[str, asyncio.Queue] = {}
        self._dispatchers: Dict[str, asyncio.Task] = {}
        self._callback_tasks: Set[asyncio.Task] = set()

    # -- subscriptions ------------------------------------------------------

    def subscribe(self, subscriber: StateSubscriber,
                  callback: Callable[[SourceState], Any]) -> Callable[[], None]:
        """Register callback; returns a function that removes this subscription.

        Subscribing again with the same triple replaces the old callback.
        """
        previous = self._subscriptions.get(subscriber)
        if previous is not None:
            previous.active = False
        subscription = _Subscription(subscriber, callback)
        self._subscriptions[subscriber] = subscription
        logger.debug("StateBus subscribe %s", subscriber.key)

        def unsubscribe():
            subscription.active = False
            if self._subscriptions.get(subscriber) is subscription:
                del self._subscriptions[subscriber]

        return unsubscribe

    def unsubscribe(self, subscriber: StateSubscriber) -> bool:
        subscription = self._subscriptions.pop(subscriber, None)
        if subscription is None:
            return False
        subscription.active = False
        return True

    def cleanup_by_scope(self, scope_id: str) -> int:
        """Remove every subscription of one observer scope, across all sources."""
        return self._remove_where(lambda s: s.scope_id == scope_id)

    def cleanup_by_source(self, source_id: str) -> int:
        """Remove every subscription to one source and stop its dispatcher."""
        removed = self._remove_where(lambda s: s.source_id == source_id)
        task = self._dispatchers.pop(source_id, None)
        if task is not None:
            task.cancel()
        self._queues.pop(source_id, None)
        return removed

    def reset(self):
        """Drop all subscriptions and pending deliveries."""
        self._remove_where(lambda s: True)
        for task in self._dispatchers.values():
            task.cancel()
        self._dispatchers.clear()
        self._queues.clear()

    def _remove_where(self, predicate) -> int:
        doomed = [s for s in self._subscriptions if predicate(s)]
        for subscriber in doomed:
            self._subscriptions.pop(subscriber).active = False
        if doomed:
            logger.debug("StateBus removed %d subscription(s)", len(doomed))
        return len(doomed)

    # -- introspection ------------------------------------------------------

    def has_subscription(self, subscriber: StateSubscriber) -> bool:
        return subscriber in self._subscriptions

    def subscribers_for(self, source_id: str) -> List[StateSubscriber]:
        return [s for s in self._subscriptions if s.source_id == source_id]

    def subscribers_for_scope(self, scope_id: str) -> List[StateSubscriber]:
        return [s for s in self._subscriptions if s.scope_id == scope_id]

    def source_ids(self) -> List[str]:
        return sorted({s.source_id for s in self._subscriptions})

    def stats(self) -> Dict[str, int]:
        subs = list(self._subscriptions)
        return {
            "total_subscriptions": len(subs),
            "source_count": len({s.source_id for s in subs}),
            "scope_count": len({s.scope_id for s in subs}),
            "channel_count": len({s.channel for s in subs}),
        }

    # -- delivery -----------------------------------------------------------

    def notify(self, source_id: str, state: SourceState):
        """Queue state for every current subscriber of source_id. Returns at once.

        Must be called from the event loop thread.
        """
        targets = [s for s in self._subscriptions.values()
                   if s.subscriber.source_id == source_id]
        if not targets:
            return
        queue = self._queue_for(source_id)
        if queue.full():
            queue.get_nowait()
            queue.task_done()
            logger.warning("StateBus queue for %s full, dropped oldest state", source_id)
        queue.put_nowait((state, targets))

    def _queue_for(self, source_id: str) -> asyncio.Queue:
        queue = self._queues.get(source_id)
        task = self._dispatchers.get(source_id)
        if queue is None or task is None or task.done():
            queue = asyncio.Queue(maxsize=self._maxsize)
            self._queues[source_id] = queue
            self._dispatchers[source_id] = asyncio.get_running_loop().create_task(
                self._dispatch(source_id, queue), name=f"bus-{source_id}"
            )
        return queue

    async def _dispatch(self, source_id: str, queue: asyncio.Queue):
        while True:
            state, targets = await queue.get()
            try:
                for subscription in targets:
                    if subscription.active:
                        self._deliver(subscription, state)
            finally:
                queue.task_done()

    def _deliver(self, subscription: _Subscription, state: SourceState):
        try:
            result = subscription.callback(state)
        except Exception as exc:
            logger.error("StateBus callback error [%s]: %s", subscription.subscriber.key, exc)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._callback_tasks.add(task)
            task.add_done_callback(functools.partial(self._callback_done, subscription.subscriber.key))

    def _callback_done(self, key: str, task: asyncio.Task):
        self._callback_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("StateBus callback error [%s]: %s", key, exc)

    async def join(self):
        """Wait until everything queued so far has been delivered."""
        for queue in list(self._queues.values()):
            await queue.join()
        if self._callback_tasks:
            await asyncio.gather(*list(self._callback_tasks), return_exceptions=True)

    async def close(self):
        """Cancel dispatchers and in-flight async callbacks."""
        tasks = list(self._dispatchers.values()) + list(self._callback_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._dispatchers.clear()
        self._queues.clear()
        self._callback_tasks.clear()
