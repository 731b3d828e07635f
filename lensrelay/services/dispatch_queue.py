"""Outbound dispatch queue for relaying captures to the messaging provider.

Guarantees:
- Tasks for the same destination run strictly in submission order, each one
  starting only after its predecessor finished and a per-chat pause elapsed.
- At most ``max_concurrent`` tasks run at once across all destinations;
  waiting tasks get a slot in arrival order.
- Provider failures flagged as transient, or carrying a retry-after hint,
  are retried with backoff a bounded number of times.
- A failed task never stalls its destination: the next queued task runs.

Each destination gets one worker coroutine fed by its own ``asyncio.Queue``.
Workers stay alive after their queue drains so a destination never ends up
with two workers competing for order.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict

from lensrelay.core.errors import DispatchClosedAppError, ProviderAppError

logger = logging.getLogger(__name__)

DispatchTask = Callable[[], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class _Job:
    task: DispatchTask
    future: asyncio.Future


@dataclass
class _Channel:
    """Per-destination FIFO and the worker draining it."""

    queue: asyncio.Queue = field(default_factory=asyncio.Queue)
    worker: asyncio.Task | None = None


class DispatchQueue:
    """Per-destination sequential runner with a global concurrency cap.

    Attributes:
        max_concurrent: Global cap on tasks executing at the same time.
        per_chat_delay_seconds: Pause after each task before the next one for
            the same destination may start.
        max_retries: Retries allowed per task on retryable provider errors.
    """

    def __init__(
        self,
        *,
        max_concurrent: int = 8,
        per_chat_delay_seconds: float = 0.4,
        max_retries: int = 3,
        base_delay_seconds: float = 1.0,
        retry_margin_seconds: float = 0.5,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")

        self.max_concurrent = max_concurrent
        self.per_chat_delay_seconds = per_chat_delay_seconds
        self.max_retries = max_retries
        self._base_delay = base_delay_seconds
        self._retry_margin = retry_margin_seconds
        self._sleep = sleep

        self._slots = asyncio.Semaphore(max_concurrent)
        self._channels: Dict[int, _Channel] = {}
        self._in_flight = 0
        self._peak_in_flight = 0
        self._closed = False

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def closed(self) -> bool:
        return self._closed

    def stats(self) -> dict[str, int]:
        """Return lightweight queue metrics."""
        return {
            "destinations": len(self._channels),
            "in_flight": self._in_flight,
            "peak_in_flight": self._peak_in_flight,
            "pending": sum(ch.queue.qsize() for ch in self._channels.values()),
            "max_concurrent": self.max_concurrent,
        }

    def enqueue(self, destination_id: int, task: DispatchTask) -> asyncio.Future:
        """Append ``task`` to the destination's chain.

        Must be called from a running event loop.

        Args:
            destination_id: Chat the task sends to; ordering is scoped to it.
            task: Zero-argument coroutine function performing one send.

        Returns:
            Future resolved with the task's result, or carrying its final error.

        Raises:
            DispatchClosedAppError: If the queue has been closed.
        """
        if self._closed:
            raise DispatchClosedAppError(
                code="dispatch_closed",
                message="Dispatch queue is shut down",
                details={"destination_id": destination_id},
            )

        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        channel = self._channels.get(destination_id)
        if channel is None:
            channel = _Channel()
            channel.worker = loop.create_task(
                self._drain(destination_id, channel),
                name=f"dispatch-{destination_id}",
            )
            self._channels[destination_id] = channel

        channel.queue.put_nowait(_Job(task=task, future=future))
        logger.debug(
            "dispatch.enqueued",
            extra={"destination_id": destination_id, "pending": channel.queue.qsize()},
        )
        return future

    async def join(self) -> None:
        """Wait until every task enqueued so far has finished."""
        await asyncio.gather(*(ch.queue.join() for ch in list(self._channels.values())))

    async def aclose(self, *, drain: bool = True) -> None:
        """Stop accepting work and shut the workers down.

        Args:
            drain: Let queued tasks finish first; otherwise they fail with
                DispatchClosedAppError.
        """
        if self._closed:
            return
        self._closed = True

        if drain:
            await self.join()

        workers = [ch.worker for ch in self._channels.values() if ch.worker is not None]
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)

        for destination_id, channel in self._channels.items():
            while not channel.queue.empty():
                job = channel.queue.get_nowait()
                self._fail_closed(job, destination_id)
                channel.queue.task_done()

        logger.info("dispatch.closed", extra={"destinations": len(self._channels)})

    def _fail_closed(self, job: _Job, destination_id: int) -> None:
        if not job.future.done():
            job.future.set_exception(
                DispatchClosedAppError(
                    code="dispatch_closed",
                    message="Dispatch queue shut down before the task completed",
                    details={"destination_id": destination_id},
                )
            )

    async def _drain(self, destination_id: int, channel: _Channel) -> None:
        while True:
            job = await channel.queue.get()
            try:
                await self._execute(destination_id, job)
                if self.per_chat_delay_seconds > 0:
                    await self._sleep(self.per_chat_delay_seconds)
            except asyncio.CancelledError:
                # Covers a job cancelled while still waiting for a slot.
                self._fail_closed(job, destination_id)
                raise
            finally:
                channel.queue.task_done()

    async def _execute(self, destination_id: int, job: _Job) -> None:
        async with self._slots:
            self._in_flight += 1
            self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
            try:
                result = await self._run_with_retry(job.task, destination_id)
            except Exception as exc:
                logger.error(
                    "dispatch.task_failed",
                    extra={
                        "destination_id": destination_id,
                        "error_type": type(exc).__name__,
                        "error_msg": str(exc),
                    },
                )
                # The caller may have stopped waiting; the task still ran.
                if not job.future.done():
                    job.future.set_exception(exc)
            else:
                if not job.future.done():
                    job.future.set_result(result)
            finally:
                self._in_flight -= 1

    async def _run_with_retry(self, task: DispatchTask, destination_id: int) -> Any:
        """Run ``task``, retrying retryable provider errors with backoff.

        The wait is the provider's retry-after hint plus a margin when given,
        otherwise an exponentially doubling base delay.
        """
        attempt = 0
        delay = self._base_delay
        while True:
            try:
                return await task()
            except ProviderAppError as exc:
                if not exc.retryable or attempt >= self.max_retries:
                    raise
                attempt += 1
                if exc.retry_after_seconds is not None:
                    wait = exc.retry_after_seconds + self._retry_margin
                else:
                    wait = delay
                delay *= 2
                logger.warning(
                    "dispatch.retry_scheduled",
                    extra={
                        "destination_id": destination_id,
                        "attempt": attempt,
                        "wait_s": wait,
                        "error_code": exc.code,
                    },
                )
                await self._sleep(wait)
