"""Runs a stream subscription until it ends or shutdown is requested."""

import asyncio
import logging

from mobility_stream.processor.handlers import EventHandler, RecordHandler
from mobility_stream.processor.stream_consumer import StreamConsumer

logger = logging.getLogger(__name__)

DEFAULT_SHUTDOWN_GRACE_SECONDS = 10.0


class PipelineRunner:
    """
    Ties a StreamConsumer subscription to a process shutdown event.

    ``run_blocking`` returns when the subscription reaches end-of-stream or
    when ``shutdown_event`` is set. On shutdown the subscription task is
    cancelled and given ``shutdown_grace_seconds`` to release its
    subscription; if it overruns, it is logged and abandoned.
    """

    def __init__(
        self,
        consumer: StreamConsumer,
        topic: str,
        handler: EventHandler | RecordHandler,
        shutdown_grace_seconds: float = DEFAULT_SHUTDOWN_GRACE_SECONDS,
    ):
        self.consumer = consumer
        self.topic = topic
        self.handler = handler
        self.shutdown_grace_seconds = shutdown_grace_seconds

    async def run_blocking(self, shutdown_event: asyncio.Event) -> None:
        """
        Block until the subscription ends or shutdown is requested.

        Raises:
            Exception: Whatever ended the subscription, other than cancellation.
        """
        subscription = asyncio.create_task(
            self.consumer.subscribe(self.topic, self.handler),
            name=f"subscription-{self.topic}",
        )
        shutdown_waiter = asyncio.create_task(shutdown_event.wait(), name="shutdown-waiter")

        try:
            await asyncio.wait(
                {subscription, shutdown_waiter},
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            subscription.cancel()
            raise
        finally:
            shutdown_waiter.cancel()

        if subscription.done():
            if subscription.cancelled():
                logger.info("Subscription cancelled", extra={"topic": self.topic})
                return
            # Re-raises the subscription's error, if any
            subscription.result()
            logger.info("Subscription reached end of stream", extra={"topic": self.topic})
            return

        await self._shutdown(subscription)

    async def _shutdown(self, subscription: asyncio.Task) -> None:
        logger.info(
            "Shutdown requested, cancelling subscription",
            extra={"topic": self.topic, "grace_seconds": self.shutdown_grace_seconds},
        )
        subscription.cancel()
        done, _ = await asyncio.wait({subscription}, timeout=self.shutdown_grace_seconds)

        if not done:
            logger.warning(
                "Subscription did not stop within grace period, abandoning it",
                extra={"topic": self.topic, "grace_seconds": self.shutdown_grace_seconds},
            )
            return

        if subscription.cancelled():
            logger.info("Subscription stopped", extra={"topic": self.topic})
            return

        # Finished some other way while being cancelled
        subscription.result()


__all__ = ["PipelineRunner", "DEFAULT_SHUTDOWN_GRACE_SECONDS"]
