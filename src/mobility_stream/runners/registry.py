"""Worker registry for mapping CLI worker names to runner functions.

Each worker entry specifies:
- runner: The async function to execute
- description: One line shown in --help
"""

import asyncio
import inspect
from typing import Any

from config.config import MobilityConfig
from mobility_stream.runners import mobility_runners

WORKER_REGISTRY: dict[str, dict[str, Any]] = {
    mobility_runners.GENERATOR_STAGE: {
        "runner": mobility_runners.run_event_generator,
        "description": "Publish synthetic mobility events",
    },
    mobility_runners.PROCESSOR_STAGE: {
        "runner": mobility_runners.run_analytics_processor,
        "description": "Consume mobility events and run the analytics handler",
    },
}


async def run_worker_from_registry(
    worker_name: str,
    config: MobilityConfig,
    shutdown_event: asyncio.Event,
    health_port: int | None = None,
    instance_id: str | None = None,
):
    """Run a worker by looking it up in the registry.

    Raises:
        ValueError: If worker not found in registry
    """
    if worker_name not in WORKER_REGISTRY:
        raise ValueError(f"Unknown worker: {worker_name}")

    kwargs = {
        "config": config,
        "shutdown_event": shutdown_event,
        "health_port": health_port,
        "instance_id": instance_id,
    }

    # Pass only kwargs that match the runner's signature
    runner = WORKER_REGISTRY[worker_name]["runner"]
    sig = inspect.signature(runner)
    filtered_kwargs = {k: v for k, v in kwargs.items() if k in sig.parameters}
    return await runner(**filtered_kwargs)


__all__ = ["WORKER_REGISTRY", "run_worker_from_registry"]
