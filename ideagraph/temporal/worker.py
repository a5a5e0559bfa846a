"""Temporal worker for extraction, linking and locator backfill jobs.

This worker:
- Connects to the configured Temporal server, retrying while it starts up
- Discovers and registers all workflows and activities
- Runs one worker per task queue
- Serves a small health endpoint alongside the workers
"""

import asyncio
import os
from typing import Dict, List

import uvicorn
from fastapi import FastAPI
from temporalio.client import Client
from temporalio.worker import Worker
from temporalio.worker.workflow_sandbox import SandboxedWorkflowRunner, SandboxRestrictions

from ideagraph.core.config import settings
from ideagraph.temporal.core.discovery import discover_all
from ideagraph.temporal.core.activity_registry import ActivityRegistry
from ideagraph.temporal.core.workflow_registry import WorkflowRegistry
from ideagraph.temporal.core.constants import DEFAULT_TASK_QUEUE
from ideagraph.utils.logging import get_logger

discover_all()

logger = get_logger(__name__)

app = FastAPI(title="IdeaGraph Worker Health Check")


@app.get("/health")
async def health():
    return {"status": "ok", "service": "temporal-worker"}


async def run_health_check_server():
    port = int(os.getenv("WORKER_HEALTH_PORT", 8001))
    logger.info(f"Starting health check server on port {port}")
    config = uvicorn.Config(app, host="0.0.0.0", port=port, log_level="info")
    server = uvicorn.Server(config)
    await server.serve()


async def connect_with_retries(max_retries: int = 5, retry_delay: int = 5) -> Client:
    target = f"{settings.temporal_host}:{settings.temporal_port}"
    for attempt in range(max_retries):
        try:
            logger.info(f"Connecting to Temporal server at {target} (Attempt {attempt + 1}/{max_retries})")
            return await Client.connect(target, namespace=settings.temporal_namespace)
        except Exception as e:
            if attempt < max_retries - 1:
                logger.warning(f"Connection attempt {attempt + 1} failed: {e}. Retrying in {retry_delay}s...")
                await asyncio.sleep(retry_delay)
            else:
                logger.error(f"Failed to connect to Temporal server after {max_retries} attempts: {e}")
                raise


def group_by_queue() -> Dict[str, List[type]]:
    queues: Dict[str, List[type]] = {}
    for wf_name, metadata in WorkflowRegistry.get_all_workflows().items():
        queue = metadata.task_queue or DEFAULT_TASK_QUEUE
        queues.setdefault(queue, []).append(metadata.workflow_class)
        logger.debug(f"Workflow '{wf_name}' assigned to queue '{queue}'")
    return queues


async def run_workers():
    client = await connect_with_retries()
    logger.info("Successfully connected to Temporal server")

    all_activities = ActivityRegistry.get_all_activities()
    queues = group_by_queue()
    logger.info(
        f"Registered {sum(len(w) for w in queues.values())} workflows and {len(all_activities)} activities"
    )

    workers = []
    for queue_name, workflows in queues.items():
        worker = Worker(
            client,
            task_queue=queue_name,
            workflows=workflows,
            activities=list(all_activities.values()),
            max_concurrent_activities=10,
            max_concurrent_workflow_tasks=20,
            workflow_runner=SandboxedWorkflowRunner(
                restrictions=SandboxRestrictions.default.with_passthrough_all_modules()
            ),
        )
        workers.append(worker.run())

    logger.info(f"Workers polling queues: {list(queues.keys())}")
    await asyncio.gather(*workers)


async def main():
    await asyncio.gather(run_health_check_server(), run_workers())


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Workers stopped by user")
    except Exception as e:
        logger.error(f"Worker failed: {e}", exc_info=True)
        raise
