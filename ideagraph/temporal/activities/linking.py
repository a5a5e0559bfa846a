"""Linking activities: setup plus one activity per classification batch."""

from typing import Dict
from uuid import UUID

from temporalio import activity

from ideagraph.core.database import async_session_maker
from ideagraph.schemas.linking import LinkingBatchState
from ideagraph.services.linking.linking_orchestrator import LinkingOrchestrator
from ideagraph.temporal.core.activity_registry import ActivityRegistry


@ActivityRegistry.register("linking", "setup_linking")
@activity.defn
async def setup_linking(job_id: str, project_id: str) -> Dict:
    """Embed, deduplicate and persist candidate pairs; returns the first checkpoint."""
    activity.logger.info("Starting linking setup", extra={"job_id": job_id, "project_id": project_id})
    async with async_session_maker() as session:
        outcome = await LinkingOrchestrator(session).run(UUID(job_id), UUID(project_id))
    return outcome.model_dump()


@ActivityRegistry.register("linking", "process_linking_batch")
@activity.defn
async def process_linking_batch(state: Dict) -> Dict:
    checkpoint = LinkingBatchState.model_validate(state)
    activity.heartbeat(f"batch {checkpoint.batch_index + 1} of {checkpoint.total_batches}")
    async with async_session_maker() as session:
        outcome = await LinkingOrchestrator(session).process_batch(checkpoint)
    return outcome.model_dump()
