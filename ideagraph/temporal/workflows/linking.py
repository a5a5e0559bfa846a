"""Linking workflow: setup, then one activity per classification batch."""

from datetime import timedelta
from typing import Dict

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError

with workflow.unsafe.imports_passed_through():
    from ideagraph.temporal.core.constants import (
        BATCH_ACTIVITY_TIMEOUT_SECONDS,
        BOOKKEEPING_ACTIVITY_TIMEOUT_SECONDS,
        DOCUMENT_ACTIVITY_TIMEOUT_SECONDS,
    )
    from ideagraph.temporal.core.workflow_registry import WorkflowRegistry, WorkflowType

STEP_RETRY = RetryPolicy(maximum_attempts=1)
BOOKKEEPING_RETRY = RetryPolicy(maximum_attempts=3, initial_interval=timedelta(seconds=2))


@WorkflowRegistry.register(category=WorkflowType.LINKING)
@workflow.defn
class LinkIdeasWorkflow:
    """Rebuilds a project's edges.

    Only the checkpoint dict returned by each activity is carried between
    batches; everything else is read back from the database.
    """

    def __init__(self):
        self._status = "initialized"
        self._batch_index = 0
        self._total_batches = 0
        self._links_created = 0

    @workflow.query
    def get_status(self) -> dict:
        return {
            "status": self._status,
            "batch_index": self._batch_index,
            "total_batches": self._total_batches,
            "links_created": self._links_created,
        }

    @workflow.run
    async def run(self, payload: Dict) -> dict:
        job_id = payload["job_id"]
        project_id = payload["project_id"]
        self._status = "running"

        try:
            outcome = await workflow.execute_activity(
                "setup_linking",
                args=[job_id, project_id],
                # Setup embeds every node of the project in one call
                start_to_close_timeout=timedelta(seconds=DOCUMENT_ACTIVITY_TIMEOUT_SECONDS),
                retry_policy=STEP_RETRY,
            )

            while outcome.get("next_state"):
                state = outcome["next_state"]
                self._batch_index = state["batch_index"]
                self._total_batches = state["total_batches"]
                outcome = await workflow.execute_activity(
                    "process_linking_batch",
                    args=[state],
                    start_to_close_timeout=timedelta(seconds=BATCH_ACTIVITY_TIMEOUT_SECONDS),
                    retry_policy=STEP_RETRY,
                )
                self._links_created = outcome.get("links_created", self._links_created)
        except ActivityError as e:
            workflow.logger.error(f"Linking workflow failed: {e}", extra={"job_id": job_id})
            await workflow.execute_activity(
                "fail_job",
                args=[job_id, str(e.cause or e)],
                start_to_close_timeout=timedelta(seconds=BOOKKEEPING_ACTIVITY_TIMEOUT_SECONDS),
                retry_policy=BOOKKEEPING_RETRY,
            )
            self._status = "failed"
            return self.get_status()

        self._status = outcome["status"]
        return self.get_status()
