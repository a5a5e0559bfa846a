from datetime import timedelta
from typing import Dict

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError

with workflow.unsafe.imports_passed_through():
    from ideagraph.temporal.core.constants import (
        BOOKKEEPING_ACTIVITY_TIMEOUT_SECONDS,
        DOCUMENT_ACTIVITY_TIMEOUT_SECONDS,
    )
    from ideagraph.temporal.core.workflow_registry import WorkflowRegistry, WorkflowType


@WorkflowRegistry.register(category=WorkflowType.EVIDENCE)
@workflow.defn
class BackfillLocatorsWorkflow:
    """Runs a locator backfill job for one project."""

    @workflow.run
    async def run(self, payload: Dict) -> dict:
        job_id = payload["job_id"]
        try:
            return await workflow.execute_activity(
                "backfill_locators",
                args=[job_id, payload["project_id"]],
                start_to_close_timeout=timedelta(seconds=DOCUMENT_ACTIVITY_TIMEOUT_SECONDS),
                retry_policy=RetryPolicy(maximum_attempts=1),
            )
        except ActivityError as e:
            await workflow.execute_activity(
                "fail_job",
                args=[job_id, str(e.cause or e)],
                start_to_close_timeout=timedelta(seconds=BOOKKEEPING_ACTIVITY_TIMEOUT_SECONDS),
                retry_policy=RetryPolicy(maximum_attempts=3),
            )
            return {"status": "failed", "locators_updated": 0}
