"""Extraction workflow: start, one activity per document, finish."""

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

# A document step writes nodes as it goes, so it is never retried blindly
DOCUMENT_RETRY = RetryPolicy(maximum_attempts=1)
BOOKKEEPING_RETRY = RetryPolicy(maximum_attempts=3, initial_interval=timedelta(seconds=2))


@WorkflowRegistry.register(category=WorkflowType.EXTRACTION)
@workflow.defn
class ExtractIdeasWorkflow:
    """Extracts ideas from a list of documents under one extraction job."""

    def __init__(self):
        self._status = "initialized"
        self._current = 0
        self._total = 0
        self._ideas_extracted = 0

    @workflow.query
    def get_status(self) -> dict:
        return {
            "status": self._status,
            "current": self._current,
            "total": self._total,
            "ideas_extracted": self._ideas_extracted,
        }

    @workflow.run
    async def run(self, payload: Dict) -> dict:
        job_id = payload["job_id"]
        project_id = payload["project_id"]
        document_ids = payload.get("document_ids") or []
        self._total = len(document_ids)
        self._status = "running"

        try:
            await workflow.execute_activity(
                "start_extraction",
                args=[job_id, self._total],
                start_to_close_timeout=timedelta(seconds=BOOKKEEPING_ACTIVITY_TIMEOUT_SECONDS),
                retry_policy=BOOKKEEPING_RETRY,
            )

            for index, document_id in enumerate(document_ids):
                step = await workflow.execute_activity(
                    "extract_document",
                    args=[job_id, project_id, document_id, index, self._total, self._ideas_extracted],
                    start_to_close_timeout=timedelta(seconds=DOCUMENT_ACTIVITY_TIMEOUT_SECONDS),
                    retry_policy=DOCUMENT_RETRY,
                )
                if step["status"] == "failed":
                    self._status = "failed"
                    return self.get_status()
                self._ideas_extracted = step["ideas_extracted"]
                self._current = index + 1

            await workflow.execute_activity(
                "finish_extraction",
                args=[job_id, self._total, self._ideas_extracted],
                start_to_close_timeout=timedelta(seconds=BOOKKEEPING_ACTIVITY_TIMEOUT_SECONDS),
                retry_policy=BOOKKEEPING_RETRY,
            )
        except ActivityError as e:
            workflow.logger.error(f"Extraction workflow failed: {e}", extra={"job_id": job_id})
            await workflow.execute_activity(
                "fail_job",
                args=[job_id, str(e.cause or e)],
                start_to_close_timeout=timedelta(seconds=BOOKKEEPING_ACTIVITY_TIMEOUT_SECONDS),
                retry_policy=BOOKKEEPING_RETRY,
            )
            self._status = "failed"
            return self.get_status()

        self._status = "completed"
        return self.get_status()
