"""Shared constants for Temporal workflows."""

from ideagraph.core.config import settings

DEFAULT_TASK_QUEUE = settings.temporal_task_queue

# Timeouts
DEFAULT_WORKFLOW_TIMEOUT_SECONDS = 6 * 3600
DOCUMENT_ACTIVITY_TIMEOUT_SECONDS = 15 * 60  # one model call over a whole PDF
BATCH_ACTIVITY_TIMEOUT_SECONDS = 10 * 60
BOOKKEEPING_ACTIVITY_TIMEOUT_SECONDS = 60
