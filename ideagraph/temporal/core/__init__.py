from .activity_registry import ActivityRegistry
from .workflow_registry import WorkflowRegistry, WorkflowType

__all__ = [
    "ActivityRegistry",
    "WorkflowRegistry",
    "WorkflowType",
]
