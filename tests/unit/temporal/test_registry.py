from ideagraph.temporal.core.activity_registry import ActivityRegistry
from ideagraph.temporal.core.constants import DEFAULT_TASK_QUEUE
from ideagraph.temporal.core.discovery import discover_all
from ideagraph.temporal.core.workflow_registry import WorkflowRegistry, WorkflowType


def test_discovery_registers_every_activity():
    discover_all()

    assert set(ActivityRegistry.get_all_activities()) >= {
        "start_extraction",
        "extract_document",
        "finish_extraction",
        "setup_linking",
        "process_linking_batch",
        "backfill_locators",
        "fail_job",
    }
    assert [fn.__name__ for fn in ActivityRegistry.get_group("linking")] == [
        "setup_linking",
        "process_linking_batch",
    ]


def test_discovery_registers_workflows_on_default_queue():
    discover_all()

    workflows = WorkflowRegistry.get_all_workflows()
    assert set(workflows) >= {"ExtractIdeasWorkflow", "LinkIdeasWorkflow", "BackfillLocatorsWorkflow"}
    assert all(meta.task_queue == DEFAULT_TASK_QUEUE for meta in workflows.values())
    assert [w.name for w in WorkflowRegistry.get_by_category(WorkflowType.EVIDENCE)] == ["BackfillLocatorsWorkflow"]
