"""Import every activity and workflow module so their decorators register them."""

import importlib

from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)

COMPONENT_MODULES = [
    "ideagraph.temporal.activities.extraction",
    "ideagraph.temporal.activities.linking",
    "ideagraph.temporal.activities.evidence",
    "ideagraph.temporal.activities.jobs",
    "ideagraph.temporal.workflows.extraction",
    "ideagraph.temporal.workflows.linking",
    "ideagraph.temporal.workflows.evidence",
]


def discover_all() -> None:
    for module in COMPONENT_MODULES:
        importlib.import_module(module)
    LOGGER.debug(f"Discovered {len(COMPONENT_MODULES)} temporal modules")
