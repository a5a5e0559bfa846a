from typing import Dict
from uuid import UUID

from temporalio import activity

from ideagraph.core.database import async_session_maker
from ideagraph.services.evidence.backfill_service import LocatorBackfillService
from ideagraph.temporal.core.activity_registry import ActivityRegistry


@ActivityRegistry.register("evidence", "backfill_locators")
@activity.defn
async def backfill_locators(job_id: str, project_id: str) -> Dict:
    """Locate every node excerpt of the project that has no locator."""
    async with async_session_maker() as session:
        result = await LocatorBackfillService(session).run(UUID(job_id), UUID(project_id))
    return result.model_dump()
