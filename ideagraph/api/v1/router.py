from fastapi import APIRouter

from ideagraph.api.v1.endpoints import jobs, projects

api_router = APIRouter()

api_router.include_router(projects.router, prefix="/projects", tags=["Projects"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["Jobs"])

__all__ = ["api_router"]
