"""
API v1 Router

Funnel and contact endpoints are scoped to /projects/{project_id}.
"""

from fastapi import APIRouter
from . import contacts, funnel, projects

router = APIRouter()

router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(funnel.router, prefix="/projects/{project_id}/funnel", tags=["Funnel"])
router.include_router(
    contacts.router, prefix="/projects/{project_id}/contacts", tags=["Contacts"]
)


@router.get("/", tags=["API"])
async def api_root():
    """API root — returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/projects",
            "/projects/stats",
            "/projects/{project_id}/funnel",
            "/projects/{project_id}/contacts",
        ],
    }
