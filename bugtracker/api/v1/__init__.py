"""Version 1 HTTP routers"""
from fastapi import APIRouter

from bugtracker.api.v1 import auth, bugs, integrations, projects

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(bugs.router, prefix="/bugs", tags=["bugs"])
api_router.include_router(integrations.router, prefix="/integrations", tags=["integrations"])
