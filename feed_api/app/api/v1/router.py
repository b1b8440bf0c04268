"""
Top-level router for version 1 of the API.

This router aggregates the domain routers under a unified prefix.  When
new endpoints are added, update this file to include their routers.
"""

from fastapi import APIRouter

from .endpoints import auth, health, posts, realtime

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(posts.router, prefix="/posts", tags=["posts"])
router.include_router(health.router, tags=["health"])
# The notification socket is also mounted at the application root as
# ``/ws`` by ``main.create_app``; both paths serve the same hub.
router.include_router(realtime.router, tags=["realtime"])
