"""FastAPI routers for the alumni domain."""

from __future__ import annotations

from fastapi import APIRouter

from app.alumni.api import events, forums, posts, schools, topics

router = APIRouter(prefix="/api/v1")

router.include_router(schools.router)
router.include_router(events.router)
router.include_router(forums.router)
router.include_router(topics.router)
router.include_router(posts.router)

__all__ = ["router"]
