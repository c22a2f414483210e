"""Aggregate router exports."""
from .chats import router as chats_router
from .directory import router as directory_router
from .posts import router as posts_router
from .realtime import router as realtime_router

__all__ = [
    "chats_router",
    "directory_router",
    "posts_router",
    "realtime_router",
]
