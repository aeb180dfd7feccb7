"""Relational storage: engine, sessions and ORM tables."""

from .session import Base, get_engine, get_session_factory, init_db, dispose_db
from .tables import Block, Comment, Follow, Like, Sound, User, Video, VideoStatus, VideoView

__all__ = [
    "Base",
    "get_engine",
    "get_session_factory",
    "init_db",
    "dispose_db",
    "Block",
    "Comment",
    "Follow",
    "Like",
    "Sound",
    "User",
    "Video",
    "VideoStatus",
    "VideoView",
]
