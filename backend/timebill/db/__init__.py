"""Database package"""

from timebill.db.session import AsyncSessionLocal, engine, get_db, build_engine
from timebill.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "get_db", "build_engine"]
