from inventory_insights.database.base import Base
from inventory_insights.database.engine import build_engine, engine
from inventory_insights.database.session import SessionLocal, get_db, get_session_factory

__all__ = ["Base", "SessionLocal", "build_engine", "engine", "get_db", "get_session_factory"]
