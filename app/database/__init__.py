from app.database.base import Base
from app.database.engine import build_engine, engine
from app.database.session import SessionLocal, get_db, unit_of_work

__all__ = ["Base", "build_engine", "engine", "SessionLocal", "get_db", "unit_of_work"]
