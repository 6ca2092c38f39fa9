from .database import get_db_context, init_db, build_engine, engine, SessionLocal, Base
from .time_utils import now_utc, to_instant, format_instant, format_date, format_datetime

__all__ = [
    "get_db_context",
    "init_db",
    "build_engine",
    "engine",
    "SessionLocal",
    "Base",
    "now_utc",
    "to_instant",
    "format_instant",
    "format_date",
    "format_datetime",
]
