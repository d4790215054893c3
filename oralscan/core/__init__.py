from .config import settings
from .database import database_ok, get_db, init_db

__all__ = ["settings", "database_ok", "get_db", "init_db"]
