from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from pollgate.core.config import get_settings

settings = get_settings()

_url = settings.database_url_sync
if _url.startswith("sqlite"):
    _connect_args = {"check_same_thread": False, "timeout": settings.db_pool_timeout_seconds}
else:
    _connect_args = {"connect_timeout": settings.db_pool_timeout_seconds}

engine = create_engine(
    _url,
    pool_pre_ping=True,
    pool_timeout=settings.db_pool_timeout_seconds,
    connect_args=_connect_args,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
