from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker

from crm_integrity.core.config import Settings, settings


def create_engine_with_settings(config: Settings) -> Engine:
    """Create the core engine; pool sizing only applies to server databases."""
    url = make_url(config.DATABASE_URL)
    kwargs: dict = {"pool_pre_ping": True}
    if url.get_backend_name().startswith("postgresql"):
        kwargs["connect_args"] = {"options": "-c timezone=utc"}
        kwargs.update(
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            pool_timeout=config.DB_POOL_TIMEOUT,
            pool_recycle=config.DB_POOL_RECYCLE,
        )
    return create_engine(url, **kwargs)


engine = create_engine_with_settings(settings)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
