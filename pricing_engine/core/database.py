from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from pricing_engine.core.config import settings

engine = create_engine(
    settings.APP_DATABASE_DSN,
    connect_args=({"check_same_thread": False} if "sqlite" in settings.APP_DATABASE_DSN else {}),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Initialize database tables and the default organization."""
    import pricing_engine.models  # noqa: F401
    from pricing_engine.models.shared import DEFAULT_ORGANIZATION_ID
    from pricing_engine.repositories.organization_repository import OrganizationRepository

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        OrganizationRepository(db).ensure(DEFAULT_ORGANIZATION_ID)
    finally:
        db.close()
