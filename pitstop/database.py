from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from pitstop.core import config


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    options: dict = {"connect_args": {"check_same_thread": False}}
    if url in {"sqlite://", "sqlite:///:memory:"}:
        options["poolclass"] = StaticPool
    return options


engine = create_engine(config.DATABASE_URL, echo=config.DATABASE_ECHO, **_engine_options(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()


def init_db() -> None:
    # Model modules register their tables on Base.metadata when imported.
    from pitstop.models import (  # noqa: F401
        booking,
        business_hour,
        category,
        content,
        discount,
        group,
        holiday,
        message,
        notification,
        payment,
        plan,
        report,
        review,
        service,
        setting,
        subscription,
        tag,
        user,
        wallet,
    )

    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
