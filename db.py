# Database plumbing shared by every route module.
# - engine: the connection to the database named by DATABASE_URL
# - SessionLocal: factory for per-request sessions
# - Base: declarative base every model inherits from
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from config import settings


# SQLite needs check_same_thread off because Flask may serve a request on a
# different thread than the one that opened the connection.
_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    echo=False,
    future=True,
    pool_pre_ping=True,
    connect_args=_connect_args,
)

# autoflush off: nothing is sent until we commit
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

Base = declarative_base()


def get_db():
    """
    Yields one session and always closes it afterwards.

    Example use:
        with db_session() as db:
            db.get(FeedbackSession, session_id)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Grab one session from get_db(); used as `with db_session() as db:` in routes.
def db_session():
    return next(get_db())
