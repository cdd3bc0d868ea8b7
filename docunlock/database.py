from sqlmodel import SQLModel, create_engine, Session
from docunlock.config import settings

connect_args = {}
if settings.database_url.startswith("sqlite"):
    # sqlite connections are shared across the threadpool
    connect_args = {"check_same_thread": False}

engine = create_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,      # checks dead connections
    pool_recycle=1800,       # refresh every 30 min
    connect_args=connect_args,
)


def create_db_and_tables():
    from docunlock.models import textbook, section, user_access, user_payment  # noqa: F401
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
