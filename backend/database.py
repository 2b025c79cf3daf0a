from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


def _connect_args(database_url: str) -> dict:
    # SQLite connections are handed between FastAPI worker threads.
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(config.DATABASE_URL, connect_args=_connect_args(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_reservation_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_reservation_schema() -> None:
    global _reservation_schema_checked

    if _reservation_schema_checked:
        return

    with _schema_lock:
        if _reservation_schema_checked:
            return

        inspector = inspect(engine)
        table_names = inspector.get_table_names()

        with engine.begin() as connection:
            if 'availability' in table_names:
                connection.execute(
                    text(
                        'CREATE INDEX IF NOT EXISTS idx_availability_provider_range '
                        'ON availability(provider_id, start_time, end_time)'
                    )
                )
            if 'reservations' in table_names:
                connection.execute(
                    text(
                        'CREATE INDEX IF NOT EXISTS idx_reservations_provider_time '
                        'ON reservations(provider_id, reservation_time)'
                    )
                )

        _reservation_schema_checked = True
