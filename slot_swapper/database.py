# database.py
from databases import Database
from sqlalchemy import create_engine, MetaData
from slot_swapper.config import DATABASE_URL

# Process-wide store handle; connected on app startup, disconnected on shutdown
database = Database(DATABASE_URL)
metadata = MetaData()


def create_schema(url: str) -> None:
    """Create the tables if they don't exist, using a short-lived sync engine."""
    engine = create_engine(url)
    try:
        metadata.create_all(bind=engine)
    finally:
        engine.dispose()
