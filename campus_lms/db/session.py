from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from campus_lms.core.config import DATABASE_URL

BASE_DIR = Path(__file__).resolve().parent.parent.parent

engine = create_engine(
    DATABASE_URL or f"sqlite:///{BASE_DIR}/campus_lms.db",
    connect_args={"check_same_thread": False} if not DATABASE_URL or DATABASE_URL.startswith("sqlite") else {},
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)
