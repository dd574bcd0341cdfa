import os
from datetime import datetime, timezone
from sqlalchemy import create_engine, Column, String, Text, DateTime
from sqlalchemy.orm import sessionmaker, declarative_base
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Database Setup
# Local fallback store for snapshots; SQLite by default, any SQLAlchemy URL works
DB_URL = os.getenv("DATABASE_URL", "sqlite:///finance_tracker.db")


def make_engine(url: str = DB_URL):
    return create_engine(url, connect_args={"check_same_thread": False} if url.startswith("sqlite") else {})


engine = make_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# --- Models ---

class LocalDocument(Base):
    """One JSON snapshot per storage key (the local-storage equivalent)."""
    __tablename__ = "local_documents"

    key = Column(String, primary_key=True, index=True)
    payload = Column(Text, nullable=False)  # JSON text
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

# --- Init DB ---
def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)
