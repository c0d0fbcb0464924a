"""
Database Session
Session factory for Celery tasks and scripts that run outside a request.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ..api.config import get_settings

settings = get_settings()

# Workers need far fewer connections than the API
engine = create_engine(
    settings.database_url,
    pool_size=5,
    max_overflow=5,
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
