"""SQLAlchemy database models and setup."""

import json
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    DateTime,
    Text,
    Index,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from provider_discovery.config import settings

Base = declarative_base()


class DBProvider(Base):
    """Stored provider record."""

    __tablename__ = "providers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    identifier = Column(String(64), unique=True, nullable=False, index=True)
    identity_kind = Column(String(20), default="external")
    name = Column(String(500), nullable=False)
    enumeration_type = Column(String(10))

    # Practice location
    address_1 = Column(String(500), default="")
    address_2 = Column(String(500), default="")
    city = Column(String(200), default="")
    state = Column(String(10), default="")
    postal_code = Column(String(20), default="")
    phone = Column(String(50))
    fax = Column(String(50))
    website = Column(String(1000))

    # Classification and scoring
    category = Column(String(50))
    category_source = Column(String(20))
    score = Column(Float, default=0.0)
    tier = Column(String(10))
    reasons = Column(Text)  # JSON array

    taxonomy_codes = Column(Text)  # JSON array
    source_tags = Column(Text)  # JSON array
    alternate_identifiers = Column(Text)  # JSON array

    first_seen_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("name", "address_1", "postal_code", name="uq_provider_name_address"),
        Index("idx_provider_category", "category"),
        Index("idx_provider_score", "score"),
    )

    def get_taxonomy_codes(self) -> list[str]:
        return json.loads(self.taxonomy_codes) if self.taxonomy_codes else []

    def set_taxonomy_codes(self, codes: list[str]):
        self.taxonomy_codes = json.dumps(codes)

    def get_source_tags(self) -> list[str]:
        return json.loads(self.source_tags) if self.source_tags else []

    def set_source_tags(self, tags: list[str]):
        self.source_tags = json.dumps(tags)

    def get_alternate_identifiers(self) -> list[dict]:
        return json.loads(self.alternate_identifiers) if self.alternate_identifiers else []

    def set_alternate_identifiers(self, identifiers: list[dict]):
        self.alternate_identifiers = json.dumps(identifiers)


class DBDiscoveryRun(Base):
    """Discovery run tracking."""

    __tablename__ = "discovery_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(String(36), unique=True, nullable=False, index=True)
    profile = Column(Text)  # JSON
    status = Column(String(50), default="pending")  # pending, running, completed, failed
    started_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime)
    plans_total = Column(Integer, default=0)
    plans_failed = Column(Integer, default=0)
    pages_fetched = Column(Integer, default=0)
    unique_records = Column(Integer, default=0)
    total_kept = Column(Integer, default=0)
    failures = Column(Text)  # JSON array
    error_message = Column(Text)


# Database initialization
def init_db(db_url: Optional[str] = None) -> sessionmaker:
    """Initialize database and return session maker."""
    url = db_url or settings.database_url
    engine = create_engine(url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)


def get_session() -> Session:
    """Get a new database session."""
    SessionLocal = init_db()
    return SessionLocal()
