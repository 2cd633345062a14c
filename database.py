import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    create_engine,
    event,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from config import get_settings

# Database Setup
# Default to local SQLite, but allow override for the hosted Postgres store
DB_URL = get_settings().database_url

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def make_engine(url: str):
    is_sqlite = url.startswith("sqlite")
    engine = create_engine(url, connect_args={"check_same_thread": False} if is_sqlite else {})
    if is_sqlite:
        # SQLite only honours ON DELETE rules with this pragma on
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return engine


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


engine = make_engine(DB_URL)
SessionLocal = make_session_factory(engine)

# --- Models ---

class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)  # bcrypt hash, not plain text
    created_at = Column(DateTime(timezone=True), default=_now)


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    full_name = Column(String, default="")


class Wallet(Base):
    __tablename__ = "wallets"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String, nullable=False)
    balance = Column(Numeric(12, 2, asdecimal=False), default=0.0, nullable=False)
    type = Column(String, default="personal", nullable=False)  # 'personal', 'business' or 'investment'
    color = Column(String, default="#3B82F6")
    currency = Column(String(3), default="BRL")
    created_at = Column(DateTime(timezone=True), default=_now)


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=True)  # NULL = shared default
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # 'income' or 'expense'
    color = Column(String, default="#3B82F6")
    icon = Column(String, default="tag")


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    wallet_id = Column(String(36), ForeignKey("wallets.id", ondelete="CASCADE"), nullable=False)
    category_id = Column(String(36), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    type = Column(String, nullable=False)  # 'income' or 'expense'
    amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)  # always positive
    description = Column(String, default="")
    date = Column(Date, default=date.today, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)

    wallet = relationship("Wallet", lazy="joined")
    category = relationship("Category", lazy="joined")


class ChatLog(Base):
    __tablename__ = "ai_chat_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    message = Column(Text, nullable=False)
    response = Column(Text, nullable=False)
    context = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=_now)

# --- Init DB ---
def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
