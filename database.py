import enum
import logging
from contextlib import contextmanager

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

from config import DATABASE_URL
from date_ranges import utcnow

logger = logging.getLogger(__name__)

# --- Database Setup ---

engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False} if "sqlite" in DATABASE_URL else {})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def enable_sqlite_foreign_keys(target: Engine) -> None:
    """SQLite ignores ON DELETE CASCADE unless the pragma is set per connection."""
    if target.dialect.name != "sqlite":
        return

    @event.listens_for(target, "connect")
    def _set_pragma(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


enable_sqlite_foreign_keys(engine)

# --- Enums ---

class TransactionType(str, enum.Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class TransactionStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class RecurringInterval(str, enum.Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class PaymentMethod(str, enum.Enum):
    CARD = "CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    MOBILE_PAYMENT = "MOBILE_PAYMENT"
    AUTO_DEBIT = "AUTO_DEBIT"
    CASH = "CASH"
    OTHER = "OTHER"


class ReportStatus(str, enum.Enum):
    SENT = "SENT"
    PENDING = "PENDING"
    FAILED = "FAILED"
    NO_ACTIVITY = "NO_ACTIVITY"


class ReportFrequency(str, enum.Enum):
    MONTHLY = "MONTHLY"

# --- Models ---

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False) # bcrypt hash, never the plain text
    profile_picture = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    transactions = relationship("Transaction", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    reports = relationship("Report", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    report_settings = relationship(
        "ReportSettings", back_populates="user", uselist=False, cascade="all, delete-orphan", passive_deletes=True
    )


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Enum(TransactionType, native_enum=False), nullable=False)
    title = Column(String, nullable=False)
    amount = Column(Integer, nullable=False) # cents, always a non-negative magnitude
    category = Column(String, nullable=False)
    receipt_url = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    date = Column(DateTime, nullable=False, default=utcnow, index=True)

    # Recurrence
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_interval = Column(Enum(RecurringInterval, native_enum=False), nullable=True)
    next_recurring_date = Column(DateTime, nullable=True)
    last_processed = Column(DateTime, nullable=True)

    status = Column(Enum(TransactionStatus, native_enum=False), nullable=False, default=TransactionStatus.COMPLETED)
    payment_method = Column(Enum(PaymentMethod, native_enum=False), nullable=False, default=PaymentMethod.CASH)

    # Metadata
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="transactions")


class ReportSettings(Base):
    __tablename__ = "report_settings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    frequency = Column(Enum(ReportFrequency, native_enum=False), nullable=False, default=ReportFrequency.MONTHLY)
    is_enabled = Column(Boolean, nullable=False, default=False)
    next_report_date = Column(DateTime, nullable=True)
    last_sent_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="report_settings")


class Report(Base):
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    period = Column(String, nullable=False)
    sent_date = Column(DateTime, nullable=False)
    status = Column(Enum(ReportStatus, native_enum=False), nullable=False, default=ReportStatus.PENDING)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="reports")

# --- Init DB ---
def init_db():
    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transactional(db: Session):
    """Commit everything done inside the block, or roll all of it back."""
    try:
        yield db
        db.commit()
    except Exception:
        logger.warning("Rolling back database transaction")
        db.rollback()
        raise
