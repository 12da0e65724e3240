"""DB tables and the relational store adapter for the Receipt Processor."""

from typing import Any

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    create_engine,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from receipt_processor.core.exceptions import PersistenceError, RegistrationError
from receipt_processor.core.models import ReceiptStatus, TransactionRecord
from receipt_processor.core.utils import get_logger, utcnow

Base = declarative_base()

logger = get_logger("receipt-processor.store")


class Receipt(Base):
    """A stored upload and its processing lifecycle state."""

    __tablename__ = "receipts"
    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    content_type = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, default=ReceiptStatus.NEEDS_REVIEW.value, index=True)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)


class Transaction(Base):
    """The financial record extracted from a receipt."""

    __tablename__ = "transactions"
    id = Column(Integer, primary_key=True, autoincrement=True)
    receipt_id = Column(Integer, ForeignKey("receipts.id", ondelete="CASCADE"), unique=True, nullable=False)
    date = Column(Date, nullable=True, index=True)
    merchant_raw = Column(String(255), nullable=True)
    merchant_clean = Column(String(255), nullable=True, index=True)
    category = Column(String(100), nullable=True, index=True)
    amount = Column(Numeric(10, 2, asdecimal=False), nullable=True)
    currency = Column(String(3), nullable=True)
    confidence = Column(Numeric(5, 4, asdecimal=False), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


def get_engine(url: str | None = None) -> Engine:
    """Create a SQLAlchemy engine using the configured database URL."""
    from receipt_processor.core.settings import get_settings

    settings = get_settings()
    url = url or settings.database_url
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle,
    )


engine = get_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine | None = None) -> None:
    """Create the receipts and transactions tables if they do not exist."""
    Base.metadata.create_all(bind or engine)


def get_db() -> "ReceiptStore":
    """Get a ReceiptStore bound to the application's session factory."""
    return ReceiptStore(SessionLocal)


def _receipt_to_dict(row: Receipt) -> dict[str, Any]:
    return {
        "id": row.id,
        "uuid": row.uuid,
        "file_name": row.file_name,
        "original_name": row.original_name,
        "content_type": row.content_type,
        "status": row.status,
        "uploaded_at": row.uploaded_at,
    }


def _transaction_to_dict(row: Transaction) -> dict[str, Any]:
    return {
        "id": row.id,
        "receipt_id": row.receipt_id,
        "date": row.date,
        "merchant_raw": row.merchant_raw,
        "merchant_clean": row.merchant_clean,
        "category": row.category,
        "amount": row.amount,
        "currency": row.currency,
        "confidence": row.confidence,
        "created_at": row.created_at,
    }


class ReceiptStore:
    """Relational store for receipts and transactions.

    Each operation checks a session out of the factory and closes it before returning, so the
    pool is never held across a slow OCR or extraction call.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        """Initialize the store with a SQLAlchemy session factory."""
        self.session_factory = session_factory

    def insert_receipt(
        self,
        *,
        receipt_uuid: str,
        file_name: str,
        original_name: str,
        content_type: str,
        status: ReceiptStatus,
        uploaded_at: Any,
    ) -> int:
        """Insert a receipt row and return its id."""
        session: Session = self.session_factory()
        try:
            row = Receipt(
                uuid=receipt_uuid,
                file_name=file_name,
                original_name=original_name,
                content_type=content_type,
                status=ReceiptStatus(status).value,
                uploaded_at=uploaded_at,
            )
            session.add(row)
            session.commit()
            return row.id
        except SQLAlchemyError as exc:
            session.rollback()
            msg = f"Failed to insert receipt {file_name}: {exc}"
            raise RegistrationError(msg) from exc
        finally:
            session.close()

    def update_receipt_status(self, receipt_id: int, status: ReceiptStatus) -> None:
        """Set the lifecycle state of a receipt."""
        session: Session = self.session_factory()
        try:
            stmt = update(Receipt).where(Receipt.id == receipt_id).values(status=ReceiptStatus(status).value)
            session.execute(stmt)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            msg = f"Failed to update receipt {receipt_id} status: {exc}"
            raise PersistenceError(msg) from exc
        finally:
            session.close()

    def insert_transaction(self, receipt_id: int, record: TransactionRecord) -> int:
        """Insert a transaction row for a receipt without touching the receipt's state."""
        session: Session = self.session_factory()
        try:
            row = Transaction(receipt_id=receipt_id, **record.model_dump())
            session.add(row)
            session.commit()
            return row.id
        except SQLAlchemyError as exc:
            session.rollback()
            msg = f"Failed to insert transaction for receipt {receipt_id}: {exc}"
            raise PersistenceError(msg) from exc
        finally:
            session.close()

    def record_transaction(self, receipt_id: int, record: TransactionRecord) -> int:
        """Insert a transaction and mark its receipt processed in one database transaction."""
        session: Session = self.session_factory()
        try:
            row = Transaction(receipt_id=receipt_id, **record.model_dump())
            session.add(row)
            session.flush()
            stmt = (
                update(Receipt)
                .where(Receipt.id == receipt_id)
                .values(status=ReceiptStatus.PROCESSED.value)
            )
            result = session.execute(stmt)
            if result.rowcount != 1:
                msg = f"Receipt {receipt_id} not found"
                raise PersistenceError(msg)
            session.commit()
            return row.id
        except SQLAlchemyError as exc:
            session.rollback()
            msg = f"Failed to record transaction for receipt {receipt_id}: {exc}"
            raise PersistenceError(msg) from exc
        except PersistenceError:
            session.rollback()
            raise
        finally:
            session.close()

    def get_receipt(self, receipt_id: int) -> dict[str, Any] | None:
        """Retrieve a receipt row by id."""
        session: Session = self.session_factory()
        try:
            row = session.get(Receipt, receipt_id)
            if not row:
                return None
            return _receipt_to_dict(row)
        finally:
            session.close()

    def get_transaction(self, receipt_id: int) -> dict[str, Any] | None:
        """Retrieve the transaction belonging to a receipt."""
        session: Session = self.session_factory()
        try:
            row = session.execute(select(Transaction).where(Transaction.receipt_id == receipt_id)).scalar_one_or_none()
            if not row:
                return None
            return _transaction_to_dict(row)
        finally:
            session.close()

    def list_receipts(self, status: ReceiptStatus | None = None, limit: int = 50) -> list[dict[str, Any]]:
        """List receipts, newest first, optionally filtered by state."""
        session: Session = self.session_factory()
        try:
            stmt = select(Receipt).order_by(Receipt.id.desc()).limit(limit)
            if status is not None:
                stmt = stmt.where(Receipt.status == ReceiptStatus(status).value)
            return [_receipt_to_dict(row) for row in session.execute(stmt).scalars()]
        finally:
            session.close()
