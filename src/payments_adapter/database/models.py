"""SQLAlchemy models for payment attempts, refunds and payouts."""

import uuid
import json
from datetime import datetime
from typing import Optional, Dict, Any, List

from sqlalchemy import (
    String,
    Integer,
    DateTime,
    ForeignKey,
    Text,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column
import enum

from ..connectors.base import AttemptStatus, RefundStatus


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class PayoutStatus(str, enum.Enum):
    """Payout lifecycle. Identity never changes, only status advances."""
    REQUIRES_CREATION = "requires_creation"
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


def _json_loads(value: Optional[str]) -> Optional[Dict[str, Any]]:
    if value:
        return json.loads(value)
    return None


def _json_dumps(value: Optional[Dict[str, Any]]) -> Optional[str]:
    if value is not None:
        return json.dumps(value)
    return None


class PaymentAttempt(Base):
    """One payment attempt against a connector."""
    __tablename__ = "payment_attempts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    merchant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    connector: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=AttemptStatus.STARTED.value)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    capture_method: Mapped[str] = mapped_column(String(20), nullable=False, default="automatic")
    amount_captured: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    connector_transaction_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)

    # Correlation metadata envelope written after capture, read by refunds
    connector_metadata_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    error_code: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    refunds: Mapped[List["Refund"]] = relationship(
        "Refund",
        back_populates="attempt",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_payment_attempts_merchant_id", "merchant_id"),
        Index("ix_payment_attempts_status", "status"),
    )

    @property
    def connector_metadata(self) -> Optional[Dict[str, Any]]:
        """Get connector metadata as dictionary."""
        return _json_loads(self.connector_metadata_json)

    @connector_metadata.setter
    def connector_metadata(self, value: Optional[Dict[str, Any]]) -> None:
        self.connector_metadata_json = _json_dumps(value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempt_id": self.id,
            "merchant_id": self.merchant_id,
            "connector": self.connector,
            "status": self.status,
            "amount": self.amount,
            "currency": self.currency,
            "capture_method": self.capture_method,
            "amount_captured": self.amount_captured,
            "connector_transaction_id": self.connector_transaction_id,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Refund(Base):
    """A refund against a captured payment attempt."""
    __tablename__ = "refunds"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    attempt_id: Mapped[str] = mapped_column(String(36), ForeignKey("payment_attempts.id"), nullable=False, index=True)
    merchant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=RefundStatus.PENDING.value)
    connector_refund_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    error_code: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    attempt: Mapped["PaymentAttempt"] = relationship("PaymentAttempt", back_populates="refunds")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "refund_id": self.id,
            "attempt_id": self.attempt_id,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status,
            "connector_refund_id": self.connector_refund_id,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Payout(Base):
    """Payout record. (merchant_id, payout_id) is unique."""
    __tablename__ = "payouts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    payout_id: Mapped[str] = mapped_column(String(64), nullable=False)
    merchant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    customer_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=PayoutStatus.REQUIRES_CREATION.value)
    connector: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    connector_payout_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    # Masked payout method data; raw secrets are never stored
    method_data_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("merchant_id", "payout_id", name="uq_payouts_merchant_id_payout_id"),
        Index("ix_payouts_status", "status"),
    )

    @property
    def method_data(self) -> Optional[Dict[str, Any]]:
        return _json_loads(self.method_data_json)

    @method_data.setter
    def method_data(self, value: Optional[Dict[str, Any]]) -> None:
        self.method_data_json = _json_dumps(value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "payout_id": self.payout_id,
            "merchant_id": self.merchant_id,
            "customer_id": self.customer_id,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status,
            "connector": self.connector,
            "connector_payout_id": self.connector_payout_id,
            "method_data": self.method_data,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
