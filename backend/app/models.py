"""
SQLAlchemy models matching the users/transactions migration scripts.
The analytics API reads these tables; the seeder is the only writer in tests.
"""
from datetime import datetime
from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship

from app.database import Base

# BIGSERIAL on PostgreSQL; SQLite only autoincrements INTEGER PRIMARY KEY.
IdType = BigInteger().with_variant(Integer(), "sqlite")


class User(Base):
    """
    User model.
    Activity tier is stored so analytics can segment power users from new sign-ups.
    """
    __tablename__ = "users"

    id = Column(IdType, primary_key=True, autoincrement=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    phone_number = Column(String(15), nullable=True, unique=True)  # +91XXXXXXXXXX
    role = Column(String(50), nullable=False)  # CUSTOMER, MERCHANT, ADMIN
    status = Column(String(50), nullable=False, default="ACTIVE")  # ACTIVE, SUSPENDED
    activity_tier = Column(String(20), nullable=True)  # HIGH, NORMAL, LOW, NEW
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    transactions = relationship("Transaction", back_populates="user")

    # Indexes
    __table_args__ = (
        Index("idx_users_status", "status"),
        Index("idx_users_created_at", "created_at"),
        Index("idx_users_status_created_at", "status", "created_at"),
    )


class Transaction(Base):
    """
    Payment transaction model.
    failure_reason is set only for FAILED rows (enforced by a CHECK constraint).
    """
    __tablename__ = "transactions"

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(
        IdType,
        ForeignKey("users.id", name="fk_transaction_user", ondelete="RESTRICT"),
        nullable=False,
    )
    amount = Column(Numeric(15, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    type = Column(String(50), nullable=False)  # PAYMENT, REFUND, CHARGEBACK, FEE
    status = Column(String(50), nullable=False)  # SUCCESS, FAILED, PENDING, CANCELLED
    payment_method = Column(String(50), nullable=False)  # UPI, CREDIT_CARD, DEBIT_CARD, NET_BANKING, WALLET, OTHER
    payment_provider = Column(String(100), nullable=True)  # PhonePe, Visa, HDFC, ...
    failure_reason = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="transactions")

    # Indexes and constraints
    __table_args__ = (
        CheckConstraint("amount > 0", name="chk_amount_positive"),
        CheckConstraint(
            "(status = 'FAILED' AND failure_reason IS NOT NULL) OR "
            "(status != 'FAILED' AND failure_reason IS NULL)",
            name="chk_failure_reason_valid",
        ),
        Index("idx_transactions_user_id", "user_id"),
        Index("idx_transactions_created_at", "created_at"),
        Index("idx_transactions_status_created_at", "status", "created_at"),
        Index("idx_transactions_payment_method_created_at", "payment_method", "created_at"),
        Index("idx_transactions_user_created_at", "user_id", "created_at"),
    )
