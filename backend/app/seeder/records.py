"""Generated entity records and the enumerations they draw from.

Records are built once by the factories and never mutated. Identifiers are
assigned by the store on insert, so only :class:`PersistedUser` carries one.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class ActivityTier(str, Enum):
    HIGH = "HIGH"
    NORMAL = "NORMAL"
    LOW = "LOW"
    NEW = "NEW"


class UserRole(str, Enum):
    CUSTOMER = "CUSTOMER"
    MERCHANT = "MERCHANT"
    ADMIN = "ADMIN"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


class TransactionType(str, Enum):
    PAYMENT = "PAYMENT"
    REFUND = "REFUND"
    CHARGEBACK = "CHARGEBACK"
    FEE = "FEE"


class TransactionStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    PENDING = "PENDING"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    UPI = "UPI"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    NET_BANKING = "NET_BANKING"
    WALLET = "WALLET"
    OTHER = "OTHER"


@dataclass(frozen=True)
class UserRecord:
    full_name: str
    email: str
    phone_number: str
    role: UserRole
    status: UserStatus
    activity_tier: ActivityTier
    created_at: datetime


@dataclass(frozen=True)
class PersistedUser:
    """Store-assigned id plus the tier used to weight transaction ownership."""

    id: int
    activity_tier: ActivityTier


@dataclass(frozen=True)
class TransactionRecord:
    user_id: int
    amount: Decimal
    currency: str
    type: TransactionType
    status: TransactionStatus
    payment_method: PaymentMethod
    payment_provider: Optional[str]
    failure_reason: Optional[str]
    created_at: datetime
