"""Synthetic transaction generation with weighted, type-conditioned sampling."""

from __future__ import annotations

import random
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterator, Mapping, Optional, Sequence, Tuple

from app.seeder.errors import ConfigurationError
from app.seeder.records import (
    ActivityTier,
    PaymentMethod,
    PersistedUser,
    TransactionRecord,
    TransactionStatus,
    TransactionType,
)
from app.seeder.sampling import WeightedSampler
from app.seeder.timestamps import TimestampAllocator

TYPE_WEIGHTS = (
    (TransactionType.PAYMENT, 85),
    (TransactionType.REFUND, 10),
    (TransactionType.CHARGEBACK, 3),
    (TransactionType.FEE, 2),
)

STATUS_WEIGHTS = (
    (TransactionStatus.SUCCESS, 75),
    (TransactionStatus.FAILED, 15),
    (TransactionStatus.PENDING, 8),
    (TransactionStatus.CANCELLED, 2),
)

PAYMENT_METHOD_WEIGHTS = (
    (PaymentMethod.UPI, 50),
    (PaymentMethod.CREDIT_CARD, 20),
    (PaymentMethod.DEBIT_CARD, 15),
    (PaymentMethod.NET_BANKING, 8),
    (PaymentMethod.WALLET, 5),
    (PaymentMethod.OTHER, 2),
)

FAILURE_REASON_WEIGHTS = (
    ("INSUFFICIENT_FUNDS", 30),
    ("BANK_SERVER_DOWN", 20),
    ("NPCI_TIMEOUT", 15),
    ("USER_ABORTED", 15),
    ("INVALID_UPI_ID", 10),
    ("UNKNOWN_ERROR", 10),
)

PROVIDERS_BY_METHOD: Dict[PaymentMethod, Tuple[str, ...]] = {
    PaymentMethod.UPI: ("PhonePe", "GooglePay", "Paytm", "BHIM", "AmazonPay"),
    PaymentMethod.CREDIT_CARD: ("Visa", "Mastercard", "RuPay", "Amex"),
    PaymentMethod.DEBIT_CARD: ("Visa", "Mastercard", "RuPay", "Maestro"),
    PaymentMethod.NET_BANKING: ("SBI", "HDFC", "ICICI", "Axis", "Kotak"),
    PaymentMethod.WALLET: ("Paytm", "PhonePe", "AmazonPay", "Mobikwik", "Freecharge"),
    PaymentMethod.OTHER: (),
}

# (weight, low, high) bands; PAYMENT and CHARGEBACK share the tiered profile.
TIERED_AMOUNT_BANDS = (
    (70, 100, 5000),
    (20, 5000, 50000),
    (10, 50000, 500000),
)
FLAT_AMOUNT_RANGES: Dict[TransactionType, Tuple[float, float]] = {
    TransactionType.REFUND: (50, 5000),
    TransactionType.FEE: (5, 500),
}


class TransactionFactory:
    """Builds transactions against an already-persisted user pool."""

    def __init__(
        self,
        timestamps: TimestampAllocator,
        tier_multipliers: Mapping[ActivityTier, float],
        currency: str = "INR",
    ):
        self.timestamps = timestamps
        self.tier_multipliers = dict(tier_multipliers)
        self.currency = currency
        self._type_sampler = WeightedSampler(TYPE_WEIGHTS)
        self._status_sampler = WeightedSampler(STATUS_WEIGHTS)
        self._method_sampler = WeightedSampler(PAYMENT_METHOD_WEIGHTS)
        self._failure_sampler = WeightedSampler(FAILURE_REASON_WEIGHTS)
        self._band_sampler = WeightedSampler(
            ((low, high), weight) for weight, low, high in TIERED_AMOUNT_BANDS
        )

    def user_sampler(self, user_pool: Sequence[PersistedUser]) -> WeightedSampler[PersistedUser]:
        """Owner selection weighted by each user's tier multiplier."""
        if not user_pool:
            raise ConfigurationError(
                "Cannot generate transactions without persisted users; seed users first."
            )
        return WeightedSampler(
            (user, self.tier_multipliers[user.activity_tier]) for user in user_pool
        )

    def generate(
        self,
        count: int,
        rng: random.Random,
        user_pool: Sequence[PersistedUser],
    ) -> Iterator[TransactionRecord]:
        if count < 0:
            raise ConfigurationError(f"Transaction count must be >= 0, got {count}")
        sampler = self.user_sampler(user_pool)
        return self._iter_transactions(count, rng, sampler)

    def _iter_transactions(
        self,
        count: int,
        rng: random.Random,
        sampler: WeightedSampler[PersistedUser],
    ) -> Iterator[TransactionRecord]:
        for _ in range(count):
            yield self.generate_one(rng, sampler)

    def generate_one(
        self,
        rng: random.Random,
        user_sampler: WeightedSampler[PersistedUser],
    ) -> TransactionRecord:
        user = user_sampler.sample(rng)
        tx_type = self._type_sampler.sample(rng)
        status = self._status_sampler.sample(rng)
        method = self._method_sampler.sample(rng)

        failure_reason: Optional[str] = None
        if status is TransactionStatus.FAILED:
            failure_reason = self._failure_sampler.sample(rng)

        return TransactionRecord(
            user_id=user.id,
            amount=self._amount(tx_type, rng),
            currency=self.currency,
            type=tx_type,
            status=status,
            payment_method=method,
            payment_provider=_provider_for(method, rng),
            failure_reason=failure_reason,
            created_at=self.timestamps.allocate(rng),
        )

    def _amount(self, tx_type: TransactionType, rng: random.Random) -> Decimal:
        if tx_type in FLAT_AMOUNT_RANGES:
            low, high = FLAT_AMOUNT_RANGES[tx_type]
        else:
            low, high = self._band_sampler.sample(rng)
        return _decimal_from_range(rng, low, high)


def _provider_for(method: PaymentMethod, rng: random.Random) -> Optional[str]:
    pool = PROVIDERS_BY_METHOD.get(method)
    if not pool:
        return None
    return rng.choice(pool)


def _quantize_currency(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _decimal_from_range(rng: random.Random, min_value: float, max_value: float) -> Decimal:
    sampled = rng.uniform(min_value, max_value)
    return _quantize_currency(Decimal(str(sampled)))
