"""Synthetic user generation."""

from __future__ import annotations

import random
from typing import Dict, Iterator, Optional, Set, Tuple

from app.seeder.errors import ConfigurationError
from app.seeder.profiles import ActivityProfileAssigner
from app.seeder.records import UserRecord, UserRole, UserStatus
from app.seeder.sampling import WeightedSampler

FIRST_NAMES: Tuple[str, ...] = (
    "Raj", "Priya", "Amit", "Sneha", "Vikram", "Anjali", "Rohit", "Kavya",
    "Arjun", "Meera", "Siddharth", "Divya", "Karan", "Isha", "Rahul", "Pooja",
    "Aditya", "Neha", "Varun", "Lakshmi", "Manish", "Shreya", "Nikhil", "Ananya",
)

LAST_NAMES: Tuple[str, ...] = (
    "Sharma", "Patel", "Kumar", "Singh", "Gupta", "Reddy", "Mehta", "Joshi",
    "Verma", "Agarwal", "Malhotra", "Iyer", "Nair", "Rao", "Chopra", "Desai",
    "Bhat", "Kapoor", "Menon", "Pillai",
)

EMAIL_DOMAINS: Tuple[str, ...] = (
    "example.com",
    "mail.example.com",
    "example.in",
    "example.org",
)

PHONE_PREFIX = "+91"
PHONE_MIN = 7000000000  # Indian mobile numbers start with 7, 8 or 9
PHONE_MAX = 9999999999

ROLE_WEIGHTS = (
    (UserRole.CUSTOMER, 70),
    (UserRole.MERCHANT, 25),
    (UserRole.ADMIN, 5),
)

STATUS_WEIGHTS = (
    (UserStatus.ACTIVE, 90),
    (UserStatus.SUSPENDED, 10),
)


class UserFactory:
    """Produces users lazily; never touches storage.

    Email uniqueness is tracked per factory instance, so one instance should
    serve one run. Phone numbers count up from ``phone_start`` and wrap within
    the mobile range. ``run_tag`` (plus-addressing on the email) and a distinct
    ``phone_start`` let a second run append to the same store without tripping
    the unique constraints.
    """

    def __init__(
        self,
        profiles: ActivityProfileAssigner,
        domains: Tuple[str, ...] = EMAIL_DOMAINS,
        run_tag: Optional[str] = None,
        phone_start: int = PHONE_MIN,
    ):
        if not domains:
            raise ConfigurationError("At least one email domain is required.")
        if not PHONE_MIN <= phone_start <= PHONE_MAX:
            raise ConfigurationError(f"phone_start must be within {PHONE_MIN}..{PHONE_MAX}, got {phone_start}")
        self.profiles = profiles
        self.domains = domains
        self.run_tag = run_tag
        self._role_sampler = WeightedSampler(ROLE_WEIGHTS)
        self._status_sampler = WeightedSampler(STATUS_WEIGHTS)
        self._seen_emails: Set[str] = set()
        self._next_suffix: Dict[str, int] = {}
        self._next_phone = phone_start
        self._issued = 0

    @property
    def issued(self) -> int:
        return self._issued

    def generate(self, count: int, rng: random.Random) -> Iterator[UserRecord]:
        if count < 0:
            raise ConfigurationError(f"User count must be >= 0, got {count}")
        return self._iter_users(count, rng)

    def _iter_users(self, count: int, rng: random.Random) -> Iterator[UserRecord]:
        for _ in range(count):
            yield self.build_user(rng)

    def build_user(self, rng: random.Random) -> UserRecord:
        first_name = rng.choice(FIRST_NAMES)
        last_name = rng.choice(LAST_NAMES)
        tier, created_at = self.profiles.assign(rng)

        index = self._issued
        self._issued += 1

        return UserRecord(
            full_name=f"{first_name} {last_name}",
            email=self._unique_email(first_name, last_name, index),
            phone_number=self._next_phone_number(),
            role=self._role_sampler.sample(rng),
            status=self._status_sampler.sample(rng),
            activity_tier=tier,
            created_at=created_at,
        )

    def _unique_email(self, first_name: str, last_name: str, index: int) -> str:
        local = f"{first_name}.{last_name}".lower()
        tag = f"+{self.run_tag}" if self.run_tag else ""
        offset = index % len(self.domains)

        # Rotate through domains before falling back to a numeric suffix.
        for step in range(len(self.domains)):
            candidate = f"{local}{tag}@{self.domains[(offset + step) % len(self.domains)]}"
            if candidate not in self._seen_emails:
                self._seen_emails.add(candidate)
                return candidate

        suffix = self._next_suffix.get(local, 2)
        while True:
            candidate = f"{local}{suffix}{tag}@{self.domains[(offset + suffix) % len(self.domains)]}"
            suffix += 1
            if candidate not in self._seen_emails:
                self._next_suffix[local] = suffix
                self._seen_emails.add(candidate)
                return candidate

    def _next_phone_number(self) -> str:
        number = self._next_phone
        self._next_phone = number + 1 if number < PHONE_MAX else PHONE_MIN
        return f"{PHONE_PREFIX}{number}"
