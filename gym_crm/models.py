from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional


class MemberStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    PENDING = "pending"
    EXPIRED = "expired"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "MemberStatus":
        """Unset means active; anything unrecognised is UNKNOWN."""
        if value is None or not str(value).strip():
            return cls.ACTIVE
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_disabled(self) -> bool:
        return self in (MemberStatus.INACTIVE, MemberStatus.SUSPENDED)

    @property
    def counts_as_active(self) -> bool:
        return self in (MemberStatus.ACTIVE, MemberStatus.UNKNOWN)


class SubscriptionPeriod(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SubscriptionPeriod":
        key = str(value).strip().lower() if value is not None else ""
        return _PERIOD_ALIASES.get(key, cls.UNKNOWN)

    @property
    def has_renewal_window(self) -> bool:
        return self in (SubscriptionPeriod.WEEKLY, SubscriptionPeriod.MONTHLY)


_PERIOD_ALIASES = {
    "daily": SubscriptionPeriod.DAILY,
    "day": SubscriptionPeriod.DAILY,
    "weekly": SubscriptionPeriod.WEEKLY,
    "week": SubscriptionPeriod.WEEKLY,
    "monthly": SubscriptionPeriod.MONTHLY,
    "month": SubscriptionPeriod.MONTHLY,
}


class TransactionStatus(Enum):
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"
    PENDING = "pending"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "TransactionStatus":
        key = str(value).strip().lower() if value is not None else ""
        return _TRANSACTION_STATUS_ALIASES.get(key, cls.UNKNOWN)

    @property
    def is_unpaid(self) -> bool:
        return self in (TransactionStatus.INCOMPLETE, TransactionStatus.FAILED)


_TRANSACTION_STATUS_ALIASES = {
    "complete": TransactionStatus.COMPLETE,
    "completed": TransactionStatus.COMPLETE,
    "paid": TransactionStatus.COMPLETE,
    "success": TransactionStatus.COMPLETE,
    "succeeded": TransactionStatus.COMPLETE,
    "incomplete": TransactionStatus.INCOMPLETE,
    "unpaid": TransactionStatus.INCOMPLETE,
    "pending": TransactionStatus.PENDING,
    "awaiting": TransactionStatus.PENDING,
    "failed": TransactionStatus.FAILED,
    "declined": TransactionStatus.FAILED,
}


@dataclass
class Member:
    id: Any
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    join_date: Optional[str] = None  # YYYY-MM-DD or ISO timestamp
    status: Optional[str] = "active"
    membership_type: Optional[str] = None

    @property
    def member_status(self) -> MemberStatus:
        return MemberStatus.parse(self.status)


@dataclass
class Transaction:
    id: Optional[int]
    member_id: Any
    amount: float
    period: Optional[str]  # daily / weekly / monthly
    start_date: Optional[str]
    ending_date: Optional[str] = None  # None means no defined expiry
    status: Optional[str] = None

    @property
    def subscription_period(self) -> SubscriptionPeriod:
        return SubscriptionPeriod.parse(self.period)

    @property
    def payment_status(self) -> TransactionStatus:
        return TransactionStatus.parse(self.status)


@dataclass
class CheckIn:
    id: Optional[int]
    member_id: Any
    check_in_time: Optional[str]
    check_out_time: Optional[str] = None
    duration_minutes: Optional[float] = None


@dataclass
class MemberWithTransactions:
    """A member joined with its transactions, oldest first."""
    member: Member
    transactions: List[Transaction] = field(default_factory=list)

    @property
    def id(self) -> Any:
        return self.member.id

    @property
    def name(self) -> str:
        return self.member.name


@dataclass
class InactiveMember:
    member_id: Any
    name: Optional[str]
    reason: str


@dataclass
class CategorizationResult:
    active: List[MemberWithTransactions] = field(default_factory=list)
    due_soon: List[MemberWithTransactions] = field(default_factory=list)
    overdue: List[MemberWithTransactions] = field(default_factory=list)
    inactive: List[InactiveMember] = field(default_factory=list)

    def member_ids(self, bucket: str) -> List[Any]:
        entries = getattr(self, bucket)
        if bucket == "inactive":
            return [entry.member_id for entry in entries]
        return [entry.id for entry in entries]

    def deduplicated(self, exclusive: bool = False) -> "CategorizationResult":
        """Returns a copy where each member is listed at most once per bucket.

        With ``exclusive`` the active/due_soon/overdue lists are also made
        disjoint: overdue wins over due_soon, and both win over active.
        """
        overdue = _unique(self.overdue, lambda m: m.id)
        due_soon = _unique(self.due_soon, lambda m: m.id)
        active = _unique(self.active, lambda m: m.id)
        if exclusive:
            overdue_ids = {m.id for m in overdue}
            due_soon = [m for m in due_soon if m.id not in overdue_ids]
            flagged_ids = overdue_ids | {m.id for m in due_soon}
            active = [m for m in active if m.id not in flagged_ids]
        return replace(
            self,
            active=active,
            due_soon=due_soon,
            overdue=overdue,
            inactive=_unique(self.inactive, lambda m: m.member_id),
        )

    def counts(self, dedupe: bool = True) -> Dict[str, int]:
        result = self.deduplicated() if dedupe else self
        return {
            "active": len(result.active),
            "due_soon": len(result.due_soon),
            "overdue": len(result.overdue),
            "inactive": len(result.inactive),
        }


def _unique(entries, key) -> list:
    seen = set()
    unique_entries = []
    for entry in entries:
        entry_key = key(entry)
        if entry_key in seen:
            continue
        seen.add(entry_key)
        unique_entries.append(entry)
    return unique_entries


@dataclass
class MemberVisitStats:
    member_id: Any
    full_name: Optional[str]
    total_visits: Optional[int]
    last_visit: Optional[str]


@dataclass
class LeaderboardEntry:
    member_id: Any
    full_name: str
    streak_score: int
    total_visits: int
