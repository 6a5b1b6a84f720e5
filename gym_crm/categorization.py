"""
Member lifecycle categorization.

Splits a snapshot of members (already joined with their transactions) into
active, due-soon, overdue and inactive lists. The reference date is always
passed in; nothing here reads the clock, touches the database or keeps state
between calls.
"""

import logging
from datetime import date, datetime
from typing import Iterable, Union

from .config import DUE_SOON_WINDOW_DAYS, LONG_TERM_MEMBER_DAYS
from .date_utils import add_days, days_between, parse_date, start_of_day
from .models import (
    CategorizationResult,
    InactiveMember,
    MemberStatus,
    MemberWithTransactions,
    Transaction,
)

LONG_TERM_NON_ACTIVE_REASON = "Long-term member with non-active status"


def categorize_members(
    members: Iterable[MemberWithTransactions],
    today: Union[date, datetime],
    due_soon_days: int = DUE_SOON_WINDOW_DAYS,
    long_term_days: int = LONG_TERM_MEMBER_DAYS,
) -> CategorizationResult:
    """Classifies every member into the four lifecycle buckets.

    Per member:
      1. inactive/suspended status -> ``inactive`` ("Status: <status>"), nothing else;
      2. active, unset or unrecognised status -> ``active``;
      3. every weekly/monthly transaction independently: unpaid or already
         ended -> ``overdue``, ending within ``due_soon_days`` -> ``due_soon``;
      4. joined more than ``long_term_days`` ago with a pending/expired status
         -> ``inactive``;
      5. a member that matched nothing above -> ``active``.

    Steps 2 and 3 are independent, so the raw result can list a member in
    both ``active`` and ``overdue``/``due_soon``, and once per qualifying
    transaction. Use ``CategorizationResult.deduplicated`` before counting.
    """
    today = start_of_day(today)
    due_soon_end = add_days(today, due_soon_days)
    result = CategorizationResult()

    for entry in members:
        member = entry.member
        status = member.member_status

        if status.is_disabled:
            result.inactive.append(
                InactiveMember(member_id=member.id, name=member.name, reason=f"Status: {member.status}")
            )
            continue

        placed = False
        if status.counts_as_active:
            result.active.append(entry)
            placed = True

        for transaction in entry.transactions:
            bucket = _renewal_bucket(transaction, today, due_soon_end)
            if bucket == "overdue":
                result.overdue.append(entry)
                placed = True
            elif bucket == "due_soon":
                result.due_soon.append(entry)
                placed = True

        if _is_long_term_non_active(entry, status, today, long_term_days):
            result.inactive.append(
                InactiveMember(member_id=member.id, name=member.name, reason=LONG_TERM_NON_ACTIVE_REASON)
            )
            placed = True

        if not placed:
            result.active.append(entry)

    return result


def _renewal_bucket(transaction: Transaction, today: date, due_soon_end: date):
    """'overdue', 'due_soon' or None for one transaction."""
    if not transaction.subscription_period.has_renewal_window:
        return None
    if transaction.payment_status.is_unpaid:
        return "overdue"

    ending = parse_date(transaction.ending_date)
    if ending is None:
        if transaction.ending_date:
            logging.debug(
                f"Ignoring unparseable ending date '{transaction.ending_date}' "
                f"on transaction {transaction.id} of member {transaction.member_id}."
            )
        return None
    if ending < today:
        return "overdue"
    if ending < due_soon_end:
        return "due_soon"
    return None


def _is_long_term_non_active(
    entry: MemberWithTransactions, status: MemberStatus, today: date, long_term_days: int
) -> bool:
    if status.counts_as_active:
        return False
    join_date = parse_date(entry.member.join_date)
    if join_date is None:
        return False
    return days_between(today, join_date) > long_term_days


def join_members_with_transactions(members, transactions) -> list:
    """Attaches each member's transactions (ordered by start date).

    Transactions that reference an unknown member are dropped.
    """
    by_member = {member.id: [] for member in members}
    for transaction in transactions:
        if transaction.member_id not in by_member:
            logging.warning(
                f"Dropping transaction {transaction.id} for unknown member {transaction.member_id}."
            )
            continue
        by_member[transaction.member_id].append(transaction)

    joined = []
    for member in members:
        member_transactions = sorted(
            by_member[member.id], key=lambda t: (parse_date(t.start_date) is None, parse_date(t.start_date) or date.min)
        )
        joined.append(MemberWithTransactions(member=member, transactions=member_transactions))
    return joined
