"""Payout ledger rules.

One line of the ledger belongs to the machine's owner. Its amount is never
typed in: it is whatever is left of the price once every other line has
been paid.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from gacha_node.entities.payouts import Payout, Payouts

logger = logging.getLogger(__name__)


def recalculate_owner_amount(payouts: Payouts, owner_key: str | None, price: int) -> Payout | None:
    """Set the owner line to ``price - sum(other lines)``.

    Recomputed from scratch every time. A ledger without an owner line is
    left alone. Returns the owner line, if any.
    """
    owner = payouts.get(owner_key)
    if owner is None:
        return None

    amount = price - payouts.total_price + int(owner.get("amount") or 0)
    owner.set("amount", amount)
    return owner


_LEADING_INTEGER = re.compile(r"\s*([+-]?\d+)")


def parse_amount(raw: Any) -> int | None:
    """Turn user input into an amount, or ``None`` when it is not a non-negative integer.

    Like an amount field read in base 10, only the leading digits count:
    ``"12abc"`` and ``"1.5"`` give 12 and 1, ``"abc"`` gives nothing.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    else:
        match = _LEADING_INTEGER.match(str(raw))
        if match is None:
            return None
        value = int(match.group(1), 10)
    if value < 0:
        return None
    return value


def apply_amount(payout: Payout, raw: Any) -> bool:
    """Store typed input on a line; rejected input leaves the line untouched."""
    value = parse_amount(raw)
    if value is None:
        logger.debug("rejected payout amount %r for %s", raw, payout.id)
        return False
    payout.set("amount", value)
    return True


@dataclass(frozen=True)
class PayoutRowContext:
    """What a ledger row may do, handed to whatever renders it."""

    is_admin: bool
    is_owner_row: bool

    @classmethod
    def for_payout(cls, payout: Payout, owner_key: str | None, *, is_admin: bool) -> "PayoutRowContext":
        return cls(is_admin=is_admin, is_owner_row=payout.id is not None and payout.id == owner_key)

    @property
    def readonly(self) -> bool:
        return self.is_owner_row or not self.is_admin

    @property
    def deletable(self) -> bool:
        return self.is_admin and not self.is_owner_row


def has_error(payout: Payout) -> bool:
    return int(payout.get("amount") or 0) < 0


def ledger_errors(payouts: Payouts, owner_key: str | None, price: int) -> list[str]:
    errors: list[str] = []
    if payouts.get(owner_key) is None:
        errors.append(f"missing owner payout line for {owner_key!r}")
    for payout in payouts:
        if has_error(payout):
            errors.append(f"negative payout for {payout.id!r}: {payout.get('amount')}")
    if payouts.total_price != price:
        errors.append(f"payouts total {payouts.total_price} does not match price {price}")
    return errors
