from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1


class TransactionParseError(ValueError):
    """Raised when a row cannot be turned into a Transaction."""


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @classmethod
    def from_keyword(cls, keyword: str) -> "TransactionType":
        """Exact, case-sensitive match against the five keywords."""
        for member in cls:
            if member.value == keyword:
                return member
        raise TransactionParseError(f"unknown transaction type {keyword!r}")


class Outcome(Enum):
    APPLIED = "applied"
    IGNORED = "ignored"


class IgnoreReason(Enum):
    ACCOUNT_LOCKED = "account_locked"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    UNKNOWN_TRANSACTION = "unknown_transaction"
    CLIENT_MISMATCH = "client_mismatch"
    NOT_DISPUTED = "not_disputed"
    ALREADY_DISPUTED = "already_disputed"
    DUPLICATE_TRANSACTION = "duplicate_transaction"


@dataclass(frozen=True)
class ProcessingResult:
    outcome: Outcome
    reason: Optional[IgnoreReason] = None

    @classmethod
    def applied(cls) -> "ProcessingResult":
        return cls(Outcome.APPLIED)

    @classmethod
    def ignored(cls, reason: IgnoreReason) -> "ProcessingResult":
        return cls(Outcome.IGNORED, reason)

    @property
    def is_applied(self) -> bool:
        return self.outcome is Outcome.APPLIED


def _is_plain_number(text: str) -> bool:
    # int() and float() also take digit separators and non-ASCII digits
    return text.isascii() and "_" not in text


def _parse_id(raw: str, name: str, upper: int) -> int:
    text = raw.strip()
    try:
        if not _is_plain_number(text):
            raise ValueError(text)
        value = int(text)
    except ValueError as e:
        raise TransactionParseError(f"invalid {name} {raw!r}") from e
    if value < 0 or value > upper:
        raise TransactionParseError(f"{name} {value} out of range")
    return value


def _parse_amount(raw: str) -> Optional[float]:
    text = raw.strip()
    if not _is_plain_number(text):
        return None
    try:
        return float(text)
    except ValueError:
        return None


@dataclass
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[float] = None
    disputed: bool = False

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"

    @classmethod
    def from_fields(cls, fields: Sequence[str]) -> "Transaction":
        """
        Build a Transaction from the raw fields of one CSV row.

        The type keyword, client id and transaction id are mandatory and a
        malformed value raises TransactionParseError. The amount is only read
        from four-field rows; an amount that does not parse becomes None so the
        record fails is_valid() instead of aborting the row here.
        """
        if len(fields) < 3:
            raise TransactionParseError(f"expected at least 3 fields, got {len(fields)}")

        amount = None
        if len(fields) == 4:
            amount = _parse_amount(fields[3])

        return cls(
            transaction_type=TransactionType.from_keyword(fields[0]),
            client_id=_parse_id(fields[1], "client id", MAX_CLIENT_ID),
            transaction_id=_parse_id(fields[2], "transaction id", MAX_TRANSACTION_ID),
            amount=amount,
        )

    @property
    def moves_funds(self) -> bool:
        return self.transaction_type in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)

    def is_valid(self) -> bool:
        # dispute, resolve and chargeback take their amount from the referenced record
        return not (self.moves_funds and self.amount is None)

    def mark_disputed(self) -> None:
        self.disputed = True

    def clear_disputed(self) -> None:
        self.disputed = False


@dataclass
class ClientAccount:
    """
    Balances of a single client.

    Every mutation returns True when it changed the account and False when it
    was skipped. Once locked by a chargeback, every mutation is skipped.
    """

    client_id: int
    available: float = 0.0
    held: float = 0.0
    total: float = 0.0
    locked: bool = False

    def deposit(self, amount: float) -> bool:
        if self.locked:
            return False
        self.available += amount
        self.total += amount
        return True

    def withdraw(self, amount: float) -> bool:
        if self.locked or self.available < amount:
            return False
        self.available -= amount
        self.total -= amount
        return True

    def dispute(self, amount: float) -> bool:
        if self.locked:
            return False
        # available may go negative if part of the funds was already withdrawn
        self.available -= amount
        self.held += amount
        return True

    def resolve(self, amount: float) -> bool:
        if self.locked:
            return False
        self.available += amount
        self.held -= amount
        return True

    def chargeback(self, amount: float) -> bool:
        if self.locked:
            return False
        self.locked = True
        self.total -= amount
        self.held -= amount
        return True

    def snapshot_row(self) -> Tuple[int, float, float, float, bool]:
        return self.client_id, self.available, self.held, self.total, self.locked


class ProcessingStats:
    """Counters for one replay run."""

    def __init__(self):
        self.parse_failures = 0
        self.invalid = 0
        self.applied = 0
        self.ignored: Counter = Counter()

    def record_parse_failure(self):
        self.parse_failures += 1

    def record_invalid(self):
        self.invalid += 1

    def record_result(self, result: ProcessingResult):
        if result.is_applied:
            self.applied += 1
        else:
            self.ignored[result.reason] += 1

    @property
    def ignored_total(self) -> int:
        return sum(self.ignored.values())

    def summary(self) -> str:
        line = (
            f"Applied: {self.applied}, "
            f"Ignored: {self.ignored_total}, "
            f"Invalid: {self.invalid}, "
            f"Unparsable: {self.parse_failures}"
        )
        if self.ignored:
            details = ", ".join(
                f"{reason.value}={count}"
                for reason, count in sorted(self.ignored.items(), key=lambda item: item[0].value)
            )
            line += f" ({details})"
        return line
