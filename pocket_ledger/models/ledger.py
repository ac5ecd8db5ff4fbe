"""
Core Ledger Models for Pocket Ledger

These models define the schemas for everything the ledger stores:
expenses, incomes, accounts and categories.

DESIGN DECISION: Stored documents keep the camelCase keys of the browser
version of the app (accountId, isRecurringSource, lastProcessedDate...).
Python code works with snake_case attributes; the alias generator maps
between the two, so old exports load without a migration step.

Legacy Italian labels (repeatability "Mensile", account type "Banca" and
the rest) are normalized on load and written back as the English enum
values ("monthly", "bank"). A stored record therefore changes on its first
save and an older export is not reproduced byte for byte.

Money is always Decimal. Dates are calendar dates (no time component) and
serialize as YYYY-MM-DD.
"""

import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Generate a fresh record identifier."""
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Repeatability(str, Enum):
    """
    How often a recurring expense repeats.

    NONE marks a one-off expense. Every other value drives materialization.
    """
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    SEMIANNUAL = "semiannual"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value) -> "Repeatability":
        """
        Normalize a stored label.

        Accepts the enum values, their names and the Italian labels written
        by the browser version of the app. Anything else is treated as NONE so a
        malformed record is skipped instead of breaking the whole load.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        label = str(value).strip()
        if label in LEGACY_REPEATABILITY_LABELS:
            return LEGACY_REPEATABILITY_LABELS[label]
        try:
            return cls(label.lower())
        except ValueError:
            return cls.NONE


LEGACY_REPEATABILITY_LABELS = {
    "Nessuna": Repeatability.NONE,
    "Giornaliera": Repeatability.DAILY,
    "Settimanale": Repeatability.WEEKLY,
    "Mensile": Repeatability.MONTHLY,
    "Bimestrale": Repeatability.BIMONTHLY,
    "Semestrale": Repeatability.SEMIANNUAL,
    "Annuale": Repeatability.YEARLY,
}


class AccountType(str, Enum):
    """Kinds of account a user can hold money in."""
    BANK = "bank"
    CASH = "cash"
    CARD = "card"
    OTHER = "other"


LEGACY_ACCOUNT_TYPES = {
    "Banca": AccountType.BANK,
    "Contanti": AccountType.CASH,
    "Carta": AccountType.CARD,
    "Altro": AccountType.OTHER,
}


class TransactionKind(str, Enum):
    """
    Role an expense plays in recurrence.

    SIMPLE: a one-off expense.
    SOURCE: the template that materialization expands.
    INSTANCE: a concrete occurrence generated from a source.
    """
    SIMPLE = "simple"
    SOURCE = "source"
    INSTANCE = "instance"


class CategoryKind(str, Enum):
    """Which category list a category belongs to."""
    EXPENSE = "expense"
    INCOME = "income"


TRANSFER_CATEGORY_ID = "transfer"


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class LedgerRecord(BaseModel):
    """Base for every stored record: camelCase on disk, snake_case in code."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class Expense(LedgerRecord):
    """
    A money-out transaction.

    The same model carries all three roles (see TransactionKind):
    - simple expenses have repeatability NONE and no parent
    - recurring sources have is_recurring_source set and a repeatability
    - generated instances point back to their source via parent_expense_id

    Only sources carry last_processed_date.
    """

    id: str = Field(
        default_factory=new_id,
        description="Unique expense ID (immutable)"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount debited from the account"
    )
    account_id: str = Field(
        ...,
        min_length=1,
        description="Account the amount is debited from"
    )
    category_id: Optional[str] = None
    date: datetime.date = Field(
        ...,
        description="Date the expense is effective"
    )
    notes: str = ""
    repeatability: Repeatability = Repeatability.NONE
    is_recurring_source: bool = False
    parent_expense_id: Optional[str] = Field(
        default=None,
        description="Source this instance was generated from"
    )
    last_processed_date: Optional[datetime.date] = Field(
        default=None,
        description="Date through which the source has been materialized"
    )
    used_linked_card: Optional[bool] = None

    @field_validator("repeatability", mode="before")
    @classmethod
    def normalize_repeatability(cls, v):
        return Repeatability.parse(v)

    @property
    def kind(self) -> TransactionKind:
        """Classify the expense; a record claiming two roles is not a source."""
        if self.parent_expense_id:
            return TransactionKind.INSTANCE
        if self.is_recurring_source and self.repeatability != Repeatability.NONE:
            return TransactionKind.SOURCE
        return TransactionKind.SIMPLE

    @property
    def is_recurring(self) -> bool:
        return self.repeatability != Repeatability.NONE


class Income(LedgerRecord):
    """A money-in transaction, credited to an account."""

    id: str = Field(default_factory=new_id)
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount credited to the account"
    )
    account_id: str = Field(..., min_length=1)
    category_id: Optional[str] = None
    date: datetime.date
    notes: str = ""


class Account(LedgerRecord):
    """
    A place money lives (bank account, wallet, card).

    CRITICAL: balance is a cache of the ledger. It is only ever changed by
    ledger operations, never set independently of a transaction.
    """

    id: str = Field(default_factory=new_id)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Current balance (signed)"
    )
    type: AccountType = AccountType.BANK
    color: str = "#3B82F6"
    linked_card_name: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str) and v in LEGACY_ACCOUNT_TYPES:
            return LEGACY_ACCOUNT_TYPES[v]
        return v


class Category(LedgerRecord):
    """An expense or income category."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    icon: str = "generic"
    color: str = "#6B7280"


# =============================================================================
# DEFAULTS - what a fresh ledger starts with
# =============================================================================

def default_categories() -> list[Category]:
    return [
        Category(id="1", name="Spesa", icon="cart", color="#EF4444"),
        Category(id="2", name="Trasporti", icon="car", color="#EF4444"),
        Category(id="3", name="Casa", icon="house", color="#EF4444"),
        Category(id="4", name="Ristoranti", icon="fork.knife", color="#EF4444"),
        Category(id="5", name="Svago", icon="play.tv", color="#EF4444"),
        Category(id="6", name="Salute", icon="heart", color="#EF4444"),
    ]


def default_income_categories() -> list[Category]:
    return [
        Category(id="inc1", name="Stipendio", icon="briefcase", color="#10B981"),
        Category(id="inc2", name="Regalo", icon="gift", color="#8B5CF6"),
        Category(id="inc3", name="Rimborsi", icon="tag", color="#3B82F6"),
        Category(id="inc4", name="Altro", icon="generic", color="#6B7280"),
    ]


def default_accounts() -> list[Account]:
    return [
        Account(id="acc1", name="Conto Corrente", type=AccountType.BANK, color="#3B82F6"),
        Account(id="acc4", name="Portafoglio", type=AccountType.CASH, color="#F59E0B"),
    ]


# =============================================================================
# SNAPSHOTS AND RESULTS
# =============================================================================

class LedgerSnapshot(BaseModel):
    """
    The complete persisted state of the ledger.

    DESIGN DECISION: State is always read and written as a whole snapshot.
    Readers never observe half of a batch of changes.
    """

    expenses: list[Expense] = Field(default_factory=list)
    incomes: list[Income] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    income_categories: list[Category] = Field(default_factory=list)

    @classmethod
    def with_defaults(cls) -> "LedgerSnapshot":
        """A fresh ledger seeded with the default accounts and categories."""
        return cls(
            accounts=default_accounts(),
            categories=default_categories(),
            income_categories=default_income_categories(),
        )


class MaterializationResult(BaseModel):
    """
    Output of one materialization run.

    transactions and accounts are complete new lists; the caller swaps them
    in and persists them only if changed is True.
    """

    transactions: list[Expense] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)
    changed: bool = False

    # Details for logging and for the host to report
    created: list[Expense] = Field(
        default_factory=list,
        description="Instances generated by this run, in generation order"
    )
    skipped_balance_updates: list[str] = Field(
        default_factory=list,
        description="Instance IDs whose account no longer exists"
    )
    backfilled: list[str] = Field(
        default_factory=list,
        description="Source IDs whose missing last processed date was filled in"
    )
    sources_processed: int = Field(default=0, ge=0)

    @property
    def created_count(self) -> int:
        return len(self.created)
