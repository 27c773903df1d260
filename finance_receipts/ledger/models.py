"""Ledger entities: categories, accounts and income/expense entries."""

from datetime import date as Date
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, Field


class EntryKind(StrEnum):
    """Whether a category or entry is income or expense."""

    INCOME = "Receita"
    EXPENSE = "Despesa"


class AccountKind(StrEnum):
    """Kinds of account an entry can be booked against."""

    CHECKING = "Conta Corrente"
    SAVINGS = "Conta Poupança"
    CREDIT_CARD = "Cartão de Crédito"
    CASH = "Dinheiro"
    DIGITAL_WALLET = "Carteira Digital"
    INVESTMENT = "Investimento"


class Category(BaseModel):
    id: str
    name: str
    kind: EntryKind
    description: str | None = None


class Account(BaseModel):
    id: str
    name: str
    kind: AccountKind
    institution: str
    opening_balance: Decimal = Decimal("0")


class Entry(BaseModel):
    """A single income (positive amount) or expense (negative amount)."""

    id: str | None = None
    date: Date
    description: str
    category_id: str
    account_id: str
    amount: Decimal
    kind: EntryKind
    month: int = Field(ge=1, le=12)
    year: int
    notes: str | None = None
    receipt_url: str | None = None
    receipt_ocr_text: str | None = None
