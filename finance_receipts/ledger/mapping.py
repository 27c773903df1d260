"""Mapping between ledger models and backend table rows.

The backend stores rows with Portuguese snake_case column names. Rows are
validated into models when read, so malformed rows fail here rather than
deep inside a summary.
"""

from datetime import date as Date
from typing import Any

from pydantic import BaseModel

from finance_receipts.extraction.receipt_extractor import ExtractedReceipt
from finance_receipts.utils.logger import get_logger
from finance_receipts.workflow.uploader import UploadResult

from .models import Account, Category, Entry, EntryKind

logger = get_logger(__name__)

Row = dict[str, Any]

CATEGORY_COLUMNS: dict[str, str] = {
    "id": "id",
    "name": "nome",
    "kind": "tipo",
    "description": "descricao",
}

ACCOUNT_COLUMNS: dict[str, str] = {
    "id": "id",
    "name": "nome",
    "kind": "tipo",
    "institution": "instituicao",
    "opening_balance": "saldo_inicial",
}

ENTRY_COLUMNS: dict[str, str] = {
    "id": "id",
    "date": "data",
    "description": "descricao",
    "category_id": "categoria_id",
    "account_id": "conta_id",
    "amount": "valor",
    "kind": "tipo",
    "month": "mes",
    "year": "ano",
    "notes": "observacoes",
    "receipt_url": "comprovante_url",
    "receipt_ocr_text": "comprovante_texto_ocr",
}

_COLUMNS_BY_MODEL: dict[type[BaseModel], dict[str, str]] = {
    Category: CATEGORY_COLUMNS,
    Account: ACCOUNT_COLUMNS,
    Entry: ENTRY_COLUMNS,
}


def _from_row(model: type[BaseModel], row: Row) -> Any:
    columns = _COLUMNS_BY_MODEL[model]
    data = {field: row[column] for field, column in columns.items() if column in row}
    return model.model_validate(data)


def _to_row(instance: BaseModel) -> Row:
    columns = _COLUMNS_BY_MODEL[type(instance)]
    data = instance.model_dump(mode="json", exclude={"id"})
    return {columns[field]: value for field, value in data.items()}


def category_from_row(row: Row) -> Category:
    return _from_row(Category, row)


def category_to_row(category: Category) -> Row:
    return _to_row(category)


def account_from_row(row: Row) -> Account:
    return _from_row(Account, row)


def account_to_row(account: Account) -> Row:
    return _to_row(account)


def entry_from_row(row: Row) -> Entry:
    return _from_row(Entry, row)


def entry_to_row(entry: Entry) -> Row:
    return _to_row(entry)


def changes_to_row(model: type[BaseModel], changes: dict[str, Any]) -> Row:
    """Rename a partial update's fields to backend columns.

    Raises:
        ValueError: If a field does not exist on the model.
    """
    columns = _COLUMNS_BY_MODEL[model]
    unknown = set(changes) - set(columns)
    if unknown:
        raise ValueError(f"Unknown {model.__name__} fields: {sorted(unknown)}")
    return {columns[field]: value for field, value in changes.items()}


def _receipt_date(receipt: ExtractedReceipt, today: Date) -> Date:
    if receipt.date is None:
        return today
    try:
        return Date.fromisoformat(receipt.date)
    except ValueError:
        logger.warning("Ignoring invalid receipt date %s", receipt.date)
        return today


def entry_from_receipt(
    receipt: ExtractedReceipt,
    account_id: str,
    category_id: str,
    upload: UploadResult | None = None,
    today: Date | None = None,
) -> Entry:
    """Draft an expense entry from an extracted receipt.

    Args:
        receipt: Extraction result; a missing amount drafts a zero expense.
        account_id: Account the expense is booked against.
        category_id: Expense category.
        upload: Stored receipt image, linked when present.
        today: Fallback date when the receipt has no valid date.

    Returns:
        An unsaved entry (``id`` is ``None``).
    """
    entry_date = _receipt_date(receipt, today or Date.today())
    amount = -(receipt.amount or 0)
    return Entry(
        date=entry_date,
        description=receipt.merchant or "Comprovante",
        category_id=category_id,
        account_id=account_id,
        amount=amount,
        kind=EntryKind.EXPENSE,
        month=entry_date.month,
        year=entry_date.year,
        receipt_url=upload.url if upload else None,
        receipt_ocr_text=receipt.raw_text or None,
    )
