"""Receipt field extraction from OCR text.

Recovers the paid amount, the purchase date and the merchant name from
noisy recognized text. Each field is extracted independently and degrades
to ``None`` instead of raising, so one unreadable field never hides the
others.
"""

import re
from dataclasses import dataclass
from decimal import MAX_PREC, Context, Decimal, InvalidOperation

from finance_receipts.utils.logger import get_logger

from .rules import PatternRule, first_match

logger = get_logger(__name__)

MERCHANT_MAX_LENGTH = 50
MERCHANT_MIN_LENGTH = 4

# Wide enough that shifting any recognized amount to cents stays exact.
_WIDE_CONTEXT = Context(prec=MAX_PREC)


@dataclass(frozen=True)
class ExtractedReceipt:
    """Structured fields recovered from one receipt's text."""

    amount: Decimal | None
    date: str | None
    merchant: str | None
    raw_text: str

    @property
    def amount_minor_units(self) -> int | None:
        """Amount in integer cents."""
        if self.amount is None:
            return None
        return int(self.amount.scaleb(2, _WIDE_CONTEXT))

    def to_dict(self) -> dict[str, str | None]:
        return {
            "amount": str(self.amount) if self.amount is not None else None,
            "date": self.date,
            "merchant": self.merchant,
            "raw_text": self.raw_text,
        }


def parse_amount(raw: str) -> Decimal | None:
    """Parse an amount whose last three characters are a separator and cents.

    Every other ``.`` or ``,`` is a grouping separator and is dropped.
    """
    if len(raw) < 4 or raw[-3] not in ".,":
        return None
    digits = raw[:-3].replace(".", "").replace(",", "")
    try:
        return Decimal(f"{digits}.{raw[-2:]}")
    except InvalidOperation:
        return None


def _amount_from_match(match: re.Match[str]) -> Decimal | None:
    return parse_amount(match.group(1))


def _is_positive(value: Decimal) -> bool:
    return value.is_finite() and value > 0


def _date_from_match(match: re.Match[str]) -> str:
    first, middle, last = match.group(1), match.group(2), match.group(3)
    if len(first) == 4:
        return f"{first}-{middle}-{last}"
    return f"{last}-{middle}-{first}"


def _amount_rule(name: str, pattern: str, flags: int = 0) -> PatternRule[Decimal]:
    return PatternRule(
        name=name,
        pattern=re.compile(pattern, flags),
        normalize=_amount_from_match,
        validate=_is_positive,
    )


def _date_rule(name: str, pattern: str, flags: int = 0) -> PatternRule[str]:
    return PatternRule(
        name=name, pattern=re.compile(pattern, flags), normalize=_date_from_match
    )


# Brazilian receipts: R$ currency marker, "." groups thousands, "," for cents.
AMOUNT_RULES: list[PatternRule[Decimal]] = [
    _amount_rule("currency_grouped", r"R\$\s*(\d{1,3}(?:\.\d{3})*,\d{2})(?!\d)"),
    _amount_rule("currency_comma", r"R\$\s*(\d+,\d{2})(?!\d)"),
    _amount_rule("currency_dot", r"R\$\s*(\d+\.\d{2})(?!\d)"),
    _amount_rule(
        "total_label", r"TOTAL[:\s]+R?\$?\s*(\d+[.,]\d{2})(?!\d)", re.IGNORECASE
    ),
    _amount_rule(
        "valor_label", r"VALOR[:\s]+R?\$?\s*(\d+[.,]\d{2})(?!\d)", re.IGNORECASE
    ),
    _amount_rule("bare_grouped", r"(\d{1,3}(?:\.\d{3})*,\d{2})(?!\d)"),
]

DATE_RULES: list[PatternRule[str]] = [
    _date_rule("day_first", r"(?<!\d)(\d{2})[/\-](\d{2})[/\-](\d{4})(?!\d)"),
    _date_rule("year_first", r"(?<!\d)(\d{4})[/\-](\d{2})[/\-](\d{2})(?!\d)"),
    _date_rule(
        "data_label", r"DATA[:\s]+(\d{2})[/\-](\d{2})[/\-](\d{4})", re.IGNORECASE
    ),
]


class ReceiptExtractor:
    """Regex-rule extractor for receipt amount, date and merchant.

    Args:
        amount_rules: Ordered amount rules. Defaults to ``AMOUNT_RULES``.
        date_rules: Ordered date rules. Defaults to ``DATE_RULES``.
    """

    def __init__(
        self,
        amount_rules: list[PatternRule[Decimal]] | None = None,
        date_rules: list[PatternRule[str]] | None = None,
    ) -> None:
        self.amount_rules = amount_rules if amount_rules is not None else AMOUNT_RULES
        self.date_rules = date_rules if date_rules is not None else DATE_RULES

    def extract_amount(self, text: str) -> Decimal | None:
        """Extract the first strictly positive amount found by the rules."""
        found = first_match(self.amount_rules, text)
        if found is None:
            return None
        rule, value = found
        logger.debug("Amount %s matched by rule %s", value, rule.name)
        return value

    def extract_date(self, text: str) -> str | None:
        """Extract a date normalized to ``YYYY-MM-DD``.

        Calendar validity is not checked: ``31/02/2024`` yields
        ``2024-02-31``.
        """
        found = first_match(self.date_rules, text)
        if found is None:
            return None
        rule, value = found
        logger.debug("Date %s matched by rule %s", value, rule.name)
        return value

    def extract_merchant(self, text: str) -> str | None:
        """Use the first line longer than three characters as the merchant."""
        for line in text.split("\n"):
            stripped = line.strip()
            if len(stripped) >= MERCHANT_MIN_LENGTH:
                return stripped[:MERCHANT_MAX_LENGTH]
        return None

    def extract(self, text: str) -> ExtractedReceipt:
        """Extract every field from the text.

        Args:
            text: Raw OCR text, kept unmodified in the result.

        Returns:
            The extracted receipt; missing fields are ``None``.
        """
        receipt = ExtractedReceipt(
            amount=self.extract_amount(text),
            date=self.extract_date(text),
            merchant=self.extract_merchant(text),
            raw_text=text,
        )
        logger.info(
            "Receipt extraction: amount=%s date=%s merchant=%r",
            receipt.amount,
            receipt.date,
            receipt.merchant,
        )
        return receipt


_default_extractor = ReceiptExtractor()


def extract_amount(text: str) -> Decimal | None:
    return _default_extractor.extract_amount(text)


def extract_date(text: str) -> str | None:
    return _default_extractor.extract_date(text)


def extract_merchant(text: str) -> str | None:
    return _default_extractor.extract_merchant(text)


def extract(text: str) -> ExtractedReceipt:
    return _default_extractor.extract(text)
