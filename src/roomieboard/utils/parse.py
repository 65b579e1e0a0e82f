from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

DATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y", "%d/%m/%Y", "%d-%m-%Y")

_MENTION_RE = re.compile(r"@([A-Za-z0-9_]{3,32})")


def _grouped(whole: str, separator: str) -> bool:
    return re.fullmatch(rf"\d{{1,3}}(?:{re.escape(separator)}\d{{3}})+", whole) is not None


def _normalize_amount(cleaned: str) -> str:
    last_dot, last_comma = cleaned.rfind("."), cleaned.rfind(",")

    # both present: the rightmost one marks the decimals
    if last_dot >= 0 and last_comma >= 0:
        decimal_sep, group_sep = (".", ",") if last_dot > last_comma else (",", ".")
        whole, _, fraction = cleaned.rpartition(decimal_sep)
        if not _grouped(whole, group_sep):
            raise ValueError("Could not read the amount")
        return whole.replace(group_sep, "") + "." + fraction

    if last_comma >= 0:
        if _grouped(cleaned, ","):
            return cleaned.replace(",", "")
        if cleaned.count(",") == 1:
            return cleaned.replace(",", ".")
        raise ValueError("Could not read the amount")

    if cleaned.count(".") > 1:
        if _grouped(cleaned, "."):
            return cleaned.replace(".", "")
        raise ValueError("Could not read the amount")

    return cleaned


def parse_amount(text: str) -> Decimal:
    """
    Parse a money amount typed by a roommate.

    Accepts an optional currency symbol and either ``.`` or ``,`` as the
    decimal separator. A comma followed by groups of exactly three digits
    is a thousands separator, and when both marks appear the last one holds
    the decimals: ``"1,200"`` -> ``1200``, ``"1.234,50"`` -> ``1234.50``,
    ``"$1 200,50"`` -> ``1200.50``. The amount must be positive.
    """
    cleaned = _normalize_amount(text.strip().lstrip("$€£").replace(" ", ""))

    try:
        amount = Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError("Could not read the amount") from exc

    if not amount.is_finite() or amount <= 0:
        raise ValueError("Amount must be a positive number")
    return amount


def parse_due_date(text: str) -> date:
    value = text.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError("Expected a date like 2025-12-20 or 20.12.2025")


def parse_mentions(text: str) -> list[str]:
    seen: list[str] = []
    for username in _MENTION_RE.findall(text):
        lowered = username.lower()
        if lowered not in seen:
            seen.append(lowered)
    return seen


def split_command(text: str, maxsplit: int = -1) -> list[str]:
    """``"/addchore Trash | 2025-12-20 | @bob"`` -> ``["Trash", "2025-12-20", "@bob"]``."""
    parts = text.split(maxsplit=1)
    if len(parts) < 2 or not parts[1].strip():
        return []
    return [part.strip() for part in parts[1].split("|", maxsplit)]
