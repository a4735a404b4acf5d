# app/services/utils.py
from typing import Dict, TypeVar

from app.models.domain_models import Language

T = TypeVar("T")


def format_inr(value) -> str:
    """₹ with Indian digit grouping, e.g. 1234567 -> ₹12,34,567."""
    n = int(round(value or 0))
    sign = "-" if n < 0 else ""
    digits = str(abs(n))
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups + [tail])
    return f"{sign}₹{digits}"


def localized(table: Dict[Language, T], language) -> T:
    """Entry for the language, falling back to English."""
    lang = Language.coerce(language)
    return table.get(lang, table[Language.EN])
