"""Value ↔ display string conversion for business-object field types.

Supported types: ``Text``, ``Number``, ``Currency``, ``Boolean``, ``Date``,
``Datetime``. Unknown type names are treated as ``Text``.

Formats per type:

=========  ============================  ==========================
Type       Format                        Example
=========  ============================  ==========================
Number     printf-style, default none    ``"%.2f"`` → ``"3.14"``
Currency   symbol, default ``"$"``       ``"$1,234.50"``
Boolean    ``"true|false"`` labels       ``"Yes|No"`` → ``"Yes"``
Date       strftime, ``%Y-%m-%d``        ``"2024-03-01"``
Datetime   strftime, ``%Y-%m-%d %H:%M:%S``
=========  ============================  ==========================
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

DEFAULT_DATE_FORMAT = "%Y-%m-%d"
DEFAULT_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_CURRENCY_SYMBOL = "$"

_TRUE_WORDS = frozenset({"1", "true", "yes", "y", "on", "t"})


class TypeManager:
    """Formats values for display and parses submitted strings back."""

    def value_to_string(self, type_name: str | None, fmt: str | None, value: Any) -> str:
        if value is None:
            return ""
        kind = (type_name or "Text").lower()

        if kind == "number":
            return fmt % value if fmt else str(value)
        if kind == "currency":
            symbol = fmt if fmt is not None else DEFAULT_CURRENCY_SYMBOL
            amount = Decimal(str(value))
            sign = "-" if amount < 0 else ""
            return f"{sign}{symbol}{abs(amount):,.2f}"
        if kind == "boolean":
            true_label, false_label = self._boolean_labels(fmt)
            return true_label if self._truthy(value) else false_label
        if kind == "date":
            if isinstance(value, str):
                return value
            return value.strftime(fmt or DEFAULT_DATE_FORMAT)
        if kind == "datetime":
            if isinstance(value, str):
                return value
            return value.strftime(fmt or DEFAULT_DATETIME_FORMAT)
        return str(value)

    def string_to_value(self, type_name: str | None, fmt: str | None, text: str | None) -> Any:
        """Parse a display string. Empty input is ``None`` for every type but ``Text``.

        Raises:
            ValueError: ``text`` does not parse as ``type_name``.
        """
        kind = (type_name or "Text").lower()
        if kind == "text":
            return "" if text is None else text
        if text is None or not text.strip():
            return None
        text = text.strip()

        if kind == "number":
            cleaned = text.replace(",", "")
            try:
                return int(cleaned)
            except ValueError:
                return float(cleaned)
        if kind == "currency":
            symbol = fmt if fmt is not None else DEFAULT_CURRENCY_SYMBOL
            cleaned = text.replace(symbol, "", 1) if symbol else text
            cleaned = cleaned.replace(",", "").replace(" ", "")
            try:
                return Decimal(cleaned)
            except InvalidOperation as exc:
                raise ValueError(f"Invalid currency value: {text!r}") from exc
        if kind == "boolean":
            true_label, _ = self._boolean_labels(fmt)
            return text == true_label or text.lower() in _TRUE_WORDS
        if kind == "date":
            return datetime.strptime(text, fmt or DEFAULT_DATE_FORMAT).date()
        if kind == "datetime":
            return datetime.strptime(text, fmt or DEFAULT_DATETIME_FORMAT)
        return text

    @staticmethod
    def _boolean_labels(fmt: str | None) -> tuple[str, str]:
        if fmt and "|" in fmt:
            true_label, false_label = fmt.split("|", 1)
            return true_label, false_label
        return "1", "0"

    @staticmethod
    def _truthy(value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in _TRUE_WORDS
        return bool(value)


__all__ = [
    "DEFAULT_DATE_FORMAT",
    "DEFAULT_DATETIME_FORMAT",
    "TypeManager",
]
