"""Cell encoding (export) and lenient cell coercion (import).

Encoding maps a datastore value to what openpyxl should write.  Coercion
maps whatever openpyxl reads back to the field's semantic type, falling
back to a default (0, 0.0, False, "now") when a cell cannot be read.  A
fallback is reported to the caller rather than hidden.
"""

from datetime import datetime
from typing import Any

from .models import FieldType

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class CoercionFailed(ValueError):
    """Raised by a coercer when it had to substitute a default value."""

    def __init__(self, default: Any) -> None:
        super().__init__(f"defaulted to {default!r}")
        self.default = default


# ------------------------------------------------------------------
# Encoding
# ------------------------------------------------------------------


def _parse_stored_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        # epoch milliseconds
        try:
            return datetime.fromtimestamp(value / 1000)
        except (OverflowError, OSError) as e:
            raise ValueError(f"epoch millis {value} out of range: {e}") from e
    return datetime.fromisoformat(str(value))


def encode_cell(value: Any, field_type: FieldType) -> Any:
    """Encode a datastore value for writing to a sheet cell.

    Raises:
        ValueError: If a stored value cannot be represented as its field type.
    """
    if field_type is FieldType.TEXT:
        return "" if value is None else str(value)
    if field_type is FieldType.INTEGER:
        return 0 if value is None else int(value)
    if field_type is FieldType.REAL:
        return 0.0 if value is None else float(value)
    if field_type is FieldType.BOOLEAN:
        return bool(value)
    ts = _parse_stored_timestamp(value)
    return "" if ts is None else ts.strftime(TIMESTAMP_FORMAT)


# ------------------------------------------------------------------
# Coercion
# ------------------------------------------------------------------


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.strftime(TIMESTAMP_FORMAT)
    return str(value).strip()


def coerce_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    if _is_blank(value):
        raise CoercionFailed(0)
    try:
        return int(str(value).replace(",", "").strip())
    except ValueError:
        raise CoercionFailed(0) from None


def coerce_real(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if _is_blank(value):
        raise CoercionFailed(0.0)
    try:
        return float(str(value).replace(",", "").strip())
    except ValueError:
        raise CoercionFailed(0.0) from None


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = "" if value is None else str(value).strip().lower()
    if text == "true":
        return True
    if text == "false":
        return False
    raise CoercionFailed(False)


def coerce_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not _is_blank(value) and isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), TIMESTAMP_FORMAT)
        except ValueError:
            pass
    raise CoercionFailed(datetime.now().replace(microsecond=0))


_COERCERS = {
    FieldType.TEXT: coerce_text,
    FieldType.INTEGER: coerce_int,
    FieldType.REAL: coerce_real,
    FieldType.BOOLEAN: coerce_bool,
    FieldType.TIMESTAMP: coerce_timestamp,
}


def coerce_cell(value: Any, field_type: FieldType) -> Any:
    """Coerce a raw cell value to ``field_type``.

    Raises:
        CoercionFailed: If the value is unreadable; ``exc.default`` holds
            the substitute value the caller should store.
    """
    return _COERCERS[field_type](value)
