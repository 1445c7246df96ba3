from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import inspect


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


def row_to_dict(row: Any, include: Iterable[str] = ()) -> Optional[Dict[str, Any]]:
    """Column values of an ORM row, plus already-loaded relationships in ``include``.

    Columns are keyed by their database name, so ``Document.metadata_`` is
    returned as ``metadata``.
    """
    if row is None:
        return None

    mapper = inspect(row).mapper
    data = {attr.columns[0].name: _plain(getattr(row, attr.key)) for attr in mapper.column_attrs}

    for name in include:
        related = getattr(row, name)
        if isinstance(related, list):
            data[name] = [row_to_dict(item) for item in related]
        else:
            data[name] = row_to_dict(related)
    return data


def rows_to_dicts(rows: Iterable[Any]) -> List[Dict[str, Any]]:
    return [row_to_dict(row) for row in rows]
