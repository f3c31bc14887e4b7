# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Shared plumbing for the data-access layer.

Repository methods take an open ``Connection`` so that services can group a
lock, a read, a guard and a write into one transaction.
"""
import uuid
from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy.engine import Connection, Engine, Row


def new_id() -> str:
    return str(uuid.uuid4())


def row_to_dict(row: Optional[Row]) -> Optional[Dict[str, Any]]:
    return dict(row._mapping) if row is not None else None


def jsonable(value: Any) -> Any:
    """Make a snapshot safe for a JSON column (dates become ISO strings)."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    return value


class BaseRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    def transaction(self):
        """``with repo.transaction() as conn:`` commits on exit, rolls back on error."""
        return self._engine.begin()

    def connection(self) -> Connection:
        return self._engine.connect()
