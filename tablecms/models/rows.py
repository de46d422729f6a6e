"""Row payloads"""
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class RowColumn(BaseModel):
    """One cell of an insert/update payload.

    With ``is_db_expression`` the value names a database expression such as
    ``now()`` instead of a literal.
    """
    name: str
    value: Any = None
    is_db_expression: bool = False


class Filter(BaseModel):
    """Single ``name = value`` predicate"""
    name: str
    value: Any = None


class ContentRequest(BaseModel):
    """Body shared by row select/insert/update/delete"""
    table: str
    # None selects '*'
    columns: Optional[List[RowColumn]] = None
    # NOTE: one column only
    filters: Optional[Filter] = None
    limit: Optional[int] = Field(default=None, ge=0)
    # Comma separated column/s
    order_by: Optional[str] = None
    # asc | desc, asc by default
    order: Optional[str] = None

    def column_names(self) -> Optional[List[str]]:
        if self.columns is None:
            return None
        return [c.name for c in self.columns]


class UpdateResult(BaseModel):
    rows_affected: int
