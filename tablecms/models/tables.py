"""Table and column payloads"""
import enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class ColumnDescriptor(BaseModel):
    """One column of a table-creation request"""
    name: str
    data_type: str
    is_nullable: bool = True
    is_primary_key: bool = False
    is_unique: bool = False
    # Omitted means "no default"; an explicit null means DEFAULT NULL.
    default: Any = None

    @property
    def has_default(self) -> bool:
        return "default" in self.model_fields_set


class ColumnState(str, enum.Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"


class ColumnEdit(ColumnDescriptor):
    """A column plus what happened to it in the editor"""
    # Removed/unchanged columns only need a name
    data_type: str = ""
    state: ColumnState


class CreateTableRequest(BaseModel):
    name: str
    columns: List[ColumnDescriptor] = Field(..., min_length=1)


class EditTableRequest(BaseModel):
    # The path parameter names the table; the body name is informational.
    name: Optional[str] = None
    columns: List[ColumnEdit] = Field(default_factory=list)


class TableColumnInfo(BaseModel):
    """Column metadata from information_schema.columns"""
    table_name: str
    column_name: str
    column_default: Optional[str] = None
    data_type: str
    is_nullable: str
    character_maximum_length: Optional[int] = None


class TableColumnInfoPk(TableColumnInfo):
    is_primary_key: bool = False
