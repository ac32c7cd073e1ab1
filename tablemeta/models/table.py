"""Introspected table, column and key models."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from tablemeta.core.utils import to_camel


class TableCoordinate(BaseModel):
    """Catalog/schema/table coordinate passed to every metadata query."""

    catalog: Optional[str] = None
    schema_name: Optional[str] = Field(default=None, alias="schema")
    table_name: str

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def qualified_name(self) -> str:
        """Dotted name for log messages."""
        return ".".join(p for p in (self.catalog, self.schema_name, self.table_name) if p)


class Column(BaseModel):
    """Represents one introspected column."""

    column_name: str
    sql_type: int
    sql_type_name: str
    column_size: int = 0
    decimal_digits: int = 0
    default_value: Optional[str] = None
    remark: Optional[str] = None
    nullable: bool
    is_primary_key: bool = False
    is_indexed: bool = False
    is_unique_indexed: bool = False
    is_auto_increment: bool = False

    model_config = ConfigDict(frozen=True)

    @computed_field
    @property
    def property_name(self) -> str:
        """Lower camel case attribute name for generated code."""
        return to_camel(self.column_name, upper_first=False)


class ForeignKey(BaseModel):
    """One column pair of a foreign key, as reported by the catalog."""

    pk_catalog: Optional[str] = None
    pk_schema: Optional[str] = None
    pk_table_name: str
    pk_column_name: Optional[str] = None
    fk_catalog: Optional[str] = None
    fk_schema: Optional[str] = None
    fk_table_name: str
    fk_column_name: str
    key_seq: int = 1
    fk_name: Optional[str] = None
    pk_name: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class TableDescriptor(BaseModel):
    """Represents a fully introspected table, ready for code generation.

    ``primary_key_columns`` and ``non_primary_key_columns`` partition
    ``columns``; both keep the catalog's column order.
    """

    table_name: str
    class_name: str
    catalog: Optional[str] = None
    schema_name: Optional[str] = Field(default=None, alias="schema")
    table_type: Optional[str] = None
    remark: str = ""
    columns: List[Column] = []
    primary_key_columns: List[Column] = []
    non_primary_key_columns: List[Column] = []
    primary_key_count: int = 0
    imported_keys: List[ForeignKey] = []
    exported_keys: List[ForeignKey] = []
    warnings: List[str] = []

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "table_name": "users",
                "class_name": "Users",
                "schema": "main",
                "table_type": "TABLE",
                "remark": "",
                "primary_key_count": 1,
                "warnings": []
            }
        }
    )

    @model_validator(mode="after")
    def _check_partition(self) -> "TableDescriptor":
        names = [c.column_name for c in self.columns]
        pk_names = [c.column_name for c in self.primary_key_columns]
        other_names = [c.column_name for c in self.non_primary_key_columns]

        if set(pk_names) & set(other_names):
            raise ValueError("primary and non-primary key columns overlap")
        if sorted(pk_names + other_names) != sorted(names):
            raise ValueError("key column groups do not partition the table columns")
        if self.primary_key_count != len(self.primary_key_columns):
            raise ValueError(
                f"primary_key_count is {self.primary_key_count} but "
                f"{len(self.primary_key_columns)} primary key columns are present"
            )
        return self

    def column(self, column_name: str) -> Optional[Column]:
        """Return a column by name, or None if the table has no such column."""
        for col in self.columns:
            if col.column_name == column_name:
                return col
        return None
