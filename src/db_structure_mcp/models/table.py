"""Table dictionary metadata and listing statistics models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

VIEW_TABLE_TYPES = frozenset({"VIEW", "SYSTEM VIEW"})


class EngineFamily(str, Enum):
    """Accuracy family of a storage engine."""

    EXACT = "exact"
    APPROXIMATE_ROW_COUNT = "approximate_row_count"
    ROW_COUNT_ONLY = "row_count_only"
    VIEW = "view"
    UNKNOWN = "unknown"


class TableDescriptor(BaseModel):
    """One row of dictionary metadata for a table or view."""

    name: str = Field(..., description="Table or view name")
    engine: Optional[str] = Field(
        None, description="Storage engine (NULL or 'SYSTEM VIEW' for views)"
    )
    table_type: str = Field(
        default="BASE TABLE", description="BASE TABLE, VIEW, SYSTEM VIEW, ..."
    )
    rows: Optional[int] = Field(
        None, description="Row count reported by the dictionary (may be stale)"
    )
    data_length: int = Field(default=0, description="Data size in bytes")
    index_length: int = Field(default=0, description="Index size in bytes")
    data_free: Optional[int] = Field(None, description="Reclaimable bytes")
    collation: Optional[str] = Field(None, description="Table collation")
    comment: Optional[str] = Field(None, description="Table comment")
    create_time: Optional[datetime] = Field(None, description="Creation time")
    update_time: Optional[datetime] = Field(None, description="Last update time")
    check_time: Optional[datetime] = Field(None, description="Last check time")
    counted: bool = Field(
        default=False, description="Row count was just recomputed exactly"
    )

    @property
    def is_view(self) -> bool:
        """Whether the dictionary reports this object as a view."""
        return self.table_type in VIEW_TABLE_TYPES

    @property
    def is_merge(self) -> bool:
        """MERGE tables aggregate other tables and are left out of row totals."""
        return (self.engine or "").upper() in {"MERGE", "MRG_MYISAM"}


class TableStatistics(BaseModel):
    """Storage and row-count figures shown for one listing row."""

    name: str = Field(..., description="Table or view name")
    engine: Optional[str] = Field(None, description="Storage engine")
    engine_family: EngineFamily = Field(..., description="Engine accuracy family")
    is_view: bool = Field(default=False, description="Object is a view")
    row_count: Optional[int] = Field(None, description="Displayed row count")
    counted: bool = Field(
        default=False, description="Row count comes from a live exact count"
    )
    is_approximate: bool = Field(
        default=False, description="Row count should be shown as approximate"
    )
    row_count_hint: Optional[str] = Field(
        None, description="Explanation shown next to an approximate count"
    )
    size_bytes: Optional[int] = Field(
        None, description="Data plus index size, when trustworthy"
    )
    overhead_bytes: Optional[int] = Field(None, description="Reclaimable bytes")
    formatted_size: str = Field(default="-", description="Size for display")
    unit: str = Field(default="", description="Unit of formatted_size")
    formatted_overhead: str = Field(default="", description="Overhead for display")
    overhead_unit: str = Field(default="", description="Unit of formatted_overhead")
    collation: Optional[str] = Field(None, description="Table collation")
    comment: Optional[str] = Field(None, description="Table comment")
    create_time: Optional[datetime] = Field(None, description="Creation time")
    update_time: Optional[datetime] = Field(None, description="Last update time")
    check_time: Optional[datetime] = Field(None, description="Last check time")


class ListingSummary(BaseModel):
    """Totals row of a table listing."""

    num_tables: int = Field(..., description="Number of listed objects")
    sum_entries: int = Field(default=0, description="Sum of row counts")
    sum_size: int = Field(default=0, description="Sum of table sizes in bytes")
    overhead_size: int = Field(default=0, description="Sum of overhead in bytes")
    formatted_sum_size: str = Field(default="0", description="Sum size for display")
    sum_size_unit: str = Field(default="B", description="Unit of the sum size")
    formatted_overhead: str = Field(default="", description="Overhead for display")
    overhead_unit: str = Field(default="", description="Unit of the overhead")
    create_time: Optional[datetime] = Field(None, description="Earliest creation")
    update_time: Optional[datetime] = Field(None, description="Earliest update")
    check_time: Optional[datetime] = Field(None, description="Earliest check")
    approx_rows: bool = Field(
        default=False, description="At least one row count is approximate"
    )


class TableListing(BaseModel):
    """Annotated table listing for one database."""

    database: str = Field(..., description="Database name")
    is_system_schema: bool = Field(
        default=False, description="Database is a server system schema"
    )
    tables: list[TableStatistics] = Field(
        default_factory=list, description="One entry per listed object"
    )
    summary: ListingSummary = Field(..., description="Totals across the listing")

    @property
    def view_names(self) -> list[str]:
        """Names of the listed views."""
        return [t.name for t in self.tables if t.is_view]
