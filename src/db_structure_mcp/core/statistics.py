"""Row count, size and overhead figures for the table listing."""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from db_structure_mcp.models.table import (
    EngineFamily,
    ListingSummary,
    TableDescriptor,
    TableListing,
    TableStatistics,
)
from db_structure_mcp.utils.formatting import format_size

if TYPE_CHECKING:
    from db_structure_mcp.core.executor import StatementExecutor

logger = logging.getLogger(__name__)

# Keys are upper-cased engine names as reported by information_schema
ENGINE_FAMILIES: dict[str, EngineFamily] = {
    # Row count, data size and index size are accurate
    "MYISAM": EngineFamily.EXACT,
    "ISAM": EngineFamily.EXACT,
    "HEAP": EngineFamily.EXACT,
    "MEMORY": EngineFamily.EXACT,
    "ARCHIVE": EngineFamily.EXACT,
    "ARIA": EngineFamily.EXACT,
    "MARIA": EngineFamily.EXACT,
    # Row count is an estimate, data and index sizes are accurate
    "INNODB": EngineFamily.APPROXIMATE_ROW_COUNT,
    "PBMS": EngineFamily.APPROXIMATE_ROW_COUNT,
    "TOKUDB": EngineFamily.APPROXIMATE_ROW_COUNT,
    # Only the row count is accurate
    "MRG_MYISAM": EngineFamily.ROW_COUNT_ONLY,
    "MERGE": EngineFamily.ROW_COUNT_ONLY,
    "BERKELEYDB": EngineFamily.ROW_COUNT_ONLY,
    # Some servers report views with this engine
    "SYSTEM VIEW": EngineFamily.VIEW,
}

VIEW_ROW_COUNT_HINT = "This view has at least this number of rows."


def engine_family(engine: Optional[str]) -> EngineFamily:
    """Accuracy family of a storage engine (NULL engines are views)."""
    if engine is None:
        return EngineFamily.VIEW
    return ENGINE_FAMILIES.get(engine.upper(), EngineFamily.UNKNOWN)


def earliest(current: Optional[datetime], candidate: Optional[datetime]) -> Optional[datetime]:
    if candidate is None:
        return current
    if current is None or candidate < current:
        return candidate
    return current


PolicyResult = tuple[TableDescriptor, dict[str, Any]]


class StatisticsAggregator:
    """
    Computes per-table statistics with engine-specific accuracy rules.

    Each engine family has its own policy deciding where the row count comes
    from and whether the size can be shown. Adding an engine means adding it
    to ``ENGINE_FAMILIES``.
    """

    def __init__(
        self,
        executor: "StatementExecutor",
        max_exact_count: int = 50000,
        max_exact_count_views: int = 0,
    ):
        """
        Initialize statistics aggregator.

        Args:
            executor: Statement executor used for live row counts
            max_exact_count: Below this estimate, approximate engines are counted exactly
            max_exact_count_views: Cap for counting rows of views (0 skips counting)
        """
        self.executor = executor
        self.max_exact_count = max_exact_count
        self.max_exact_count_views = max_exact_count_views
        self._policies: dict[
            EngineFamily, Callable[[str, TableDescriptor, bool], Awaitable[PolicyResult]]
        ] = {
            EngineFamily.EXACT: self._exact_policy,
            EngineFamily.APPROXIMATE_ROW_COUNT: self._approximate_policy,
            EngineFamily.ROW_COUNT_ONLY: self._row_count_only_policy,
            EngineFamily.VIEW: self._view_policy,
            EngineFamily.UNKNOWN: self._unknown_policy,
        }

    async def build_listing(self, database: str) -> TableListing:
        """
        Read dictionary metadata and annotate every table of a database.

        Args:
            database: Database name

        Returns:
            Listing with per-table statistics and totals
        """
        descriptors = await self.executor.get_table_descriptors(database)
        return await self.aggregate(database, descriptors)

    async def aggregate(
        self, database: str, descriptors: list[TableDescriptor]
    ) -> TableListing:
        """
        Annotate descriptors and accumulate the totals row.

        Args:
            database: Database the descriptors belong to
            descriptors: Dictionary metadata, one per table or view

        Returns:
            Listing with per-table statistics and totals
        """
        system_schema = self.executor.adapter.is_system_schema(database)
        summary = ListingSummary(num_tables=len(descriptors))
        tables = []

        for descriptor in descriptors:
            stats = await self.table_statistics(database, descriptor, system_schema)
            tables.append(stats)

            if stats.size_bytes is not None and stats.engine_family in (
                EngineFamily.EXACT,
                EngineFamily.APPROXIMATE_ROW_COUNT,
            ):
                summary.sum_size += stats.size_bytes
            if stats.overhead_bytes:
                summary.overhead_size += stats.overhead_bytes
            if not descriptor.is_merge and stats.row_count:
                summary.sum_entries += stats.row_count

            summary.create_time = earliest(summary.create_time, stats.create_time)
            summary.update_time = earliest(summary.update_time, stats.update_time)
            summary.check_time = earliest(summary.check_time, stats.check_time)
            summary.approx_rows = summary.approx_rows or stats.is_approximate

        summary.formatted_sum_size, summary.sum_size_unit = format_size(summary.sum_size)
        if summary.overhead_size > 0:
            summary.formatted_overhead, summary.overhead_unit = format_size(
                summary.overhead_size
            )

        logger.debug(
            f"Listed {len(tables)} object(s) in {database}: "
            f"{summary.sum_entries} rows, {summary.sum_size} bytes"
        )
        return TableListing(
            database=database,
            is_system_schema=system_schema,
            tables=tables,
            summary=summary,
        )

    async def real_row_counts(
        self, database: str, table: Optional[str] = None
    ) -> dict[str, int]:
        """
        Live row counts, bypassing estimates and the cache.

        Args:
            database: Database name
            table: Single table to count; every object when omitted

        Returns:
            Mapping of object name to exact row count
        """
        if table is not None:
            names = [table]
        else:
            names = [d.name for d in await self.executor.get_table_descriptors(database)]

        counts = {}
        for name in names:
            counts[name] = await self.executor.count_rows_exact(
                database, name, use_cache=False
            )
        return counts

    async def table_statistics(
        self, database: str, descriptor: TableDescriptor, system_schema: bool = False
    ) -> TableStatistics:
        """
        Statistics of one table or view.

        Args:
            database: Database name
            descriptor: Dictionary metadata of the object
            system_schema: Whether the database is a server system schema

        Returns:
            Displayed row count, size and overhead
        """
        family = engine_family(descriptor.engine)
        policy = self._policies[family]
        descriptor, figures = await policy(database, descriptor, system_schema)

        is_view = descriptor.is_view
        hint = None
        if is_view:
            descriptor, hint = await self._count_view(database, descriptor)

        is_approximate = hint is not None
        if descriptor.rows is not None and (descriptor.engine is not None or is_view):
            if (
                not is_view
                and family is EngineFamily.APPROXIMATE_ROW_COUNT
                and not descriptor.counted
            ):
                is_approximate = True

        return TableStatistics(
            name=descriptor.name,
            engine=descriptor.engine,
            engine_family=family,
            is_view=is_view,
            row_count=descriptor.rows,
            counted=descriptor.counted,
            is_approximate=is_approximate,
            row_count_hint=hint,
            collation=descriptor.collation,
            comment=descriptor.comment,
            create_time=descriptor.create_time,
            update_time=descriptor.update_time,
            check_time=descriptor.check_time,
            **figures,
        )

    def _size_figures(self, descriptor: TableDescriptor) -> dict[str, Any]:
        size = descriptor.data_length + descriptor.index_length
        formatted_size, unit = format_size(size)
        return {"size_bytes": size, "formatted_size": formatted_size, "unit": unit}

    async def _exact_policy(
        self, database: str, descriptor: TableDescriptor, system_schema: bool
    ) -> PolicyResult:
        if system_schema:
            rows = await self.executor.count_rows_exact(database, descriptor.name)
            descriptor = descriptor.model_copy(update={"rows": rows})

        figures = self._size_figures(descriptor)
        if descriptor.data_free is not None and descriptor.data_free > 0:
            formatted_overhead, overhead_unit = format_size(descriptor.data_free)
            figures.update(
                overhead_bytes=descriptor.data_free,
                formatted_overhead=formatted_overhead,
                overhead_unit=overhead_unit,
            )
        return descriptor, figures

    async def _approximate_policy(
        self, database: str, descriptor: TableDescriptor, system_schema: bool
    ) -> PolicyResult:
        if descriptor.rows is None or descriptor.rows < self.max_exact_count:
            rows = await self.executor.count_rows_exact(database, descriptor.name)
            descriptor = descriptor.model_copy(update={"rows": rows, "counted": True})
        else:
            descriptor = descriptor.model_copy(update={"counted": False})

        return descriptor, self._size_figures(descriptor)

    async def _row_count_only_policy(
        self, database: str, descriptor: TableDescriptor, system_schema: bool
    ) -> PolicyResult:
        return descriptor, {"formatted_size": "-", "unit": ""}

    async def _view_policy(
        self, database: str, descriptor: TableDescriptor, system_schema: bool
    ) -> PolicyResult:
        # NULL engine also marks tables in need of repair; counted below when a view
        return descriptor, {"formatted_size": "-", "unit": ""}

    async def _unknown_policy(
        self, database: str, descriptor: TableDescriptor, system_schema: bool
    ) -> PolicyResult:
        return descriptor, {"formatted_size": "unknown", "unit": ""}

    async def _count_view(
        self, database: str, descriptor: TableDescriptor
    ) -> tuple[TableDescriptor, Optional[str]]:
        """Bounded row count of a view, with a hint when the bound was hit."""
        if self.max_exact_count_views <= 0:
            # Counting is disabled for views; complex views can be very slow
            return descriptor.model_copy(update={"rows": None}), None

        count, at_cap = await self.executor.count_rows_bounded(
            database, descriptor.name, self.max_exact_count_views
        )
        descriptor = descriptor.model_copy(update={"rows": count})
        return descriptor, VIEW_ROW_COUNT_HINT if at_cap else None
