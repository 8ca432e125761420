"""
DataFrameQueryExecutor - Query executor over CSV records loaded with pandas.

Applies the query projection of a screen: equality, membership and date-range
criteria, case-insensitive text search, sorting and pagination.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from cascade_filters.models import PaginatedResult, QueryExecutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Criterion:
    """How one query key filters one column."""
    column: str
    op: str  # "eq", "in", "gte", "lte"


@dataclass(frozen=True)
class QueryMapping:
    """Query-key to column mapping for one screen."""
    criteria: Dict[str, Criterion]
    text_columns: Tuple[str, ...]
    date_columns: Tuple[str, ...]
    breakdown_column: Optional[str] = None


QUERY_MAPPINGS: Dict[str, QueryMapping] = {
    "accounts": QueryMapping(
        criteria={
            "assignedUserIds": Criterion("assignedUserId", "in"),
            "countryId": Criterion("countryId", "eq"),
            "cityIds": Criterion("cityId", "in"),
            "segmentIds": Criterion("segmentId", "in"),
            "accountTypeIds": Criterion("accountTypeId", "in"),
            "channelIds": Criterion("channelId", "in"),
            "createdAtStart": Criterion("createdAt", "gte"),
            "createdAtEnd": Criterion("createdAt", "lte"),
        },
        text_columns=("name", "email", "phone"),
        date_columns=("createdAt", "updatedAt"),
        breakdown_column="countryId"
    ),
    "reservations": QueryMapping(
        criteria={
            "statusIds": Criterion("statusId", "in"),
            "accountIds": Criterion("accountId", "in"),
            "typeIds": Criterion("typeId", "in"),
            "transactionDateStart": Criterion("transactionDate", "gte"),
            "transactionDateEnd": Criterion("transactionDate", "lte"),
        },
        text_columns=("code", "accountName", "note"),
        date_columns=("transactionDate", "createdAt"),
        breakdown_column="statusId"
    ),
}


class DataFrameQueryExecutor:
    """Runs screen query projections against a DataFrame."""

    def __init__(self, records: pd.DataFrame, mapping: QueryMapping, latency_ms: int = 0):
        self.mapping = mapping
        self.latency_ms = latency_ms
        self.records = records.copy()
        for column in mapping.date_columns:
            if column in self.records.columns:
                self.records[column] = pd.to_datetime(self.records[column])

    @classmethod
    def for_screen(cls, screen_name: str, csv_path: Path, latency_ms: int = 0) -> 'DataFrameQueryExecutor':
        """Load a screen's records from CSV (ids kept as strings)."""
        if screen_name not in QUERY_MAPPINGS:
            raise ValueError(f"No query mapping for screen: {screen_name}")
        records = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
        logger.info(f"Loaded {len(records)} {screen_name} records from {csv_path}")
        return cls(records, QUERY_MAPPINGS[screen_name], latency_ms=latency_ms)

    # ============================================================================
    # Query Execution
    # ============================================================================

    async def run_query(self, query: Dict[str, Any]) -> PaginatedResult:
        """
        Run a query projection.

        Raises:
            QueryExecutionError: If the query cannot be applied to the records
        """
        if self.latency_ms:
            await asyncio.sleep(self.latency_ms / 1000)

        try:
            filtered = self.filter_records(query)
            filtered = self._sort(filtered, query.get("orderBy"), query.get("orderDirection"))

            page_size = int(query.get("pageSize") or 10)
            page_index = int(query.get("pageIndex") or 0)
            item_count = len(filtered)
            page_count = math.ceil(item_count / page_size) if item_count else 0

            start = page_index * page_size
            page = filtered.iloc[start:start + page_size]
            items = self._to_items(page)
        except QueryExecutionError:
            raise
        except Exception as e:
            logger.error(f"Query failed: {e}")
            raise QueryExecutionError(f"Query failed: {e}") from e

        logger.debug(f"Query matched {item_count} records, returning page {page_index} ({len(items)} items)")
        return PaginatedResult(
            items=items,
            item_count=item_count,
            page_count=page_count,
            page_index=page_index,
            page_size=page_size
        )

    def filter_records(self, query: Dict[str, Any]) -> pd.DataFrame:
        """Records matching every criterion of the query (unsorted, unpaginated)."""
        df = self.records
        mask = pd.Series(True, index=df.index)

        for key, criterion in self.mapping.criteria.items():
            value = query.get(key)
            if value is None or value == [] or value == "":
                continue
            if criterion.column not in df.columns:
                raise QueryExecutionError(f"Unknown column {criterion.column} for {key}")

            column = df[criterion.column]
            if criterion.op == "eq":
                mask &= column == value
            elif criterion.op == "in":
                mask &= column.isin(list(value))
            elif criterion.op == "gte":
                mask &= column >= pd.Timestamp(value)
            elif criterion.op == "lte":
                # Inclusive end date
                mask &= column < pd.Timestamp(value) + pd.Timedelta(days=1)
            else:
                raise QueryExecutionError(f"Unsupported operator: {criterion.op}")

        text = (query.get("text") or "").strip()
        if text:
            text_mask = pd.Series(False, index=df.index)
            for column in self.mapping.text_columns:
                if column in df.columns:
                    text_mask |= df[column].astype(str).str.contains(text, case=False, regex=False)
            mask &= text_mask

        return df[mask]

    def breakdown(self, query: Dict[str, Any], column: Optional[str] = None) -> pd.DataFrame:
        """Record counts per value of a column over the filtered records."""
        column = column or self.mapping.breakdown_column
        filtered = self.filter_records(query)
        if column is None or column not in filtered.columns or filtered.empty:
            return pd.DataFrame(columns=[column or "value", "count"])
        counts = filtered[column].value_counts().reset_index()
        counts.columns = [column, "count"]
        return counts

    def _sort(self, df: pd.DataFrame, order_by: Optional[str], direction: Optional[str]) -> pd.DataFrame:
        if not order_by or order_by not in df.columns:
            return df
        ascending = (direction or "DESC").upper() == "ASC"
        return df.sort_values(order_by, ascending=ascending, kind="mergesort")

    def _to_items(self, page: pd.DataFrame) -> List[Dict[str, Any]]:
        page = page.copy()
        for column in self.mapping.date_columns:
            if column in page.columns:
                page[column] = page[column].dt.strftime("%Y-%m-%d")
        return page.to_dict(orient="records")
