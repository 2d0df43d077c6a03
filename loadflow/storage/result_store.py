"""Load result storage layer."""

from typing import Optional
from datetime import datetime

from .database import Database, serialize_json, deserialize_json
from ..models import LoadResult

# Columns stored outside the metrics JSON blob (queried and sorted on).
_COLUMNS = (
    "id",
    "scenario_name",
    "total",
    "success",
    "failure",
    "time",
    "requests_per_second",
    "percentile_95_latency",
    "created_at",
)


class ResultStore:
    """
    Persistent storage for load results.

    Handles saving, lookups and per-scenario summaries of LoadResult objects.
    """

    def __init__(self, database: Database):
        self.db = database

    async def save(self, result: LoadResult) -> None:
        """Save a result (insert or update)."""
        data = result.model_dump(mode="json")
        metrics = {k: v for k, v in data.items() if k not in _COLUMNS}

        sql = """
        INSERT INTO load_results (
            id, scenario_name, total, success, failure, time,
            requests_per_second, percentile_95_latency, metrics, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            scenario_name = excluded.scenario_name,
            total = excluded.total,
            success = excluded.success,
            failure = excluded.failure,
            time = excluded.time,
            requests_per_second = excluded.requests_per_second,
            percentile_95_latency = excluded.percentile_95_latency,
            metrics = excluded.metrics
        """

        await self.db.execute(sql, (
            result.id,
            result.scenario_name,
            result.total,
            result.success,
            result.failure,
            result.time,
            result.requests_per_second,
            result.percentile_95_latency,
            serialize_json(metrics),
            result.created_at.isoformat(),
        ))

    async def get(self, result_id: str) -> Optional[LoadResult]:
        """Get a result by ID."""
        row = await self.db.fetch_one(
            "SELECT * FROM load_results WHERE id = ?",
            (result_id,)
        )
        if row:
            return self._row_to_result(row)
        return None

    async def delete(self, result_id: str) -> bool:
        """Delete a result by ID. Returns True if deleted."""
        cursor = await self.db.execute(
            "DELETE FROM load_results WHERE id = ?",
            (result_id,)
        )
        return cursor.rowcount > 0

    async def list_all(
        self,
        limit: int = 100,
        offset: int = 0,
        scenario: Optional[str] = None,
    ) -> list[LoadResult]:
        """List results, newest first, optionally for one scenario."""
        sql = "SELECT * FROM load_results"
        params = []

        if scenario:
            sql += " WHERE scenario_name = ?"
            params.append(scenario)

        sql += " ORDER BY created_at DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        rows = await self.db.fetch_all(sql, tuple(params))
        return [self._row_to_result(row) for row in rows]

    async def summary_by_scenario(self) -> dict[str, dict]:
        """Aggregate run counts and throughput per scenario."""
        rows = await self.db.fetch_all(
            """
            SELECT scenario_name,
                   COUNT(*) AS runs,
                   SUM(total) AS total,
                   SUM(failure) AS failure,
                   AVG(requests_per_second) AS avg_requests_per_second,
                   MAX(percentile_95_latency) AS max_percentile_95_latency
            FROM load_results
            GROUP BY scenario_name
            """
        )
        return {
            row["scenario_name"]: {k: v for k, v in row.items() if k != "scenario_name"}
            for row in rows
        }

    def _row_to_result(self, row: dict) -> LoadResult:
        """Convert a database row to a LoadResult object."""
        metrics = deserialize_json(row.get("metrics"), {})
        return LoadResult(
            id=row["id"],
            scenario_name=row["scenario_name"],
            total=row["total"],
            success=row["success"],
            failure=row["failure"],
            time=row["time"],
            requests_per_second=row["requests_per_second"],
            percentile_95_latency=row["percentile_95_latency"],
            created_at=datetime.fromisoformat(row["created_at"]),
            **metrics,
        )
