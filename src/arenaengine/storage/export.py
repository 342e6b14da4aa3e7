"""Export the stake log to Parquet."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def export_stakes_to_parquet(
    conn: DuckDBPyConnection,
    output_path: str | Path,
    arena_id: str | None = None,
) -> int:
    """Export stakes to a Parquet file. Optional filter by arena_id. Returns row count."""
    path = Path(output_path).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    path_str = str(path).replace("'", "''")
    if arena_id:
        conn.execute(
            f"COPY (SELECT * FROM stakes WHERE arena_id = ? ORDER BY seq) TO '{path_str}' (FORMAT PARQUET)",
            [arena_id],
        )
        count = conn.execute("SELECT COUNT(*) FROM stakes WHERE arena_id = ?", [arena_id]).fetchone()[0]
    else:
        conn.execute(f"COPY (SELECT * FROM stakes ORDER BY seq) TO '{path_str}' (FORMAT PARQUET)")
        count = conn.execute("SELECT COUNT(*) FROM stakes").fetchone()[0]
    return count
