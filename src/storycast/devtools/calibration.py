from __future__ import annotations

import json
import logging
from pathlib import Path
from uuid import uuid4

from storycast.contracts import CalibrationRunRequest, CalibrationRunResult
from storycast.core import TieBreakSource, derive_seed, resolve_scoring_profile
from storycast.casting import AssignmentEngine, CandidatePool, CandidateScorer, StoryletLibrary, WorldSnapshot

logger = logging.getLogger(__name__)

_RUNS_DDL = """
CREATE TABLE IF NOT EXISTS dev_casting_runs (
    run_id VARCHAR PRIMARY KEY,
    storylet_id VARCHAR,
    choice_id VARCHAR,
    sample_count INTEGER,
    base_seed BIGINT,
    scoring_profile_id VARCHAR,
    success_rate DOUBLE,
    role_fill_rates_json VARCHAR,
    failure_distribution_json VARCHAR,
    persisted_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""

_WINNERS_DDL = """
CREATE TABLE IF NOT EXISTS dev_casting_winners (
    run_id VARCHAR NOT NULL,
    role_id VARCHAR NOT NULL,
    actor_id VARCHAR NOT NULL,
    win_count INTEGER NOT NULL,
    win_rate DOUBLE NOT NULL,
    PRIMARY KEY (run_id, role_id, actor_id)
)
"""


class CastingCalibrationService:
    """Dev-only seed sweep over one storylet and one candidate pool.

    Each sample re-derives the world seed, so the sweep shows how often exact
    ties flip winners and how often mandatory roles go uncast.
    """

    def __init__(self, *, library: StoryletLibrary, world: WorldSnapshot) -> None:
        self._library = library
        self._pool = CandidatePool.from_world(world)

    def run_batch(self, request: CalibrationRunRequest) -> CalibrationRunResult:
        if request.sample_count <= 0:
            raise ValueError("sample_count must be > 0")
        storylet = self._library.get(request.storylet_id)
        engine = AssignmentEngine(CandidateScorer(resolve_scoring_profile(request.scoring_profile_id)))

        successes = 0
        fills: dict[str, int] = {role.role_id: 0 for role in storylet.roles}
        winners: dict[str, dict[str, int]] = {}
        failures: dict[str, int] = {}
        for idx in range(request.sample_count):
            seed = derive_seed(request.base_seed, f"calibration:{idx}")
            outcome = engine.assign(
                storylet.roles,
                self._pool,
                TieBreakSource(seed, storylet.storylet_id, request.choice_id),
            )
            if outcome.failure is not None:
                for role_id in outcome.failure.role_ids:
                    failures[role_id] = failures.get(role_id, 0) + 1
                continue
            successes += 1
            for assignment in outcome.assignments:
                fills[assignment.role_id] += 1
                by_actor = winners.setdefault(assignment.role_id, {})
                by_actor[assignment.actor_id] = by_actor.get(assignment.actor_id, 0) + 1

        result = CalibrationRunResult(
            run_id=f"cal_{uuid4().hex[:12]}",
            storylet_id=storylet.storylet_id,
            choice_id=request.choice_id,
            sample_count=request.sample_count,
            base_seed=request.base_seed,
            scoring_profile_id=request.scoring_profile_id,
            success_rate=successes / request.sample_count,
            role_fill_rates={role_id: count / request.sample_count for role_id, count in fills.items()},
            winner_distribution=winners,
            failure_distribution=failures,
        )
        logger.info(
            "calibration %s: %s over %d samples, success_rate=%.3f",
            result.run_id,
            storylet.storylet_id,
            request.sample_count,
            result.success_rate,
        )
        return result

    def persist_result(self, result: CalibrationRunResult, duckdb_path: Path) -> None:
        try:
            import duckdb
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError("duckdb is required for calibration persistence") from exc

        duckdb_path.parent.mkdir(parents=True, exist_ok=True)
        with duckdb.connect(str(duckdb_path)) as conn:
            conn.execute(_RUNS_DDL)
            conn.execute(_WINNERS_DDL)
            conn.execute(
                """
                INSERT OR REPLACE INTO dev_casting_runs(
                    run_id, storylet_id, choice_id, sample_count, base_seed, scoring_profile_id,
                    success_rate, role_fill_rates_json, failure_distribution_json
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    result.run_id,
                    result.storylet_id,
                    result.choice_id,
                    result.sample_count,
                    result.base_seed,
                    result.scoring_profile_id,
                    result.success_rate,
                    json.dumps(result.role_fill_rates, sort_keys=True),
                    json.dumps(result.failure_distribution, sort_keys=True),
                ],
            )
            conn.execute("DELETE FROM dev_casting_winners WHERE run_id = ?", [result.run_id])
            rows = [
                (result.run_id, role_id, actor_id, count, count / result.sample_count)
                for role_id, by_actor in sorted(result.winner_distribution.items())
                for actor_id, count in sorted(by_actor.items())
            ]
            if rows:
                conn.executemany(
                    """
                    INSERT INTO dev_casting_winners(run_id, role_id, actor_id, win_count, win_rate)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    rows,
                )

    def export_reports(self, duckdb_path: Path, output_dir: Path) -> tuple[list[Path], dict[str, int]]:
        try:
            import duckdb
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError("duckdb is required for calibration export") from exc

        output_dir.mkdir(parents=True, exist_ok=True)
        outputs: list[Path] = []
        row_counts: dict[str, int] = {}
        with duckdb.connect(str(duckdb_path)) as conn:
            conn.execute(_RUNS_DDL)
            conn.execute(_WINNERS_DDL)
            for table in ("dev_casting_runs", "dev_casting_winners"):
                count_row = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
                row_counts[table] = int(count_row[0]) if count_row is not None else 0
                csv_path = (output_dir / table).with_suffix(".csv")
                parquet_path = (output_dir / table).with_suffix(".parquet")
                conn.execute(f"COPY (SELECT * FROM {table}) TO '{csv_path.as_posix()}' (HEADER, DELIMITER ',')")
                conn.execute(f"COPY (SELECT * FROM {table}) TO '{parquet_path.as_posix()}' (FORMAT PARQUET)")
                outputs.extend([csv_path, parquet_path])
        return outputs, row_counts
