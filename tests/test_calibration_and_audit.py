from __future__ import annotations

from pathlib import Path

import duckdb
import pytest

from storycast.casting import StoryletLibrary
from storycast.contracts import CalibrationRunRequest
from storycast.devtools import CastingCalibrationService
from tests.helpers import bundled_library, sample_world, twin_rivals_payload, twin_rivals_world


def _twin_service() -> CastingCalibrationService:
    return CastingCalibrationService(library=StoryletLibrary.from_payload(twin_rivals_payload()), world=twin_rivals_world())


def test_seed_sweep_spreads_exact_ties_across_both_rivals() -> None:
    result = _twin_service().run_batch(CalibrationRunRequest("duel", "accept", sample_count=64, base_seed=11))

    assert result.success_rate == 1.0
    assert result.role_fill_rates == {"Challenger": 1.0}
    winners = result.winner_distribution["Challenger"]
    assert set(winners) == {"npc_a", "npc_b"}
    assert sum(winners.values()) == 64
    assert result.failure_distribution == {}


def test_seed_sweep_is_reproducible() -> None:
    request = CalibrationRunRequest("duel", "accept", sample_count=20, base_seed=3)
    first = _twin_service().run_batch(request)
    second = _twin_service().run_batch(request)
    assert first.winner_distribution == second.winner_distribution
    assert first.run_id != second.run_id


def test_seed_sweep_counts_mandatory_failures() -> None:
    service = CastingCalibrationService(library=bundled_library(), world=sample_world(include_rival=False))
    result = service.run_batch(CalibrationRunRequest("schoolyard_confrontation", "stand_ground", 5, base_seed=1))
    assert result.success_rate == 0.0
    assert result.failure_distribution == {"Antagonist": 5}
    assert result.role_fill_rates == {"Antagonist": 0.0, "Ally": 0.0}


def test_seed_sweep_rejects_bad_requests() -> None:
    service = _twin_service()
    with pytest.raises(ValueError):
        service.run_batch(CalibrationRunRequest("duel", "accept", sample_count=0, base_seed=1))
    with pytest.raises(ValueError):
        service.run_batch(CalibrationRunRequest("duel", "accept", sample_count=5, base_seed=1, scoring_profile_id="chaos"))


def test_calibration_persist_and_export(tmp_path: Path) -> None:
    service = _twin_service()
    result = service.run_batch(CalibrationRunRequest("duel", "accept", sample_count=32, base_seed=5))
    db_path = tmp_path / "dev" / "calibration.duckdb"
    service.persist_result(result, db_path)
    service.persist_result(result, db_path)

    with duckdb.connect(str(db_path)) as conn:
        runs = conn.execute("SELECT run_id, success_rate FROM dev_casting_runs").fetchall()
        wins = conn.execute("SELECT SUM(win_count) FROM dev_casting_winners WHERE run_id = ?", [result.run_id]).fetchone()
    assert runs == [(result.run_id, 1.0)]
    assert wins[0] == 32

    outputs, row_counts = service.export_reports(db_path, tmp_path / "exports")
    assert row_counts == {"dev_casting_runs": 1, "dev_casting_winners": 2}
    assert sorted(p.name for p in outputs) == [
        "dev_casting_runs.csv",
        "dev_casting_runs.parquet",
        "dev_casting_winners.csv",
        "dev_casting_winners.parquet",
    ]
    with duckdb.connect() as conn:
        for table, count in row_counts.items():
            csv_rows = conn.execute(f"SELECT COUNT(*) FROM read_csv_auto('{(tmp_path / 'exports' / table).with_suffix('.csv').as_posix()}')").fetchone()[0]
            parquet_rows = conn.execute(
                f"SELECT COUNT(*) FROM read_parquet('{(tmp_path / 'exports' / table).with_suffix('.parquet').as_posix()}')"
            ).fetchone()[0]
            assert csv_rows == parquet_rows == count
