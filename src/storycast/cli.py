from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from storycast.contracts import CalibrationRunRequest, ValidationError
from storycast.core import DEFAULT_PROFILE_ID, resolve_scoring_profile
from storycast.casting import CandidateScorer, StoryletLibrary, WorldSnapshot
from storycast.devtools import CastingCalibrationService
from storycast.director import ChoiceResolver

EXIT_CASTING_FAILED = 1
EXIT_CONFIG_ERROR = 2


def _load_library(path: Path | None) -> StoryletLibrary:
    return StoryletLibrary.from_path(path) if path is not None else StoryletLibrary.bundled()


def _load_world(path: Path, seed: int | None) -> WorldSnapshot:
    world = WorldSnapshot.from_payload(json.loads(path.read_text(encoding="utf-8")))
    return world if seed is None else replace(world, world_seed=seed)


def _cmd_cast(args: argparse.Namespace) -> int:
    library = _load_library(args.storylets)
    world = _load_world(args.world, args.seed)
    resolver = ChoiceResolver(
        library,
        scorer=CandidateScorer(resolve_scoring_profile(args.profile)),
        forensic_dir=args.forensic_dir,
    )
    resolution = resolver.resolve_choice(args.storylet, args.choice, world)
    print(json.dumps(resolution.to_payload(), indent=2, sort_keys=True))
    return 0 if resolution.success else EXIT_CASTING_FAILED


def _cmd_calibrate(args: argparse.Namespace) -> int:
    library = _load_library(args.storylets)
    world = _load_world(args.world, None)
    service = CastingCalibrationService(library=library, world=world)
    result = service.run_batch(
        CalibrationRunRequest(
            storylet_id=args.storylet,
            choice_id=args.choice,
            sample_count=args.samples,
            base_seed=args.seed,
            scoring_profile_id=args.profile,
        )
    )
    print(f"run {result.run_id}: success_rate={result.success_rate:.3f}")
    for role_id, rate in sorted(result.role_fill_rates.items()):
        print(f"- {role_id}: fill_rate={rate:.3f} winners={result.winner_distribution.get(role_id, {})}")
    if args.duckdb is not None:
        service.persist_result(result, args.duckdb)
        if args.export_dir is not None:
            outputs, _ = service.export_reports(args.duckdb, args.export_dir)
            for path in outputs:
                print(f"- exported {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="storycast: deterministic storylet role casting")
    parser.add_argument("--log-level", default="WARNING", help="logging level (DEBUG, INFO, WARNING, ...)")
    sub = parser.add_subparsers(dest="command", required=True)

    cast = sub.add_parser("cast", help="cast roles for one storylet choice")
    cast.add_argument("--storylets", type=Path, default=None, help="storylet library JSON (default: bundled)")
    cast.add_argument("--world", type=Path, required=True, help="world snapshot JSON")
    cast.add_argument("--storylet", required=True, help="storylet id")
    cast.add_argument("--choice", required=True, help="choice id")
    cast.add_argument("--seed", type=int, default=None, help="override the world seed")
    cast.add_argument("--profile", default=DEFAULT_PROFILE_ID, help="scoring profile id")
    cast.add_argument("--forensic-dir", type=Path, default=None, help="where to write integrity artifacts")
    cast.set_defaults(handler=_cmd_cast)

    calibrate = sub.add_parser("calibrate", help="sweep seeds over one storylet")
    calibrate.add_argument("--storylets", type=Path, default=None, help="storylet library JSON (default: bundled)")
    calibrate.add_argument("--world", type=Path, required=True, help="world snapshot JSON")
    calibrate.add_argument("--storylet", required=True, help="storylet id")
    calibrate.add_argument("--choice", required=True, help="choice id")
    calibrate.add_argument("--samples", type=int, default=100, help="number of seeds to sweep")
    calibrate.add_argument("--seed", type=int, default=0, help="base seed")
    calibrate.add_argument("--profile", default=DEFAULT_PROFILE_ID, help="scoring profile id")
    calibrate.add_argument("--duckdb", type=Path, default=None, help="persist the run to this duckdb file")
    calibrate.add_argument("--export-dir", type=Path, default=None, help="export CSV/Parquet reports here")
    calibrate.set_defaults(handler=_cmd_calibrate)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    try:
        return args.handler(args)
    except ValidationError as exc:
        for issue in exc.issues:
            print(f"{issue.severity} {issue.code} {issue.field_path}: {issue.message}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
