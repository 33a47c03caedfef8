from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from chuna.evaluation.config import config_from_settings, settings_defaults
from chuna.evaluation.runner import run_replay
from core.errors import ConfigurationError
from core.paths import get_log_root, get_reports_root
from core.settings import load_settings
from engine.checkpoints import CheckpointMode, generate_checkpoints, tag_checkpoints
from engine.pose import ReferencePath
from engine.profile import ProcedureType, preset_profile


def setup_logging(level: str = "INFO") -> None:
    log_root = get_log_root()
    log_root.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
        handlers=[
            logging.FileHandler(log_root / "chuna.log", encoding="utf-8"),
            logging.StreamHandler(sys.stderr),
        ],
    )


def _cmd_replay(args: argparse.Namespace) -> int:
    settings = load_settings(settings_defaults(), args.settings)
    config = config_from_settings(settings)
    try:
        results = run_replay(args.profile, args.path, args.samples, args.out, config=config)
    except ConfigurationError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 2
    print("Evaluation complete:")
    for key, value in results.items():
        print(f"- {key}: {value}")
    return 0


def _cmd_preset(args: argparse.Namespace) -> int:
    profile = preset_profile(args.procedure)
    text = profile.to_json()
    if args.out is None:
        print(text)
    else:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(text, encoding="utf-8")
        print(f"Preset written: {args.out}")
    return 0


def _cmd_checkpoints(args: argparse.Namespace) -> int:
    path = ReferencePath.from_json(args.path.read_text(encoding="utf-8"))
    indices = generate_checkpoints(
        path,
        args.mode,
        interval=args.interval,
        count=args.count,
        distance=args.distance,
    )
    tagged = tag_checkpoints(path, indices)
    output = args.out or args.path
    output.write_text(tagged.to_json(), encoding="utf-8")
    print(f"Tagged {len(indices)} checkpoints: {output}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Chuna motion evaluation tools")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    sub = parser.add_subparsers(dest="command", required=True)

    replay_parser = sub.add_parser("replay", help="Evaluate a recorded sample sequence")
    replay_parser.add_argument("--profile", type=Path, required=True, help="Limit profile JSON")
    replay_parser.add_argument("--path", type=Path, required=True, help="Reference path JSON")
    replay_parser.add_argument("--samples", type=Path, required=True, help="Recorded samples JSON")
    replay_parser.add_argument("--out", type=Path, default=get_reports_root(), help="Report output directory")
    replay_parser.add_argument("--settings", type=Path, help="Optional engine settings JSON")

    preset_parser = sub.add_parser("preset", help="Export a built-in procedure profile")
    preset_parser.add_argument(
        "procedure",
        choices=[item.value for item in ProcedureType],
        help="Procedure type",
    )
    preset_parser.add_argument("--out", type=Path, help="Write to this file instead of stdout")

    checkpoint_parser = sub.add_parser("checkpoints", help="Tag checkpoints on a reference path")
    checkpoint_parser.add_argument("--path", type=Path, required=True, help="Reference path JSON")
    checkpoint_parser.add_argument(
        "--mode",
        choices=[item.value for item in CheckpointMode],
        default=CheckpointMode.FIXED_INTERVAL.value,
    )
    checkpoint_parser.add_argument("--interval", type=int, default=10, help="Frames between checkpoints")
    checkpoint_parser.add_argument("--count", type=int, default=5, help="Number of checkpoints")
    checkpoint_parser.add_argument("--distance", type=float, default=1.0, help="Travelled distance per checkpoint")
    checkpoint_parser.add_argument("--out", type=Path, help="Output path (defaults to overwriting --path)")

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if args.command == "replay":
        return _cmd_replay(args)
    if args.command == "preset":
        return _cmd_preset(args)
    return _cmd_checkpoints(args)


if __name__ == "__main__":
    raise SystemExit(main())
