# itemcf/cli.py
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError

from . import config
from .config import PipelineConfig
from .errors import PipelineError
from .pipeline import run_pipeline
from .state import Phase


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="itemcf-recommend",
        description="Compute top-N item-based co-occurrence recommendations per user.",
    )
    ap.add_argument("--input", type=Path, default=config.DEFAULT_INPUT_PATH,
                    help="Preference file or directory of userID,itemID[,value] lines")
    ap.add_argument("--output", type=Path, default=config.DEFAULT_OUTPUT_PATH,
                    help="Where to write the recommendations text file")
    ap.add_argument("--temp-dir", type=Path, default=config.DEFAULT_TEMP_DIR,
                    help="Directory for per-phase datasets and pipeline state")
    ap.add_argument("--users-file", type=Path, default=None,
                    help="File of user IDs to recommend for, one per line (default: all users)")
    ap.add_argument("--num-recommendations", "-n", type=int,
                    default=config.DEFAULT_NUM_RECOMMENDATIONS,
                    help="Number of recommendations per user")
    ap.add_argument("--boolean-data", action="store_true",
                    help="Treat input as having no preference values")
    ap.add_argument("--max-prefs-per-user", type=int,
                    default=config.DEFAULT_MAX_PREFS_PER_USER,
                    help="Preferences per user considered when computing recommendations")
    ap.add_argument("--start-phase", type=Phase.parse, default=Phase.ITEM_ID_INDEX,
                    help="First phase to run (number or name)")
    ap.add_argument("--end-phase", type=Phase.parse, default=Phase.AGGREGATE_AND_RECOMMEND,
                    help="Last phase to run (number or name)")
    ap.add_argument("--resume", action="store_true",
                    help="Skip phases already completed with this configuration")
    ap.add_argument("--workers", type=int, default=config.DEFAULT_WORKERS)
    ap.add_argument("--num-splits", type=int, default=config.DEFAULT_NUM_SPLITS)
    ap.add_argument("--log-level", default=config.LOG_LEVEL)
    ap.add_argument("--log-file", type=Path, default=None)
    return ap


def configure_logging(level: str, log_file: Optional[Path] = None) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(log_file, level=level.upper())


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    try:
        cfg = PipelineConfig(
            input_path=args.input,
            output_path=args.output,
            temp_dir=args.temp_dir,
            users_file=args.users_file,
            num_recommendations=args.num_recommendations,
            boolean_data=args.boolean_data,
            max_prefs_per_user=args.max_prefs_per_user,
            start_phase=int(args.start_phase),
            end_phase=int(args.end_phase),
            resume=args.resume,
            workers=args.workers,
            num_splits=args.num_splits,
        )
    except ValidationError as e:
        logger.error("Invalid configuration: {}", e)
        return 1

    try:
        output = run_pipeline(cfg)
    except PipelineError as e:
        logger.error("Recommender run failed in phase {}: {}", e.phase, e.reason)
        return 1

    logger.info("Recommendations written to {}", output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
