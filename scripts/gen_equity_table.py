#!/usr/bin/env python3
"""
Generate the flat equity table for every configured street.

Usage:
    python scripts/gen_equity_table.py                              # Default config
    python scripts/gen_equity_table.py --config config/fast_test.yaml
    python scripts/gen_equity_table.py --workers 16 --output data/ehs.dat
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from hand_abstraction.abstraction.precompute import default_stages, generate_equity_table
from hand_abstraction.shared.config_loader import load_config


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Precompute hand equities into an equity table")

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: use built-in defaults)",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Output file (overrides config; must not exist yet)",
    )
    parser.add_argument(
        "--workers",
        "-w",
        type=int,
        default=None,
        help="Worker processes (overrides config)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Disable progress bars",
    )

    return parser.parse_args()


def main():
    """Equity table entry point."""
    args = parse_args()

    overrides = {}
    if args.output is not None:
        overrides["equity__output_file"] = str(args.output)
    if args.workers is not None:
        overrides["equity__n_workers"] = args.workers
    if args.seed is not None:
        overrides["system__seed"] = args.seed

    config = load_config(args.config, **overrides)
    logging.basicConfig(
        level=config.system.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    stages = default_stages(config.equity.streets)
    sizes = generate_equity_table(
        config.equity.output_file,
        stages,
        config.equity,
        seed=config.system.seed or 0,
        show_progress=not args.quiet,
    )

    print(f"Wrote {config.equity.output_file}")
    for stage, size in zip(stages, sizes):
        print(f"  {stage.street.name:<8} {size:>12,} entries")


if __name__ == "__main__":
    main()
