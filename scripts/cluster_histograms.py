#!/usr/bin/env python3
"""
Cluster equity histograms of one street into buckets.

Histograms are either computed with the Monte Carlo oracle or read from a
``.npy`` file of shape (n_situations, n_bins). Bucket labels are saved as a
``.npy`` array in index order.

Usage:
    python scripts/cluster_histograms.py --street preflop --output data/preflop_buckets.npy
    python scripts/cluster_histograms.py --histograms data/flop_hist.npy --clusters 200 \
        --output data/flop_buckets.npy
"""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from hand_abstraction.abstraction.clustering import fit_buckets
from hand_abstraction.abstraction.distance import get_metric
from hand_abstraction.abstraction.precompute import compute_stage_histograms, default_stages
from hand_abstraction.shared.config_loader import load_config


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Cluster equity histograms into buckets")

    parser.add_argument("--config", "-c", type=Path, default=None, help="YAML config file")
    parser.add_argument(
        "--street",
        choices=["preflop", "flop", "turn", "river"],
        default="preflop",
        help="Street to compute histograms for (ignored with --histograms)",
    )
    parser.add_argument(
        "--histograms",
        type=Path,
        default=None,
        help="Precomputed histograms (.npy) instead of running the oracle",
    )
    parser.add_argument("--clusters", "-k", type=int, default=None, help="Number of buckets")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--output", "-o", type=Path, required=True, help="Labels output (.npy)")

    return parser.parse_args()


def main():
    """Bucketing entry point."""
    args = parse_args()

    overrides = {}
    if args.clusters is not None:
        overrides["clustering__n_clusters"] = args.clusters
    if args.seed is not None:
        overrides["system__seed"] = args.seed

    config = load_config(args.config, **overrides)
    logging.basicConfig(
        level=config.system.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.histograms is not None:
        histograms = np.load(args.histograms)
    else:
        (stage,) = default_stages([args.street])
        histograms = compute_stage_histograms(stage, config.equity, seed=config.system.seed or 0)

    clustering = config.clustering
    model, result = fit_buckets(
        histograms,
        n_clusters=clustering.n_clusters,
        metric=get_metric(clustering.metric),
        n_restarts=clustering.n_restarts,
        seed=config.system.seed,
        init=clustering.init,
        epsilon=clustering.epsilon,
        max_iterations=clustering.max_iterations,
        n_workers=clustering.n_workers,
    )

    args.output.parent.mkdir(parents=True, exist_ok=True)
    np.save(args.output, result.labels)

    status = "converged" if result.converged else "did NOT converge"
    print(f"{status} after {result.iterations} iterations")
    print(f"Bucket sizes: {np.bincount(result.labels, minlength=model.n_centers).tolist()}")
    print(f"Saved labels to {args.output}")


if __name__ == "__main__":
    main()
