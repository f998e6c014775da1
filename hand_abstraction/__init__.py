"""
Card abstraction building blocks for heads-up hold'em.

Clusters equity histograms into strategic buckets and provides the
arena-backed tree that solver code walks.
"""

__version__ = "0.1.0"
