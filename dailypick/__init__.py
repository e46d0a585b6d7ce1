"""Deterministic daily candidate selection for discovery feeds."""

__version__ = "0.1.0"

from .hashing import hash32, hash01
from .recency import recency_weight, classify
from .ranking import sort_bucket, rotate
from .seed import seed_day, build_seed
from .selection import select_distributed, assemble

__all__ = [
    "__version__",
    "hash32",
    "hash01",
    "recency_weight",
    "classify",
    "sort_bucket",
    "rotate",
    "seed_day",
    "build_seed",
    "select_distributed",
    "assemble",
]
