"""
Configuration for event retrieval.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class RAGConfig:
    """Configuration for hybrid event retrieval."""

    top_k: int = 20
    candidate_multiplier: int = 2
    vector_num_candidates: int = 100
    strict_threshold: int = 50
    large_pool_threshold: int = 30
    large_pool_size: int = 20
    relaxed_threshold: int = 20
    bucket_scan_limit: int = 200
    bucket_max_results: int = 50
    listing_limit: int = 100
    standard_search_limit: int = 50
    use_vector_search: bool = True
