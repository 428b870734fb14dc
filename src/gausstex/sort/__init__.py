"""
Parallel rank sorting module.

Provides the blocked bitonic sort used to rank every channel of an image.
"""

from gausstex.sort.api import bitonic_sort, rank_sort, sort_channels, split_channels

__all__ = ["bitonic_sort", "rank_sort", "sort_channels", "split_channels"]
