"""
Mip LUT filtering module.

Per-mip variance statistics and the filtered LUT slices built from them.
"""

from gausstex.mip.api import (
    block_average,
    block_reduce,
    block_variance,
    build_mip_chain,
    filter_lut_level,
    mip_count,
    mip_variance,
)

__all__ = [
    "block_average",
    "block_reduce",
    "block_variance",
    "build_mip_chain",
    "filter_lut_level",
    "mip_count",
    "mip_variance",
]
