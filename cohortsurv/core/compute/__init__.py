"""
Shared compute infrastructure for cohortsurv.

IMPORTANT: This is NOT where statistical routines live. Those go in
{domain}/. This module contains shared execution utilities.

Submodules:
    timing: Execution timing utilities
"""

from cohortsurv.core.compute.timing import Timer

__all__ = [
    "Timer",
]
