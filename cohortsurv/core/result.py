"""
Generic result container for all cohortsurv computations.

The Result class provides a standardized envelope that all domain-specific
results use. This enables shared tooling for timing, diagnostics and
reproducibility while allowing domains to define their own parameter
structures.

Design decisions:
    - Generic over parameter payload P for type safety
    - info dict for flexible metadata (method, options, bookkeeping counts)
    - timing is optional (don't burden unit tests)
    - provenance records library versions for reproducibility
    - Immutable (frozen=True) for reproducibility
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

import numpy as np
import scipy

P = TypeVar('P')  # Parameter payload type


def _default_provenance() -> dict[str, str]:
    """Versions of the libraries that produced a result."""
    from cohortsurv import __version__

    return {
        'cohortsurv_version': __version__,
        'numpy_version': np.__version__,
        'scipy_version': scipy.__version__,
    }


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for statistical computations.

    Type Parameters:
        P: The domain-specific parameter payload type

    Attributes:
        params: Domain-specific parameters (survival curve, test statistic, ...)
        info: Structured metadata (method, options, cohort bookkeeping)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the routine that produced this result
        warnings: Non-fatal issues encountered during computation
        provenance: Library versions; generated automatically when omitted

    Examples:
        >>> Result(
        ...     params=LogRankParams(...),
        ...     info={'method': 'Log-rank test', 'tail': 'extend'},
        ...     timing={'total_seconds': 0.001, 'merge': 0.0004},
        ...     backend_name='cpu_logrank'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)
    provenance: dict[str, str] = field(default_factory=_default_provenance)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
