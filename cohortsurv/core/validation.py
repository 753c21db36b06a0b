"""
Input validation utilities for cohortsurv.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages rather than silently correcting
or making assumptions about user intent.

The one deliberate exception is missing survival time: "NA", empty strings,
None and NaN are defined inputs that mean "time unknown" and are reported as
such by check_time() instead of raising.

Design principles:
    - No silent type coercion beyond float() on numeric-looking values
    - Clear, actionable error messages with actual values
    - Each function validates ONE thing
    - Parameter names included in all error messages
"""

import math
from typing import Any, Iterable

import numpy as np
from numpy.typing import NDArray

from cohortsurv.core.exceptions import ValidationError, DimensionError


MISSING_TIME_TOKENS = frozenset({"", "na", "nan", "null", "none"})


def is_missing_time(value: Any) -> bool:
    """
    Whether a raw time value means "unknown".

    Args:
        value: Raw time value as loaded from the source data

    Returns:
        True for None, NaN, and the tokens in MISSING_TIME_TOKENS
        (case-insensitive, surrounding whitespace ignored)
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() in MISSING_TIME_TOKENS
    if isinstance(value, (float, np.floating)):
        return math.isnan(value)
    return False


def check_time(value: Any, name: str) -> float | None:
    """
    Validate a raw time value and convert it to float.

    Args:
        value: Raw time value (number or numeric string)
        name: Parameter name for error messages (usually includes the case id)

    Returns:
        The time as a float, or None if the value is a missing-time marker

    Raises:
        ValidationError: If the value is not numeric, infinite, or negative
    """
    if is_missing_time(value):
        return None

    if isinstance(value, bool):
        raise ValidationError(f"{name}: expected a numeric time, got bool {value!r}")

    try:
        time = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name}: cannot convert {value!r} to a time: {e}") from e

    if math.isinf(time):
        raise ValidationError(f"{name}: time must be finite, got {time}")
    if time < 0:
        raise ValidationError(f"{name}: time must be non-negative, got {time}")

    return time


def check_choice(value: Any, choices: Iterable[Any], name: str) -> None:
    """
    Verify that an option is one of a fixed set of choices.

    Args:
        value: Option value to check
        choices: Allowed values
        name: Parameter name for error messages

    Raises:
        ValidationError: If value is not among choices
    """
    choices = tuple(choices)
    if value not in choices:
        allowed = ", ".join(repr(c) for c in choices)
        raise ValidationError(f"{name} must be one of {allowed}, got {value!r}")


def check_conf_level(conf_level: float) -> None:
    """
    Verify a confidence level lies strictly between 0 and 1.

    Raises:
        ValidationError: If conf_level is outside (0, 1)
    """
    if not 0 < conf_level < 1:
        raise ValidationError(f"conf_level must be in (0, 1), got {conf_level}")


def check_consistent_length(
    *arrays: NDArray,
    names: tuple[str, ...]
) -> None:
    """
    Verify all arrays have the same length (first dimension).

    Args:
        *arrays: Arrays to check
        names: Parameter names for error messages (must match number of arrays)

    Raises:
        ValueError: If number of names doesn't match number of arrays
        DimensionError: If arrays have inconsistent lengths
    """
    if len(arrays) != len(names):
        raise ValueError(
            f"Number of arrays ({len(arrays)}) must match number of names ({len(names)})"
        )

    if len(arrays) < 2:
        return

    lengths = [arr.shape[0] for arr in arrays]
    if len(set(lengths)) > 1:
        details = ", ".join(f"{name}={length}" for name, length in zip(names, lengths))
        raise DimensionError(f"Inconsistent lengths: {details}")
