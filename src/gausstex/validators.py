"""
Validation helpers for gausstex.

Provides decorators for checking fluent-setter parameters on the Converter and
plain functions for checking input images before any buffer is allocated.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

import numpy as np

from gausstex.constants import COLOR_CHANNELS, IMAGE_CHANNELS
from gausstex.errors import ValidationError

# Type alias for callables
F = Callable[..., Any]


def is_power_of_two(value: int) -> bool:
    """Return True for 1, 2, 4, 8, ..."""
    return value > 0 and (value & (value - 1)) == 0


def _get_argument(args: tuple, kwargs: dict, param_name: str, param_index: int) -> tuple[bool, Any]:
    if len(args) > param_index:
        return True, args[param_index]
    if param_name in kwargs:
        return True, kwargs[param_name]
    return False, None


def validate_range(
    min_val: float,
    max_val: float,
    param_name: str = "value",
    param_index: int = 1,
) -> Callable[[F], F]:
    """
    Decorator for validating numeric parameter ranges.

    Args:
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive)
        param_name: Name of parameter for error messages
        param_index: Position of parameter in function signature (default: 1 = first arg after self)

    Returns:
        Decorated function with range validation

    Example:
        >>> @validate_range(2, 16, 'kernel')
        ... def variance_kernel(self, kernel: int) -> Self:
        ...     ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            found, value = _get_argument(args, kwargs, param_name, param_index)
            if not found:
                return func(*args, **kwargs)

            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeError(
                    f"{param_name} must be a number, got {type(value).__name__}. "
                    f"Provide a numeric value (int or float)."
                )

            if not min_val <= value <= max_val:
                suggestion = ""
                if "kernel" in param_name:
                    suggestion = " Use 4 (default) for balanced reduction passes."
                elif "pow2" in param_name:
                    suggestion = " LUT axes are 2 ** pow2 texels, use 4 (16 texels) by default."

                raise ValueError(
                    f"{param_name}={value} is outside valid range [{min_val}, {max_val}].{suggestion}"
                )

            return func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator


def validate_power_of_two(param_name: str = "value", param_index: int = 1) -> Callable[[F], F]:
    """
    Decorator for validating power-of-two integer parameters.

    Args:
        param_name: Name of parameter for error messages
        param_index: Position of parameter in function signature

    Returns:
        Decorated function with power-of-two validation

    Example:
        >>> @validate_power_of_two('block_size')
        ... def sort_block_size(self, block_size: int) -> Self:
        ...     ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            found, value = _get_argument(args, kwargs, param_name, param_index)
            if not found:
                return func(*args, **kwargs)

            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise TypeError(f"{param_name} must be an int, got {type(value).__name__}")

            if not is_power_of_two(int(value)):
                raise ValueError(
                    f"{param_name}={value} must be a power of two. "
                    f"The bitonic network only operates on power-of-two sizes."
                )

            return func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator


def validate_type(
    expected_type: type | tuple[type, ...],
    param_name: str = "value",
    param_index: int = 1,
) -> Callable[[F], F]:
    """
    Decorator for validating parameter types.

    Args:
        expected_type: Expected type or tuple of types
        param_name: Name of parameter for error messages
        param_index: Position of parameter in function signature

    Returns:
        Decorated function with type validation
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            found, value = _get_argument(args, kwargs, param_name, param_index)
            if not found:
                return func(*args, **kwargs)

            if not isinstance(value, expected_type):
                if isinstance(expected_type, tuple):
                    type_names = ", ".join(t.__name__ for t in expected_type)
                    raise TypeError(
                        f"{param_name} must be one of ({type_names}), got {type(value).__name__}"
                    )
                else:
                    raise TypeError(
                        f"{param_name} must be {expected_type.__name__}, got {type(value).__name__}"
                    )

            return func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator


def validate_choices(
    valid_choices: set[str],
    param_name: str = "value",
    param_index: int = 1,
) -> Callable[[F], F]:
    """
    Decorator for validating parameter choices.

    Args:
        valid_choices: Set of valid string choices
        param_name: Name of parameter for error messages
        param_index: Position of parameter in function signature

    Returns:
        Decorated function with choice validation

    Example:
        >>> @validate_choices({'png', 'jpg', 'tga', 'exr'}, 'fmt')
        ... def output_format(self, fmt: str) -> Self:
        ...     ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            found, value = _get_argument(args, kwargs, param_name, param_index)
            if not found:
                return func(*args, **kwargs)

            if value not in valid_choices:
                choices_str = ", ".join(sorted(valid_choices))
                raise ValueError(
                    f"{param_name}='{value}' is not valid. Valid options are: {choices_str}"
                )

            return func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator


def validate_image(image: Any) -> tuple[int, int, int]:
    """
    Check that an input image can be converted.

    Runs before any stage buffer is allocated.

    Args:
        image: Candidate image [H, W, 4] or [H, W, 3]

    Returns:
        (height, width, channels)

    Raises:
        ValidationError: If the image is not a finite floating/integer array with
            power-of-two dimensions and 3 or 4 channels
    """
    if not isinstance(image, np.ndarray):
        raise ValidationError(f"image must be a numpy array, got {type(image).__name__}")

    if image.ndim != 3 or image.shape[2] not in (COLOR_CHANNELS, IMAGE_CHANNELS):
        raise ValidationError(
            f"image must have shape [H, W, 4] or [H, W, 3], got {image.shape}"
        )

    if not (np.issubdtype(image.dtype, np.floating) or np.issubdtype(image.dtype, np.integer)):
        raise ValidationError(f"image dtype must be numeric, got {image.dtype}")

    height, width, channels = image.shape
    if not is_power_of_two(width) or not is_power_of_two(height):
        raise ValidationError(
            f"Cannot convert images with non-power of 2 dimensions, input image is {width} by {height}"
        )

    if np.issubdtype(image.dtype, np.floating) and not np.all(np.isfinite(image)):
        raise ValidationError("image contains NaN or infinite values")

    return height, width, channels
