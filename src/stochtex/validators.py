"""
Validation decorators for stochtex operations.

Provides reusable precondition checks for buffers and channel indices so that
invalid calls fail before any work is done.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

import numpy as np

from stochtex.constants import VALID_CHANNELS

# Type alias for callables
F = Callable[..., Any]


def _lookup(args: tuple, kwargs: dict, param_name: str, param_index: int) -> tuple[bool, Any]:
    """Return (found, value) for a parameter given by position or keyword."""
    if len(args) > param_index:
        return True, args[param_index]
    if param_name in kwargs:
        return True, kwargs[param_name]
    return False, None


def _check_channel(value: Any, param_name: str) -> None:
    # bool is an int subclass but never a channel index
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise TypeError(
            f"{param_name} must be an integer channel index, got {type(value).__name__}. "
            f"Use 0=R, 1=G, 2=B, 3=A."
        )
    if int(value) not in VALID_CHANNELS:
        raise ValueError(
            f"{param_name}={value} is outside valid range [0, 3]. Use 0=R, 1=G, 2=B, 3=A."
        )


def validate_channel(param_name: str = "channel", param_index: int = 1) -> Callable[[F], F]:
    """
    Decorator for validating a single channel index.

    Args:
        param_name: Name of parameter for error messages
        param_index: Position of parameter in function signature

    Returns:
        Decorated function with channel validation

    Example:
        >>> @validate_channel("channel", 1)
        ... def compute_forward_transform(input, channel):
        ...     ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            found, value = _lookup(args, kwargs, param_name, param_index)
            if found:
                _check_channel(value, param_name)
            return func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator


def validate_channels(param_name: str = "channels", param_index: int = 1) -> Callable[[F], F]:
    """
    Decorator for validating a channel selection (sequence of channel indices).

    The selection must be non-empty and free of duplicates.

    Args:
        param_name: Name of parameter for error messages
        param_index: Position of parameter in function signature

    Returns:
        Decorated function with channel selection validation
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            found, value = _lookup(args, kwargs, param_name, param_index)
            if found:
                if isinstance(value, (str, bytes)) or not hasattr(value, "__iter__"):
                    raise TypeError(
                        f"{param_name} must be a sequence of channel indices, "
                        f"got {type(value).__name__}. Example: (0, 1, 2)."
                    )
                channels = list(value)
                if not channels:
                    raise ValueError(f"{param_name} is empty. Select at least one channel.")
                for channel in channels:
                    _check_channel(channel, f"{param_name} entry")
                if len(set(int(c) for c in channels)) != len(channels):
                    raise ValueError(f"{param_name}={tuple(channels)} contains duplicate channels.")
            return func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator


def validate_buffer(param_name: str = "input", param_index: int = 0) -> Callable[[F], F]:
    """
    Decorator for validating that a parameter is a non-empty PixelBuffer.

    Args:
        param_name: Name of parameter for error messages
        param_index: Position of parameter in function signature

    Returns:
        Decorated function with buffer validation

    Example:
        >>> @validate_buffer("input", 0)
        ... def decorrelate(input):
        ...     ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            # Imported here to avoid a circular import with stochtex.buffer
            from stochtex.buffer import PixelBuffer

            found, value = _lookup(args, kwargs, param_name, param_index)
            if found:
                if not isinstance(value, PixelBuffer):
                    raise TypeError(
                        f"{param_name} must be a PixelBuffer, got {type(value).__name__}. "
                        f"Wrap image arrays with PixelBuffer.from_array()."
                    )
                if value.num_pixels == 0:
                    raise ValueError(f"{param_name} is empty. Provide at least one pixel.")
            return func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator
