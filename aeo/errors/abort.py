"""Abort signal helpers built on asyncio.Event."""

import asyncio
from typing import Optional

from .types import AbortError


def check_aborted(signal: Optional[asyncio.Event], context: Optional[str] = None) -> None:
    """
    Raise AbortError if the signal has been set.

    Call between the steps of long-running operations.
    """
    if signal is not None and signal.is_set():
        message = f"Operation aborted: {context}" if context else "Operation was aborted"
        raise AbortError(message, details={"context": context})
