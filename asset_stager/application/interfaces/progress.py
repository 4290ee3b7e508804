from __future__ import annotations
from typing import Protocol, Optional, runtime_checkable


@runtime_checkable
class IProgressReporter(Protocol):
    """Side channel for transfer progress.

    Implementations must be cheap to call per chunk; rendering is throttled
    by the implementation, never by the caller.
    """

    def start(self, description: str, total: Optional[int]) -> None:
        """Begin a transfer of `total` bytes (None when the size is unknown)."""
        ...

    def advance(self, nbytes: int) -> None:
        ...

    def complete(self) -> None:
        """Mark the transfer finished; the completion notice is emitted once."""
        ...

    def close(self) -> None:
        """Stop rendering without a completion notice (failure path)."""
        ...
