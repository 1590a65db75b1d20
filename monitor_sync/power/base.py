"""Protocol for display power sources and actuators."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PowerAdapter(Protocol):
    """Structural interface for a power-state source/sink.

    ``get_power`` returns None when the capability is unsupported on this
    host. ``set_power`` raises ActuationError when the request is rejected;
    a successful return does not mean the state changed yet.
    """

    name: str

    def get_power(self) -> bool | None: ...
    def set_power(self, on: bool) -> None: ...
    def prepare(self) -> None: ...
    def close(self) -> bool: ...
