from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any


@dataclass(eq=False)
class GridError(Exception):
    """Base for every failure raised at the public boundary of a grid helper."""

    grid: str
    message: str
    detail: str = ""

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __reduce__(self) -> tuple[Any, ...]:
        # The default reduce replays ``args``, which holds only the message.
        return self.__class__, tuple(getattr(self, field.name) for field in fields(self))

    def __str__(self) -> str:
        head = f'Grid "{self.grid}": {self.message}' if self.grid else self.message
        if self.detail:
            return f"{head}\n{self.detail}"
        return head


@dataclass(eq=False)
class GridNotFoundError(GridError):
    """An addressed row, cell or control is absent from the current render."""


@dataclass(eq=False)
class GridTimeoutError(GridError):
    """A bounded wait gave up: either ``timeout`` seconds or ``attempts`` tries ran out."""

    condition: str = ""
    timeout: float = 0.0
    attempts: int | None = None

    def __str__(self) -> str:
        base = super().__str__()
        if not self.condition:
            return base
        if self.attempts is not None:
            return f"{base}\nWaited for: {self.condition} (gave up after {self.attempts} attempts)"
        return f"{base}\nWaited for: {self.condition} (timeout: {self.timeout:g}s)"


@dataclass(eq=False)
class GridInconsistencyError(GridError):
    """The rendered DOM contradicts itself; retrying cannot help."""


@dataclass(eq=False)
class GridMisuseError(GridError):
    """The request itself is invalid for the operation."""


@dataclass(eq=False)
class GridAssertionError(GridError, AssertionError):
    pass
