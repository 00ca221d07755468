"""Tagged success/failure values returned by every collaborator call."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Failure:
    error: Exception

    @property
    def ok(self) -> bool:
        return False


Result = Union[Success[T], Failure]


def unwrap(result: "Result[T]") -> T:
    """Return the success value or raise the carried error."""
    if isinstance(result, Failure):
        raise result.error
    return result.value


__all__ = ["Failure", "Result", "Success", "unwrap"]
