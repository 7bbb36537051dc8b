"""Result type - explicit success/failure values instead of exceptions.

Use cases return ``Ok(value)`` or ``Err(error)``. Callers branch with
``is_ok`` / ``is_err`` or pattern-match on the two classes.
"""

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def success(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]


def is_ok(result: "Result[T, E]") -> bool:
    return isinstance(result, Ok)


def is_err(result: "Result[T, E]") -> bool:
    return isinstance(result, Err)


def unwrap(result: "Result[T, E]") -> T:
    """Return the success value or raise the carried error"""
    if isinstance(result, Ok):
        return result.value
    error = result.error
    if isinstance(error, BaseException):
        raise error
    raise ValueError(f"Called unwrap on a failed result: {error!r}")


def unwrap_or(result: "Result[T, E]", default: T) -> T:
    if isinstance(result, Ok):
        return result.value
    return default


def map_result(result: "Result[T, E]", fn: Callable[[T], U]) -> "Result[U, E]":
    if isinstance(result, Ok):
        return Ok(fn(result.value))
    return result


def map_error(result: "Result[T, E]", fn: Callable[[E], F]) -> "Result[T, F]":
    if isinstance(result, Err):
        return Err(fn(result.error))
    return result
