"""Success/failure container used by every fallible operation.

Network and cryptographic operations return ``Ok(value)`` or ``Err(error)``
instead of raising, so every caller handles failure explicitly.

Example:
    result = await fetch_public_certificate(http, config)
    if result.ok:
        certificate = result.value
    else:
        console.error(result.error)
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, Literal, NoReturn, TypeVar, Union

from kubeseal_client.exceptions import UnwrapError

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")
F = TypeVar("F")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    @property
    def ok(self) -> Literal[True]:
        return True

    def map(self, fn: Callable[[T], U]) -> "Ok[U]":
        return Ok(fn(self.value))

    def map_err(self, fn: Callable[[Any], Any]) -> "Ok[T]":
        return self

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: Any) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed outcome carrying a typed error payload."""

    error: E

    @property
    def ok(self) -> Literal[False]:
        return False

    def map(self, fn: Callable[[Any], Any]) -> "Err[E]":
        return self

    def map_err(self, fn: Callable[[E], F]) -> "Err[F]":
        return Err(fn(self.error))

    def unwrap(self) -> NoReturn:
        """Raise ``UnwrapError`` chained to the payload when it is an exception."""
        if isinstance(self.error, BaseException):
            raise UnwrapError(str(self.error)) from self.error
        raise UnwrapError(str(self.error))

    def unwrap_or(self, default: U) -> U:
        return default


Result = Union[Ok[T], Err[E]]


def capture(fn: Callable[[], T], *exceptions: type[Exception]) -> "Result[T, Exception]":
    """Run ``fn`` and convert the listed exception types into ``Err``.

    Args:
        fn: Zero-argument callable to run.
        *exceptions: Exception types to convert. Anything else propagates.

    Returns:
        ``Ok`` with the return value, or ``Err`` with the caught exception.

    """
    try:
        return Ok(fn())
    except exceptions as exc:
        return Err(exc)


async def capture_async(fn: Callable[[], Awaitable[T]], *exceptions: type[Exception]) -> "Result[T, Exception]":
    """Await ``fn()`` and convert the listed exception types into ``Err``."""
    try:
        return Ok(await fn())
    except exceptions as exc:
        return Err(exc)
