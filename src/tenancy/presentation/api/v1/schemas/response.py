from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Response(BaseModel, Generic[T]):
    """Envelope returned by every tenant endpoint"""

    succeeded: bool
    messages: list[str] = Field(default_factory=list)
    data: T | None = None

    @classmethod
    def success(cls, data: T | None = None, message: str | None = None) -> "Response[T]":
        return cls(succeeded=True, messages=[message] if message else [], data=data)

    @classmethod
    def fail(cls, message: str | list[str]) -> "Response[T]":
        messages = [message] if isinstance(message, str) else list(message)
        return cls(succeeded=False, messages=messages, data=None)
