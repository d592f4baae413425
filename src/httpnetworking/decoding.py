"""Body encoding and decoding helpers."""

from __future__ import annotations

from typing import Any, Callable, Generic, Mapping, TypeVar, Union, get_origin

import pydantic
from pydantic import TypeAdapter

from .exceptions import DecodingError
from .models import Response


T = TypeVar("T")

Decoder = Callable[[Response], Any]


class JSONDecoder(Generic[T]):
    """Validate a JSON body into ``response_type`` with pydantic."""

    def __init__(self, response_type: type[T] | Any) -> None:
        self.response_type = response_type
        self._adapter: TypeAdapter[T] = TypeAdapter(response_type)

    def __call__(self, response: Response) -> T:
        return self._adapter.validate_json(response.content)

    def __repr__(self) -> str:
        return f"JSONDecoder({self.response_type!r})"


def _passthrough(response: Response) -> Response:
    return response


def _as_bytes(response: Response) -> bytes:
    return response.content


def _as_text(response: Response) -> str:
    return response.text


def resolve_decoder(expecting: Union[type[Any], Decoder, None]) -> Decoder:
    """Turn an ``expecting`` argument into a callable taking the response.

    ``None`` and :class:`Response` return the response itself, ``bytes`` and
    ``str`` return the raw body, other types and typing constructs
    (``list[str]``, pydantic models, ...) are validated from JSON, and any
    other callable is used as-is.
    """
    if expecting is None or expecting is Response:
        return _passthrough
    if expecting is bytes:
        return _as_bytes
    if expecting is str:
        return _as_text
    if isinstance(expecting, type) or get_origin(expecting) is not None or not callable(expecting):
        return JSONDecoder(expecting)
    return expecting


def decode(decoder: Decoder, response: Response) -> Any:
    try:
        return decoder(response)
    except pydantic.ValidationError as exc:
        raise DecodingError(
            f"Response body does not match the expected shape: {exc.error_count()} error(s)",
            status_code=response.status_code,
            body=response.content,
            headers=response.headers,
            cause=exc,
        ) from exc
    except Exception as exc:
        raise DecodingError(
            f"Response body could not be decoded: {exc}",
            status_code=response.status_code,
            body=response.content,
            headers=response.headers,
            cause=exc,
        ) from exc


def encode_json(payload: Any) -> bytes:
    """Serialize ``payload``, pydantic models included, into a JSON body."""
    if isinstance(payload, Mapping):
        payload = dict(payload)
    return TypeAdapter(Any).dump_json(payload)
