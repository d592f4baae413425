"""Per-request overrides for :class:`~httpnetworking.client.HTTPClient`."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .adaptors import RequestAdaptor
from .retriers import RequestRetrier
from .validators import ResponseValidator


@dataclass(frozen=True)
class RequestOptions:
    headers: Mapping[str, str] | None = None
    params: Mapping[str, Any] | None = None
    adaptors: Sequence[RequestAdaptor] = ()
    validators: Sequence[ResponseValidator] = ()
    retriers: Sequence[RequestRetrier] = ()
