"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

import httpx

from ._http import AWSRequest
from ._io import iter_body
from .exceptions import TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT: float = 5.0


@dataclass(frozen=True)
class InvokeResponse:
    status_code: int
    reason: str
    body: bytes

    @property
    def status(self) -> str:
        """Status line in the ``200 OK`` form."""
        return f"{self.status_code} {self.reason}".strip()

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class Dispatcher(Protocol):
    def send(self, request: AWSRequest, *, timeout: float) -> InvokeResponse: ...


class HTTPXDispatcher:
    """Send a signed request once with httpx.

    Redirects are not followed and nothing is retried. Any httpx failure is
    raised as a :class:`TransportError`.
    """

    def __init__(self, *, client: httpx.Client | None = None):
        self._client = client

    def send(
        self, request: AWSRequest, *, timeout: float = DEFAULT_TIMEOUT
    ) -> InvokeResponse:
        url = request.destination.build()
        logger.debug("Sending %s %s", request.method.upper(), url)
        try:
            if self._client is not None:
                response = self._send(self._client, request, url, timeout)
            else:
                with httpx.Client() as client:
                    response = self._send(client, request, url, timeout)
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP error {e}") from e

        logger.debug("Received %s from %s", response.status_code, url)
        return InvokeResponse(
            status_code=response.status_code,
            reason=response.reason_phrase,
            body=response.content,
        )

    def _send(
        self, client: httpx.Client, request: AWSRequest, url: str, timeout: float
    ) -> httpx.Response:
        body = request.body
        content: bytes | Iterable[bytes] | None
        if body is None:
            content = None
        elif isinstance(body, bytes | bytearray | str):
            content = b"".join(iter_body(body))
        else:
            content = iter_body(body)
        return client.request(
            request.method.upper(),
            url,
            headers=request.fields.items(),
            content=content,
            timeout=timeout,
            follow_redirects=False,
        )
