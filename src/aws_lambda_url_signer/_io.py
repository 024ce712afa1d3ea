"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

import io
from collections.abc import Iterable
from dataclasses import dataclass
from hashlib import sha256
from typing import Any, Protocol, runtime_checkable

from ._http import BodyType

EMPTY_SHA256_HASH = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
READ_CHUNK_SIZE = 64 * 1024


@runtime_checkable
class Seekable(Protocol):
    def seek(self, offset: int, whence: int = 0, /) -> int: ...

    def tell(self) -> int: ...


@dataclass(frozen=True)
class HashedPayload:
    checksum: str
    content_length: int
    body: BodyType


def hash_payload(body: BodyType) -> HashedPayload:
    """Compute the hex encoded SHA-256 digest of a request body.

    The body is read exactly once. Seekable bodies are rewound to where reading
    started, any other iterable is replaced by a buffer holding the bytes that
    were hashed so the same bytes can be sent afterwards.
    """
    if body is None:
        return HashedPayload(EMPTY_SHA256_HASH, 0, None)

    if isinstance(body, str):
        body = body.encode("utf-8")
    if isinstance(body, bytes | bytearray):
        return HashedPayload(sha256(body).hexdigest(), len(body), bytes(body))

    if not isinstance(body, Iterable):
        raise TypeError(
            "Request body must be bytes, str or an Iterable[bytes], "
            f"received {type(body)}."
        )

    checksum = sha256()
    length = 0
    if _is_rewindable(body):
        position = body.tell()
        for chunk in _iter_chunks(body):
            checksum.update(chunk)
            length += len(chunk)
        body.seek(position)
        return HashedPayload(checksum.hexdigest(), length, body)

    buffer = io.BytesIO()
    for chunk in body:
        buffer.write(chunk)
        checksum.update(chunk)
        length += len(chunk)
    buffer.seek(0)
    return HashedPayload(checksum.hexdigest(), length, buffer)


def iter_body(body: BodyType) -> Iterable[bytes]:
    """Yield the bytes of a body in chunks without buffering all of it."""
    if body is None:
        return
    if isinstance(body, str):
        yield body.encode("utf-8")
    elif isinstance(body, bytes | bytearray):
        yield bytes(body)
    else:
        yield from _iter_chunks(body)


def _is_rewindable(body: Any) -> bool:
    if not isinstance(body, Seekable):
        return False
    seekable = getattr(body, "seekable", None)
    return seekable is None or bool(seekable())


def _iter_chunks(body: Any) -> Iterable[bytes]:
    read = getattr(body, "read", None)
    if read is None:
        yield from body
        return
    while chunk := read(READ_CHUNK_SIZE):
        yield chunk
