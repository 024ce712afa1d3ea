"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

from collections.abc import Mapping
from dataclasses import dataclass, field

from ._identity import AWSCredentialIdentity
from .dispatch import DEFAULT_TIMEOUT
from .exceptions import ConfigurationError

ENV_AWS_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
ENV_AWS_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
ENV_AWS_SESSION_TOKEN = "AWS_SESSION_TOKEN"
ENV_AWS_REGION = "AWS_REGION"

LAMBDA_SERVICE = "lambda"


@dataclass(kw_only=True, frozen=True)
class InvokeConfiguration:
    """Everything needed for one signed invocation.

    Built once by the caller and handed to :func:`invoke`; nothing below this
    point reads the environment.
    """

    lambda_url: str
    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)
    region: str | None = None
    method: str = "GET"
    body: bytes | str = b""
    headers: str = ""
    service: str = LAMBDA_SERVICE
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if not self.lambda_url:
            raise ConfigurationError("lambda-url is required")
        if not self.access_key_id:
            raise ConfigurationError("access key id is required")
        if not self.secret_access_key:
            raise ConfigurationError("secret access key is required")

    @classmethod
    def from_environ(
        cls,
        environ: Mapping[str, str],
        *,
        lambda_url: str,
        method: str = "GET",
        body: bytes | str = b"",
        headers: str = "",
        timeout: float = DEFAULT_TIMEOUT,
    ) -> "InvokeConfiguration":
        """Read credentials and region from an environment mapping."""
        if not lambda_url:
            raise ConfigurationError("lambda-url is required")
        for name in (ENV_AWS_ACCESS_KEY_ID, ENV_AWS_SECRET_ACCESS_KEY):
            if not environ.get(name):
                raise ConfigurationError(f"{name} env variable is required")

        return cls(
            lambda_url=lambda_url,
            access_key_id=environ[ENV_AWS_ACCESS_KEY_ID],
            secret_access_key=environ[ENV_AWS_SECRET_ACCESS_KEY],
            session_token=environ.get(ENV_AWS_SESSION_TOKEN) or None,
            region=environ.get(ENV_AWS_REGION) or None,
            method=method,
            body=body,
            headers=headers,
            timeout=timeout,
        )

    @property
    def identity(self) -> AWSCredentialIdentity:
        return AWSCredentialIdentity(
            access_key_id=self.access_key_id,
            secret_access_key=self.secret_access_key,
            session_token=self.session_token,
        )
