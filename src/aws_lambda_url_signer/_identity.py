"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

from dataclasses import dataclass, field


@dataclass(kw_only=True, frozen=True)
class AWSCredentialIdentity:
    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)

    @property
    def has_session_token(self) -> bool:
        """Whether the identity carries temporary session credentials."""
        return bool(self.session_token)
