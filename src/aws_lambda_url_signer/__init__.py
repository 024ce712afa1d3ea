"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0

AWS Lambda URL Signer signs requests for IAM protected Lambda function URLs with
AWS Signature Version 4 and sends them with httpx.
"""

from __future__ import annotations

from ._http import URI, AWSRequest, Field, Fields, parse_fields
from ._identity import AWSCredentialIdentity
from ._io import EMPTY_SHA256_HASH, hash_payload
from ._version import __version__
from .config import InvokeConfiguration
from .dispatch import Dispatcher, HTTPXDispatcher, InvokeResponse
from .exceptions import (
    ConfigurationError,
    LambdaURLSignerException,
    RegionResolutionError,
    TransportError,
)
from .invoke import build_signed_request, invoke
from .regions import resolve_region
from .signers import SigV4Signer, SigV4SigningProperties

__license__ = "Apache-2.0"
__version__ = __version__

__all__ = (
    "AWSCredentialIdentity",
    "AWSRequest",
    "ConfigurationError",
    "Dispatcher",
    "EMPTY_SHA256_HASH",
    "Field",
    "Fields",
    "HTTPXDispatcher",
    "InvokeConfiguration",
    "InvokeResponse",
    "LambdaURLSignerException",
    "RegionResolutionError",
    "SigV4Signer",
    "SigV4SigningProperties",
    "TransportError",
    "URI",
    "build_signed_request",
    "hash_payload",
    "invoke",
    "parse_fields",
    "resolve_region",
)
