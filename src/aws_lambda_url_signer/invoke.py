"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

import datetime
import logging

from ._http import URI, AWSRequest, Fields
from .config import InvokeConfiguration
from .dispatch import Dispatcher, HTTPXDispatcher, InvokeResponse
from .regions import resolve_region
from .signers import SigV4Signer, SigV4SigningProperties

logger = logging.getLogger(__name__)

_SIGNER = SigV4Signer()


def resolve_configured_region(config: InvokeConfiguration) -> str:
    if config.region:
        return config.region
    logger.warning("AWS region is not specified, try to guess from lambda URL")
    return resolve_region(config.lambda_url)


def build_request(config: InvokeConfiguration) -> AWSRequest:
    """Build the unsigned request described by the configuration."""
    return AWSRequest(
        destination=URI.from_url(config.lambda_url),
        method=config.method,
        fields=Fields.from_text(config.headers),
        body=config.body,
    )


def build_signed_request(
    config: InvokeConfiguration,
    *,
    date: str | datetime.datetime | None = None,
) -> AWSRequest:
    """Resolve the region, then build and sign the request without sending it."""
    signing_properties = SigV4SigningProperties(
        region=resolve_configured_region(config),
        service=config.service,
    )
    if date is not None:
        signing_properties["date"] = date

    signed = _SIGNER.sign(
        signing_properties=signing_properties,
        request=build_request(config),
        identity=config.identity,
    )
    logger.debug(
        "Signed %s request for region %s",
        signed.method.upper(),
        signing_properties["region"],
    )
    return signed


def invoke(
    config: InvokeConfiguration,
    *,
    dispatcher: Dispatcher | None = None,
    date: str | datetime.datetime | None = None,
) -> InvokeResponse:
    """Sign the configured request and send it once."""
    signed = build_signed_request(config, date=date)
    if dispatcher is None:
        dispatcher = HTTPXDispatcher()
    return dispatcher.send(signed, timeout=config.timeout)
