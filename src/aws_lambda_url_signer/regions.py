"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

import re
from urllib.parse import urlsplit

from .exceptions import RegionResolutionError

AWS_REGION_RE = re.compile(r"(us(-gov)?|ap|ca|cn|eu|sa)-(central|(north|south)?(east|west)?)-\d")


def resolve_region(url: str) -> str:
    """Guess the AWS region from a function URL hostname.

    Function URLs look like ``https://<id>.lambda-url.<region>.on.aws/``. The
    hostname is only matched against the shape of a region name, the result is
    not checked against a list of real regions.
    """
    hostname = urlsplit(url).hostname or ""
    match = AWS_REGION_RE.search(hostname)
    if match is None:
        raise RegionResolutionError(
            "lambda function URL is malformed, impossible to guess AWS region"
        )
    return match.group(0)
