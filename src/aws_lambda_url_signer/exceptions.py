"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""


class SignerWarning(UserWarning): ...


class LambdaURLSignerException(Exception):
    """Top-level exception to capture signing and invocation errors."""

    ...


class ConfigurationError(LambdaURLSignerException, ValueError):
    """A required credential or the target URL is missing."""

    ...


class RegionResolutionError(LambdaURLSignerException, ValueError):
    """No region was given and none could be guessed from the hostname."""

    ...


class MissingExpectedParameterException(LambdaURLSignerException, ValueError):
    """Some APIs require specific signing properties to be present."""

    ...


class TransportError(LambdaURLSignerException):
    """The signed request could not be sent or the connection failed."""

    ...
