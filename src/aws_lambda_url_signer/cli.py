"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0

Command line entry point, usable as a GitHub Action.
"""

import argparse
import logging
import os
import sys
import uuid
from collections.abc import Mapping, Sequence
from typing import TextIO

from .config import InvokeConfiguration
from .dispatch import DEFAULT_TIMEOUT, Dispatcher, InvokeResponse
from .exceptions import LambdaURLSignerException
from .invoke import invoke

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aws-lambda-url-invoke",
        description="Call an IAM protected AWS Lambda function URL with a SigV4 signed request.",
    )
    parser.add_argument(
        "--lambda-url",
        default="",
        help="The lambda function URL, should be https://<id>.lambda-url.<region>.on.aws/something.",
    )
    parser.add_argument(
        "--body",
        default="",
        help="The body associated with the request (POST request).",
    )
    parser.add_argument(
        "--method",
        default="GET",
        help="HTTP Method used to call the Lambda function.",
    )
    parser.add_argument("--headers", default="", help="List of Headers")
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="Seconds to wait for the function URL to answer.",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def write_outputs(
    response: InvokeResponse,
    *,
    environ: Mapping[str, str],
    stdout: TextIO,
) -> None:
    """Export status, code and message as workflow outputs."""
    outputs = {
        "status": response.status,
        "code": str(response.status_code),
        "message": response.text,
    }
    github_output = environ.get("GITHUB_OUTPUT")
    if github_output:
        with open(github_output, "a", encoding="utf-8") as f:
            for name, value in outputs.items():
                delimiter = f"ghadelimiter_{uuid.uuid4()}"
                f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
    else:
        for name, value in outputs.items():
            stdout.write(f"::set-output name={name}::{value}\n")


def main(
    argv: Sequence[str] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    dispatcher: Dispatcher | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    args = build_parser().parse_args(argv)
    environ = os.environ if environ is None else environ
    stdout = sys.stdout if stdout is None else stdout
    stderr = sys.stderr if stderr is None else stderr

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=stderr,
    )

    try:
        config = InvokeConfiguration.from_environ(
            environ,
            lambda_url=args.lambda_url,
            method=args.method,
            body=args.body,
            headers=args.headers,
            timeout=args.timeout,
        )
        logger.debug("Invoking %s %s", config.method.upper(), config.lambda_url)
        response = invoke(config, dispatcher=dispatcher)
    except LambdaURLSignerException as e:
        stderr.write(f"{e}\n")
        return 1

    stdout.write(f"status code: {response.status}, response: {response.text}\n")
    write_outputs(response, environ=environ, stdout=stdout)
    return 0
