"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

import datetime
import re
from io import BytesIO

import pytest
from freezegun import freeze_time

from aws_lambda_url_signer import (
    URI,
    AWSCredentialIdentity,
    AWSRequest,
    ConfigurationError,
    Field,
    Fields,
)
from aws_lambda_url_signer.exceptions import MissingExpectedParameterException
from aws_lambda_url_signer.signers import (
    SigV4Signer,
    SigV4SigningProperties,
    format_signing_date,
)

SIGV4_RE = re.compile(
    r"AWS4-HMAC-SHA256 "
    r"Credential=(?P<access_key>\w+)/(?P<date>\d{8})/"
    r"(?P<signing_region>[a-z0-9-]+)/(?P<service>\w+)/aws4_request, "
    r"SignedHeaders=(?P<signed_headers>[a-z0-9;-]+), "
    r"Signature=(?P<signature>[0-9a-f]{64})$"
)
EPOCH = datetime.datetime.fromtimestamp(0, tz=datetime.timezone.utc)
LAMBDA_URL = "https://some-id.lambda-url.eu-west-1.on.aws/"


@pytest.fixture(scope="module")
def aws_identity() -> AWSCredentialIdentity:
    return AWSCredentialIdentity(
        access_key_id="AKID",
        secret_access_key="SECRET",
        session_token="SESSION",
    )


@pytest.fixture
def signing_properties() -> SigV4SigningProperties:
    return SigV4SigningProperties(region="eu-west-1", service="lambda", date=EPOCH)


def lambda_request(body=b"{}", fields=None, method="POST") -> AWSRequest:
    return AWSRequest(
        destination=URI.from_url(LAMBDA_URL),
        method=method,
        body=body,
        fields=fields or Fields(),
    )


class TestSigV4Signer:
    SIGV4_SYNC_SIGNER = SigV4Signer()

    def test_sign_matches_reference_vector(self, aws_identity, signing_properties):
        signed_request = self.SIGV4_SYNC_SIGNER.sign(
            signing_properties=signing_properties,
            request=lambda_request(),
            identity=aws_identity,
        )

        assert signed_request.fields["X-Amz-Date"].as_string() == "19700101T000000Z"
        assert signed_request.fields["Authorization"].as_string() == (
            "AWS4-HMAC-SHA256 "
            "Credential=AKID/19700101/eu-west-1/lambda/aws4_request, "
            "SignedHeaders=content-length;host;x-amz-date;x-amz-security-token, "
            "Signature=89d2a4858dac64a1699891c494929097f1c00e65e3bf8dbb99cc625bd7baad12"
        )
        assert signed_request.fields["X-Amz-Security-Token"].as_string() == "SESSION"
        assert signed_request.fields["Content-Length"].as_string() == "2"

    def test_sign_with_query_and_content_type(self):
        identity = AWSCredentialIdentity(access_key_id="AKID", secret_access_key="SECRET")
        request = AWSRequest(
            destination=URI.from_url(
                "https://abc.lambda-url.us-east-1.on.aws/path/to?b=2&a=1"
            ),
            method="get",
            fields=Fields(
                [
                    Field(name="Content-Type", values=["application/json"]),
                    Field(name="Accept", values=["*"]),
                ]
            ),
        )
        signed_request = self.SIGV4_SYNC_SIGNER.sign(
            signing_properties=SigV4SigningProperties(
                region="us-east-1", service="lambda", date="20240229T235959Z"
            ),
            request=request,
            identity=identity,
        )

        match = SIGV4_RE.match(signed_request.fields["Authorization"].as_string())
        assert match is not None
        assert match.group("signed_headers") == "content-type;host;x-amz-date"
        assert match.group("signature") == (
            "4c25ae7a6b29ce4f4732a552b9a537537a357bd55f3b54d565ac83a1e76bdb75"
        )
        assert "X-Amz-Security-Token" not in signed_request.fields
        assert "Content-Length" not in signed_request.fields
        assert signed_request.fields["Accept"].as_string() == "*"

    def test_sign_returns_new_request(self, aws_identity, signing_properties):
        request = lambda_request()
        signed_request = self.SIGV4_SYNC_SIGNER.sign(
            signing_properties=signing_properties,
            request=request,
            identity=aws_identity,
        )
        assert isinstance(signed_request, AWSRequest)
        assert signed_request is not request
        assert "authorization" in signed_request.fields
        assert "authorization" not in request.fields
        assert "x-amz-date" not in request.fields
        assert signing_properties["date"] == EPOCH

    def test_signing_is_deterministic(self, aws_identity, signing_properties):
        first, second = (
            self.SIGV4_SYNC_SIGNER.sign(
                signing_properties=signing_properties,
                request=lambda_request(),
                identity=aws_identity,
            )
            for _ in range(2)
        )
        assert (
            first.fields["Authorization"].as_string()
            == second.fields["Authorization"].as_string()
        )

    def test_signed_header_value_changes_signature(
        self, aws_identity, signing_properties
    ):
        def signature_for(content_type: str) -> str:
            fields = Fields([Field(name="Content-Type", values=[content_type])])
            signed = self.SIGV4_SYNC_SIGNER.sign(
                signing_properties=signing_properties,
                request=lambda_request(fields=fields),
                identity=aws_identity,
            )
            return signed.fields["Authorization"].as_string()

        assert signature_for("application/json") != signature_for("text/plain")

    def test_unsigned_header_does_not_change_signature(
        self, aws_identity, signing_properties
    ):
        def authorization_for(accept: str) -> str:
            fields = Fields([Field(name="Accept", values=[accept])])
            signed = self.SIGV4_SYNC_SIGNER.sign(
                signing_properties=signing_properties,
                request=lambda_request(fields=fields),
                identity=aws_identity,
            )
            return signed.fields["Authorization"].as_string()

        assert authorization_for("*") == authorization_for("application/json")

    def test_stream_body_is_buffered_for_sending(
        self, aws_identity, signing_properties
    ):
        def chunks():
            yield b"{"
            yield b"}"

        signed_request = self.SIGV4_SYNC_SIGNER.sign(
            signing_properties=signing_properties,
            request=lambda_request(body=chunks()),
            identity=aws_identity,
        )

        assert signed_request.body.read() == b"{}"
        match = SIGV4_RE.match(signed_request.fields["Authorization"].as_string())
        assert match is not None
        assert match.group("signature") == (
            "89d2a4858dac64a1699891c494929097f1c00e65e3bf8dbb99cc625bd7baad12"
        )

    def test_seekable_body_is_rewound(self, aws_identity, signing_properties):
        body = BytesIO(b"{}")
        signed_request = self.SIGV4_SYNC_SIGNER.sign(
            signing_properties=signing_properties,
            request=lambda_request(body=body),
            identity=aws_identity,
        )
        assert signed_request.body is body
        assert body.tell() == 0
        assert body.read() == b"{}"

    def test_caller_security_token_dropped_without_session(self, signing_properties):
        identity = AWSCredentialIdentity(access_key_id="AKID", secret_access_key="SECRET")
        fields = Fields([Field(name="X-Amz-Security-Token", values=["stale"])])
        signed_request = self.SIGV4_SYNC_SIGNER.sign(
            signing_properties=signing_properties,
            request=lambda_request(fields=fields),
            identity=identity,
        )
        assert "X-Amz-Security-Token" not in signed_request.fields
        match = SIGV4_RE.match(signed_request.fields["Authorization"].as_string())
        assert match.group("signed_headers") == "content-length;host;x-amz-date"

    @freeze_time("2023-12-15 12:00:00")
    def test_sign_without_date_uses_current_time(self, aws_identity):
        signed_request = self.SIGV4_SYNC_SIGNER.sign(
            signing_properties=SigV4SigningProperties(
                region="eu-west-1", service="lambda"
            ),
            request=lambda_request(),
            identity=aws_identity,
        )
        assert signed_request.fields["X-Amz-Date"].as_string() == "20231215T120000Z"
        match = SIGV4_RE.match(signed_request.fields["Authorization"].as_string())
        assert match.group("date") == "20231215"

    @pytest.mark.parametrize(
        "identity",
        [
            AWSCredentialIdentity(access_key_id="", secret_access_key="SECRET"),
            AWSCredentialIdentity(access_key_id="AKID", secret_access_key=""),
        ],
    )
    def test_sign_requires_credentials(self, identity, signing_properties):
        with pytest.raises(ConfigurationError):
            self.SIGV4_SYNC_SIGNER.sign(
                signing_properties=signing_properties,
                request=lambda_request(),
                identity=identity,
            )

    def test_sign_rejects_unknown_identity(self, signing_properties):
        with pytest.raises(ValueError):
            self.SIGV4_SYNC_SIGNER.sign(
                signing_properties=signing_properties,
                request=lambda_request(),
                identity=("AKID", "SECRET"),  # type: ignore[arg-type]
            )


class TestSigningSteps:
    SIGNER = SigV4Signer()
    PROPERTIES = SigV4SigningProperties(
        region="eu-west-1", service="lambda", date="19700101T000000Z"
    )

    def test_signing_key(self):
        key = self.SIGNER.signing_key(
            secret_key="SECRET", signing_properties=self.PROPERTIES
        )
        assert key.hex() == (
            "b7cba117aab210c5ec84c93e3dc83f456d59032554b769f4f8854e053adea9d5"
        )

    def test_canonical_request(self):
        request = lambda_request()
        request.fields.set_field(Field(name="X-Amz-Date", values=["19700101T000000Z"]))
        request.fields.set_field(Field(name="X-Amz-Security-Token", values=["SESSION"]))
        request.fields.set_field(Field(name="Content-Length", values=["2"]))
        expected_fields = Fields(list(request.fields))
        body = BytesIO(b"{}")
        request.body = body

        canonical = self.SIGNER.canonical_request(
            signing_properties=self.PROPERTIES,
            request=request,
            payload_hash=(
                "44136fa355b3678a1146ad16f7e8649e94fb4fc21fe77e8310c060f61caaff8a"
            ),
        )

        assert canonical == (
            "POST\n"
            "/\n"
            "\n"
            "content-length:2\n"
            "host:some-id.lambda-url.eu-west-1.on.aws\n"
            "x-amz-date:19700101T000000Z\n"
            "x-amz-security-token:SESSION\n"
            "\n"
            "content-length;host;x-amz-date;x-amz-security-token\n"
            "44136fa355b3678a1146ad16f7e8649e94fb4fc21fe77e8310c060f61caaff8a"
        )
        assert request.body is body
        assert body.tell() == 0
        assert request.fields == expected_fields

    def test_canonical_request_leaves_request_unchanged(self):
        request = lambda_request(body=iter([b"{}"]))
        body = request.body

        self.SIGNER.canonical_request(
            signing_properties=self.PROPERTIES,
            request=request,
            payload_hash="unused",
        )

        assert request.body is body
        assert "Content-Length" not in request.fields
        assert list(body) == [b"{}"]

    def test_string_to_sign(self):
        string_to_sign = self.SIGNER.string_to_sign(
            canonical_request="", signing_properties=self.PROPERTIES
        )
        assert string_to_sign == (
            "AWS4-HMAC-SHA256\n"
            "19700101T000000Z\n"
            "19700101/eu-west-1/lambda/aws4_request\n"
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_string_to_sign_requires_date(self):
        with pytest.raises(MissingExpectedParameterException):
            self.SIGNER.string_to_sign(
                canonical_request="",
                signing_properties=SigV4SigningProperties(
                    region="eu-west-1", service="lambda"
                ),
            )

    @pytest.mark.parametrize(
        "path, expected",
        [
            (None, "/"),
            ("", "/"),
            ("/", "/"),
            ("/foo/./bar/../baz", "/foo/baz"),
            ("/a-b_c.d~e", "/a-b_c.d~e"),
            ("/already%20encoded", "/already%2520encoded"),
        ],
    )
    def test_canonical_path(self, path, expected):
        assert self.SIGNER._format_canonical_path(path=path) == expected

    @pytest.mark.parametrize(
        "query, expected",
        [
            (None, ""),
            ("", ""),
            ("b=2&a=1", "a=1&b=2"),
            ("a=2&a=1", "a=1&a=2"),
            ("flag&x=y z", "flag=&x=y%20z"),
            ("key=a/b", "key=a%2Fb"),
        ],
    )
    def test_canonical_query(self, query, expected):
        assert self.SIGNER._format_canonical_query(query=query) == expected

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://example.com:443/", "example.com"),
            ("http://example.com:80/", "example.com"),
            ("https://example.com:8443/", "example.com:8443"),
        ],
    )
    def test_host_field_drops_default_port(self, url, expected):
        assert self.SIGNER._normalize_host_field(uri=URI.from_url(url)) == expected

    def test_canonical_fields_trim_values(self):
        fields = {"content-type": "  application/json  ", "host": "a  b"}
        assert self.SIGNER._format_canonical_fields(fields=fields) == (
            "content-type:application/json\nhost:a b\n"
        )


class TestFormatSigningDate:
    def test_epoch(self):
        assert format_signing_date(EPOCH) == "19700101T000000Z"

    def test_naive_datetime_is_utc(self):
        assert (
            format_signing_date(datetime.datetime(2024, 2, 29, 23, 59, 59))
            == "20240229T235959Z"
        )

    def test_aware_datetime_converted_to_utc(self):
        offset = datetime.timezone(datetime.timedelta(hours=2))
        date = datetime.datetime(2024, 3, 1, 1, 30, tzinfo=offset)
        assert format_signing_date(date) == "20240229T233000Z"

    def test_string_passthrough(self):
        assert format_signing_date("20240229T235959Z") == "20240229T235959Z"


class TestPathEscaping:
    SIGNER = SigV4Signer()

    @pytest.fixture
    def identity(self) -> AWSCredentialIdentity:
        return AWSCredentialIdentity(access_key_id="AKID", secret_access_key="SECRET")

    def _sign_url(self, url: str, identity: AWSCredentialIdentity) -> AWSRequest:
        return self.SIGNER.sign(
            signing_properties=SigV4SigningProperties(
                region="eu-west-1", service="lambda", date=EPOCH
            ),
            request=AWSRequest(destination=URI.from_url(url), method="GET"),
            identity=identity,
        )

    def test_escaped_and_unescaped_paths_sign_alike(self, identity):
        literal = self._sign_url(
            "https://x.lambda-url.eu-west-1.on.aws/a b", identity
        )
        escaped = self._sign_url(
            "https://x.lambda-url.eu-west-1.on.aws/a%20b", identity
        )

        assert literal.destination.build() == escaped.destination.build()
        assert (
            literal.fields["Authorization"].as_string()
            == escaped.fields["Authorization"].as_string()
        )

    def test_sent_path_is_escaped_again_for_signing(self):
        uri = URI.from_url("https://x.lambda-url.eu-west-1.on.aws/a b/ü")
        assert uri.path == "/a%20b/%C3%BC"
        assert self.SIGNER._format_canonical_path(path=uri.path) == (
            "/a%2520b/%25C3%25BC"
        )
