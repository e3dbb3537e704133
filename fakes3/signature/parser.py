"""Parsing of AWS Signature Version 4 Authorization headers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .apierrors import SignatureError, SignatureErrorCode

SIGN_V4_ALGORITHM = "AWS4-HMAC-SHA256"
SERVICE_S3 = "s3"
SLASH_SEPARATOR = "/"
ACCESS_KEY_MIN_LEN = 3

_DATE_PATTERN = re.compile(r"[0-9]{8}")


@dataclass
class Credentials:
    """An access key with its secret and optional session details."""

    access_key: str = ""
    secret_key: str = ""
    expiration: datetime | None = None
    session_token: str = ""
    status: str = ""
    parent_user: str = ""
    groups: list[str] = field(default_factory=list)
    claims: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SignScope:
    """The date, region, service and request type a signature is scoped to."""

    date: datetime
    region: str
    service: str
    request: str


@dataclass(frozen=True)
class CredentialHeader:
    """The structured form of the Credential field of an Authorization header."""

    access_key: str
    scope: SignScope

    def scope_string(self) -> str:
        """Return the scope as "YYYYMMDD/region/service/request"."""
        return SLASH_SEPARATOR.join(
            [
                self.scope.date.strftime("%Y%m%d"),
                self.scope.region,
                self.scope.service,
                self.scope.request,
            ]
        )


@dataclass(frozen=True)
class SignValues:
    """The structured form of a Signature Version 4 Authorization header."""

    credential: CredentialHeader
    signed_headers: list[str]
    signature: str


def _parse_date(text: str) -> datetime:
    if not _DATE_PATTERN.fullmatch(text):
        raise ValueError(text)
    return datetime.strptime(text, "%Y%m%d").replace(tzinfo=timezone.utc)


def extract_fields(element: str, field_name: str) -> str:
    """Return the value of a "name=value" element whose name must be ``field_name``."""
    fields = element.strip().split("=")
    if len(fields) != 2:
        raise SignatureError(SignatureErrorCode.MISSING_FIELDS)
    name, value = fields
    if name != field_name:
        raise SignatureError(SignatureErrorCode.MISSING_SIGN_TAG)
    if value == "":
        raise SignatureError(SignatureErrorCode.MISSING_FIELDS)
    return value


def parse_credential_header(element: str) -> CredentialHeader:
    """Parse "Credential=<key>/<date>/<region>/<service>/aws4_request"."""
    creds = extract_fields(element, "Credential")
    parts = creds.strip().split(SLASH_SEPARATOR)
    if len(parts) < 5:
        raise SignatureError(SignatureErrorCode.CRED_MALFORMED)

    access_key = SLASH_SEPARATOR.join(parts[:-4])
    date_text, region, service, request = parts[-4:]
    try:
        sign_date = _parse_date(date_text)
    except ValueError:
        raise SignatureError(SignatureErrorCode.MALFORMED_CREDENTIAL_DATE) from None

    if len(access_key) < ACCESS_KEY_MIN_LEN:
        raise SignatureError(SignatureErrorCode.INVALID_ACCESS_KEY_ID)
    if service != SERVICE_S3:
        raise SignatureError(SignatureErrorCode.INVALID_SERVICE_S3)
    if request != "aws4_request":
        raise SignatureError(SignatureErrorCode.INVALID_REQUEST_VERSION)

    return CredentialHeader(
        access_key=access_key,
        scope=SignScope(date=sign_date, region=region, service=service, request=request),
    )


def parse_signed_header(element: str) -> list[str]:
    """Parse "SignedHeaders=host;range;x-amz-date" into header names."""
    return extract_fields(element, "SignedHeaders").split(";")


def parse_signature(element: str) -> str:
    """Parse "Signature=<hex>" into the signature."""
    return extract_fields(element, "Signature")


def parse_sign_v4(auth: str) -> SignValues:
    """Parse a full Signature Version 4 Authorization header value."""
    if not auth.startswith(SIGN_V4_ALGORITHM):
        raise SignatureError(SignatureErrorCode.UNSUPPORTED_ALGORITHM)

    raw = auth[len(SIGN_V4_ALGORITHM):].replace(" ", "")
    fields = raw.strip().split(",")
    if len(fields) != 3:
        raise SignatureError(SignatureErrorCode.MISSING_FIELDS)

    return SignValues(
        credential=parse_credential_header(fields[0]),
        signed_headers=parse_signed_header(fields[1]),
        signature=parse_signature(fields[2]),
    )


def get_access_key(auth: str) -> str:
    """Return the access key named in an Authorization header value."""
    return parse_sign_v4(auth).credential.access_key