"""Errors reported while verifying request signatures, and their XML form."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from http import HTTPStatus
from typing import Protocol

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'

_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&#34;",
    "'": "&#39;",
    "\t": "&#x9;",
    "\n": "&#xA;",
    "\r": "&#xD;",
}


class SignatureErrorCode(IntEnum):
    """Reasons a signature check can fail; ``NONE`` means it passed."""

    MISSING_FIELDS = 0
    MISSING_CRED_TAG = 1
    CRED_MALFORMED = 2
    INVALID_ACCESS_KEY_ID = 3
    MALFORMED_CREDENTIAL_DATE = 4
    INVALID_REQUEST_VERSION = 5
    INVALID_SERVICE_S3 = 6
    MISSING_SIGN_HEADERS_TAG = 7
    MISSING_SIGN_TAG = 8
    UNSIGNED_HEADERS = 9
    MISSING_DATE_HEADER = 10
    MALFORMED_DATE = 11
    UNSUPPORTED_ALGORITHM = 12
    SIGNATURE_DOES_NOT_MATCH = 13
    NONE = 14


@dataclass(frozen=True)
class APIError:
    """The code, description and HTTP status reported for a signature error."""

    code: str
    description: str
    http_status_code: int


_BAD_REQUEST = int(HTTPStatus.BAD_REQUEST)
_FORBIDDEN = int(HTTPStatus.FORBIDDEN)

_ERRORS: dict[SignatureErrorCode, APIError] = {
    SignatureErrorCode.MISSING_FIELDS: APIError(
        "MissingFields", "Missing fields in request.", _BAD_REQUEST
    ),
    SignatureErrorCode.MISSING_CRED_TAG: APIError(
        "InvalidRequest", "Missing Credential field for this request.", _BAD_REQUEST
    ),
    SignatureErrorCode.CRED_MALFORMED: APIError(
        "AuthorizationQueryParameterserror",
        "error parsing the X-Amz-Credential parameter; the Credential is mal-formed; "
        'expecting "<YOUR-AKID>/YYYYMMDD/REGION/SERVICE/aws4_request".',
        _BAD_REQUEST,
    ),
    SignatureErrorCode.INVALID_ACCESS_KEY_ID: APIError(
        "InvalidAccessKeyId",
        "The Access Key Id you provided does not exist in our records.",
        _FORBIDDEN,
    ),
    SignatureErrorCode.MALFORMED_CREDENTIAL_DATE: APIError(
        "AuthorizationQueryParameterserror",
        "error parsing the X-Amz-Credential parameter; incorrect date format. "
        'This date in the credential must be in the format "yyyyMMdd".',
        _BAD_REQUEST,
    ),
    SignatureErrorCode.INVALID_REQUEST_VERSION: APIError(
        "AuthorizationQueryParameterserror",
        "error parsing the X-Amz-Credential parameter; incorrect terminal. "
        'This endpoint uses "aws4_request".',
        _BAD_REQUEST,
    ),
    SignatureErrorCode.INVALID_SERVICE_S3: APIError(
        "AuthorizationParameterserror",
        "error parsing the Credential/X-Amz-Credential parameter; incorrect service. "
        'This endpoint belongs to "s3".',
        _BAD_REQUEST,
    ),
    SignatureErrorCode.MISSING_SIGN_HEADERS_TAG: APIError(
        "InvalidArgument", "Signature header missing SignedHeaders field.", _BAD_REQUEST
    ),
    SignatureErrorCode.MISSING_SIGN_TAG: APIError(
        "AccessDenied", "Signature header missing Signature field.", _BAD_REQUEST
    ),
    SignatureErrorCode.UNSIGNED_HEADERS: APIError(
        "AccessDenied",
        "There were headers present in the request which were not signed",
        _BAD_REQUEST,
    ),
    SignatureErrorCode.MISSING_DATE_HEADER: APIError(
        "AccessDenied",
        "AWS authentication requires a valid Date or x-amz-date header",
        _BAD_REQUEST,
    ),
    SignatureErrorCode.MALFORMED_DATE: APIError(
        "MalformedDate",
        "Invalid date format header, expected to be in ISO8601, RFC1123 or RFC1123Z time format.",
        _BAD_REQUEST,
    ),
    SignatureErrorCode.UNSUPPORTED_ALGORITHM: APIError(
        "UnsupportedAlgorithm", "Encountered an unsupported algorithm.", _BAD_REQUEST
    ),
    SignatureErrorCode.SIGNATURE_DOES_NOT_MATCH: APIError(
        "SignatureDoesNotMatch",
        "The request signature we calculated does not match the signature you provided. "
        "Check your key and signing method.",
        _FORBIDDEN,
    ),
}

_NO_ERROR = APIError("", "", 0)


class SignatureError(Exception):
    """Raised when a request's signature cannot be verified."""

    def __init__(self, code: SignatureErrorCode) -> None:
        self.code = SignatureErrorCode(code)
        self.api_error = get_api_error(self.code)
        super().__init__(self.api_error.description or self.code.name)


class XMLResponse(Protocol):
    def to_xml(self) -> str: ...


def _escape(text: str) -> str:
    return "".join(_ESCAPES.get(char, char) for char in text)


@dataclass(frozen=True)
class _ErrorResponse:
    code: str
    message: str

    def to_xml(self) -> str:
        return (
            "<errorResponse>"
            f"<Code>{_escape(self.code)}</Code>"
            f"<Message>{_escape(self.message)}</Message>"
            "</errorResponse>"
        )


def get_api_error(code: SignatureErrorCode) -> APIError:
    """Return the API error for ``code``; ``NONE`` maps to an empty error."""
    return _ERRORS.get(SignatureErrorCode(code), _NO_ERROR)


def encode_response(response: XMLResponse) -> bytes:
    """Encode ``response`` as an XML document with a declaration."""
    return (XML_HEADER + response.to_xml()).encode("utf-8")


def encode_api_error_to_response(err: APIError) -> bytes:
    """Encode an API error as the XML body of an error response."""
    return encode_response(_ErrorResponse(code=err.code, message=err.description))