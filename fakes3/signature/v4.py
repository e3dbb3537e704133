"""Verification of AWS Signature Version 4 signed requests."""

from __future__ import annotations

import hashlib
import hmac
import re
import string
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .apierrors import SignatureError, SignatureErrorCode
from .parser import SERVICE_S3, SIGN_V4_ALGORITHM, Credentials, parse_sign_v4

EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

HEADER_AUTH = "Authorization"
HEADER_DATE = "Date"
AMZ_CONTENT_SHA256 = "X-Amz-Content-Sha256"
AMZ_DATE = "X-Amz-Date"

_ISO8601_PATTERN = re.compile(r"[0-9]{8}T[0-9]{6}Z")
_RESERVED_OBJECT_NAMES = re.compile(r"[a-zA-Z0-9\-_.~/]+")
_TOKEN_CHARS = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-.^_`|~")
_UNRESERVED_MARKS = frozenset("-_.~/")


def _canonical_key(name: str) -> str:
    if not name or any(char not in _TOKEN_CHARS for char in name):
        return name
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


def _as_list(value: str | Sequence[str]) -> list[str]:
    return [value] if isinstance(value, str) else list(value)


@dataclass
class Request:
    """The parts of an HTTP request that take part in signature verification.

    ``path`` is the decoded URL path and ``query`` the raw query string.
    Header names are canonicalised; values may be a string or a list.
    """

    method: str
    path: str
    query: str = ""
    headers: Mapping[str, str | Sequence[str]] = field(default_factory=dict)
    host: str = ""
    form: Mapping[str, str | Sequence[str]] = field(default_factory=dict)
    transfer_encoding: list[str] = field(default_factory=list)
    content_length: int = 0

    def __post_init__(self) -> None:
        headers: dict[str, list[str]] = {}
        for name, value in self.headers.items():
            headers.setdefault(_canonical_key(name), []).extend(_as_list(value))
        self.headers = headers
        self.form = {name: _as_list(value) for name, value in self.form.items()}

    def header(self, name: str) -> str:
        """Return the first value of header ``name``, or "" if it is absent."""
        values = self.headers.get(_canonical_key(name))
        return values[0] if values else ""


class CredentialStore:
    """A thread-safe map of access keys to their credentials."""

    def __init__(self) -> None:
        self._creds: dict[str, Credentials] = {}
        self._lock = threading.Lock()

    def store_keys(self, pairs: Mapping[str, str]) -> None:
        """Add or replace the given access key to secret key pairs."""
        with self._lock:
            for access_key, secret_key in pairs.items():
                self._creds[access_key] = Credentials(access_key=access_key, secret_key=secret_key)

    def reload_keys(self, pairs: Mapping[str, str]) -> None:
        """Replace the stored keys with exactly the given pairs."""
        with self._lock:
            for access_key in [key for key in self._creds if key not in pairs]:
                del self._creds[access_key]
        self.store_keys(pairs)

    def lookup(self, access_key: str) -> Credentials:
        """Return the credentials for ``access_key``."""
        with self._lock:
            creds = self._creds.get(access_key)
        if creds is None:
            raise SignatureError(SignatureErrorCode.INVALID_ACCESS_KEY_ID)
        return creds


_default_store = CredentialStore()


def store_keys(pairs: Mapping[str, str]) -> None:
    """Add key pairs to the shared credential store."""
    _default_store.store_keys(pairs)


def reload_keys(pairs: Mapping[str, str]) -> None:
    """Replace the contents of the shared credential store."""
    _default_store.reload_keys(pairs)


def encode_path(path: str) -> str:
    """Percent-encode a path as UTF-8, leaving unreserved characters alone."""
    if _RESERVED_OBJECT_NAMES.fullmatch(path):
        return path
    out = []
    for char in path:
        if ("A" <= char <= "Z" or "a" <= char <= "z" or "0" <= char <= "9"
                or char in _UNRESERVED_MARKS):
            out.append(char)
            continue
        try:
            encoded = char.encode("utf-8")
        except UnicodeEncodeError:
            return path
        out.extend(f"%{byte:02X}" for byte in encoded)
    return "".join(out)


def extract_signed_headers(signed_headers: Sequence[str], request: Request) -> dict[str, list[str]]:
    """Collect the values of the signed headers; "host" must be among them."""
    if "host" not in signed_headers:
        raise SignatureError(SignatureErrorCode.UNSIGNED_HEADERS)

    extracted: dict[str, list[str]] = {}
    for header in signed_headers:
        key = _canonical_key(header)
        values = request.headers.get(key)
        if values is None:
            values = request.form.get(header)
        if values is not None:
            extracted[key] = list(values)
            continue
        if header == "expect":
            # Clients send the expectation that servers tend to strip.
            extracted[key] = ["100-continue"]
        elif header == "host":
            extracted[key] = [request.host]
        elif header == "transfer-encoding":
            extracted[key] = list(request.transfer_encoding)
        elif header == "content-length":
            extracted[key] = [str(request.content_length)]
        else:
            raise SignatureError(SignatureErrorCode.UNSIGNED_HEADERS)
    return extracted


def get_content_sha256(request: Request) -> str:
    """Return the declared payload hash, or the hash of an empty payload."""
    values = request.headers.get(AMZ_CONTENT_SHA256)
    if values:
        return values[0]
    return EMPTY_SHA256


def _trim_all(value: str) -> str:
    return " ".join(value.split())


def get_canonical_headers(headers: Mapping[str, Sequence[str]]) -> str:
    """Render headers as sorted "name:value" lines with whitespace collapsed."""
    values = {name.lower(): vals for name, vals in headers.items()}
    names = sorted(name.lower() for name in headers)
    return "".join(
        f"{name}:{','.join(_trim_all(value) for value in values[name])}\n" for name in names
    )


def get_signed_headers(headers: Mapping[str, Sequence[str]]) -> str:
    """Return the sorted, semicolon-separated lowercase header names."""
    return ";".join(sorted(name.lower() for name in headers))


def get_canonical_request(
    headers: Mapping[str, Sequence[str]], payload: str, query: str, path: str, method: str
) -> str:
    """Build the canonical request that the signature covers."""
    return "\n".join(
        [
            method,
            encode_path(path),
            query.replace("+", "%20"),
            get_canonical_headers(headers),
            get_signed_headers(headers),
            payload,
        ]
    )


def get_string_to_sign(canonical_request: str, moment: datetime, scope: str) -> str:
    """Build the string to sign from the canonical request, time and scope."""
    digest = hashlib.sha256(canonical_request.encode("utf-8")).hexdigest()
    return f"{SIGN_V4_ALGORITHM}\n{moment.strftime('%Y%m%dT%H%M%SZ')}\n{scope}\n{digest}"


def _sum_hmac(key: bytes, data: str) -> bytes:
    return hmac.new(key, data.encode("utf-8"), hashlib.sha256).digest()


def get_signing_key(secret_key: str, moment: datetime, region: str) -> bytes:
    """Derive the signing key for a secret, date and region."""
    date_key = _sum_hmac(("AWS4" + secret_key).encode("utf-8"), moment.strftime("%Y%m%d"))
    region_key = _sum_hmac(date_key, region)
    service_key = _sum_hmac(region_key, SERVICE_S3)
    return _sum_hmac(service_key, "aws4_request")


def get_signature(signing_key: bytes, string_to_sign: str) -> str:
    """Return the hex signature of ``string_to_sign``."""
    return _sum_hmac(signing_key, string_to_sign).hex()


def _parse_amz_date(text: str) -> datetime:
    if not _ISO8601_PATTERN.fullmatch(text):
        raise ValueError(text)
    return datetime.strptime(text, "%Y%m%dT%H%M%SZ").replace(tzinfo=timezone.utc)


def v4_sign_verify(request: Request, store: CredentialStore | None = None) -> Credentials:
    """Verify the request's Authorization header; return the matching credentials."""
    store = store if store is not None else _default_store
    hashed_payload = get_content_sha256(request)

    values = parse_sign_v4(request.header(HEADER_AUTH))
    creds = store.lookup(values.credential.access_key)
    extracted = extract_signed_headers(values.signed_headers, request)

    date = request.header(AMZ_DATE) or request.header(HEADER_DATE)
    if not date:
        raise SignatureError(SignatureErrorCode.MISSING_DATE_HEADER)
    try:
        moment = _parse_amz_date(date)
    except ValueError:
        raise SignatureError(SignatureErrorCode.MALFORMED_DATE) from None

    canonical = get_canonical_request(
        extracted, hashed_payload, request.query, request.path, request.method
    )
    string_to_sign = get_string_to_sign(canonical, moment, values.credential.scope_string())
    signing_key = get_signing_key(
        creds.secret_key, values.credential.scope.date, values.credential.scope.region
    )
    expected = get_signature(signing_key, string_to_sign)

    if not hmac.compare_digest(expected.encode("utf-8"), values.signature.encode("utf-8")):
        raise SignatureError(SignatureErrorCode.SIGNATURE_DOES_NOT_MATCH)
    return creds