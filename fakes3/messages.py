"""Request and response messages exchanged with S3 clients, with their XML forms."""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from itertools import pairwise
from typing import Union

from .errors import (
    ErrorCode,
    ErrorResponse,
    ResourceErrorResponse,
    S3Error,
    error_message,
)
from .prefix import CommonPrefix, Prefix

S3_XMLNS = "http://s3.amazonaws.com/doc/2006-03-01/"
STORAGE_STANDARD = "STANDARD"

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

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


# --- XML writing -----------------------------------------------------------


def _escape(text: str) -> str:
    return "".join(_ESCAPES.get(char, char) for char in text)


def _fmt(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _leaf(tag: str, value: object) -> str:
    return f"<{tag}>{_escape(_fmt(value))}</{tag}>"


def _opt(tag: str, value: object) -> str:
    """An element that is left out when its value is empty."""
    if isinstance(value, Enum):
        value = value.value
    return _leaf(tag, value) if value else ""


def _time(tag: str, moment: datetime | None) -> str:
    return "" if moment is None else _leaf(tag, format_content_time(moment))


def _node(tag: str, *children: str, xmlns: str | None = None) -> str:
    attrs = f' xmlns="{_escape(xmlns)}"' if xmlns else ""
    return f"<{tag}{attrs}>{''.join(children)}</{tag}>"


def _owner(tag: str, owner: UserInfo | None) -> str:
    return "" if owner is None else owner._xml(tag)


def _prefixes(prefixes: Iterable[CommonPrefix]) -> str:
    return "".join(_node("CommonPrefixes", _leaf("Prefix", p.prefix)) for p in prefixes)


# --- XML reading -----------------------------------------------------------


def _parse(data: bytes | str) -> ET.Element:
    try:
        return ET.fromstring(data)
    except ET.ParseError as exc:
        raise error_message(ErrorCode.MALFORMED_XML, str(exc)) from None


def _local(tag: str) -> str:
    return tag.rpartition("}")[2]


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if _local(child.tag) == name]


def _child_text(element: ET.Element, name: str) -> str | None:
    found = _children(element, name)
    if not found:
        return None
    return "".join(found[-1].itertext())


def _parse_int(text: str | None) -> int:
    text = (text or "").strip()
    if not text:
        return 0
    try:
        return int(text)
    except ValueError:
        raise error_message(ErrorCode.MALFORMED_XML, f"invalid integer {text!r}") from None


def _parse_bool(text: str | None) -> bool:
    text = (text or "").strip()
    if not text or text in _FALSE_WORDS:
        return False
    if text in _TRUE_WORDS:
        return True
    raise error_message(ErrorCode.MALFORMED_XML, f"invalid boolean {text!r}")


# --- Messages --------------------------------------------------------------


def format_content_time(moment: datetime) -> str:
    """Format a time the way AWS clients expect: milliseconds at most, literal 'Z'."""
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    millis = moment.microsecond // 1000
    if millis:
        text += f".{millis:03d}".rstrip("0")
    return text + "Z"


@dataclass
class UserInfo:
    id: str = ""
    display_name: str = ""

    def _xml(self, tag: str) -> str:
        return _node(tag, _leaf("ID", self.id), _leaf("DisplayName", self.display_name))


@dataclass
class BucketInfo:
    """A single bucket in a bucket listing."""

    name: str
    creation_date: datetime | None = None

    def _xml(self) -> str:
        return _node("Bucket", _leaf("Name", self.name), _time("CreationDate", self.creation_date))


def bucket_names(buckets: Iterable[BucketInfo]) -> list[str]:
    """Return the sorted names of ``buckets``."""
    return sorted(bucket.name for bucket in buckets)


@dataclass
class Storage:
    """The response to a request listing all buckets."""

    buckets: list[BucketInfo] = field(default_factory=list)
    owner: UserInfo | None = None
    xmlns: str = S3_XMLNS

    def to_xml(self) -> str:
        inner = "".join(bucket._xml() for bucket in self.buckets)
        return _node(
            "ListAllMyBucketsResult",
            _owner("Owner", self.owner),
            _node("Buckets", inner) if self.buckets else "",
            xmlns=self.xmlns,
        )


@dataclass
class CompletedPart:
    part_number: int
    etag: str = ""


@dataclass
class CompleteMultipartUploadRequest:
    parts: list[CompletedPart] = field(default_factory=list)

    @classmethod
    def from_xml(cls, data: bytes | str) -> CompleteMultipartUploadRequest:
        root = _parse(data)
        return cls(
            parts=[
                CompletedPart(
                    part_number=_parse_int(_child_text(part, "PartNumber")),
                    etag=_child_text(part, "ETag") or "",
                )
                for part in _children(root, "Part")
            ]
        )

    def part_ids(self) -> list[int]:
        """The part numbers of the request, sorted."""
        return sorted(part.part_number for part in self.parts)

    def parts_are_sorted(self) -> bool:
        return all(a <= b for a, b in pairwise(self.part_ids()))


@dataclass
class CompleteMultipartUploadResult:
    location: str = ""
    bucket: str = ""
    key: str = ""
    etag: str = ""

    def to_xml(self) -> str:
        return _node(
            "CompleteMultipartUploadResult",
            _leaf("Location", self.location),
            _leaf("Bucket", self.bucket),
            _leaf("Key", self.key),
            _leaf("ETag", self.etag),
        )


@dataclass
class Content:
    """An object entry in a bucket listing."""

    key: str
    last_modified: datetime | None = None
    etag: str = ""
    size: int = 0
    storage_class: str = ""
    owner: UserInfo | None = None

    def _xml(self, tag: str = "Contents") -> str:
        return _node(
            tag,
            _leaf("Key", self.key),
            _time("LastModified", self.last_modified),
            _leaf("ETag", self.etag),
            _leaf("Size", self.size),
            _opt("StorageClass", self.storage_class),
            _owner("Owner", self.owner),
        )


@dataclass
class ObjectID:
    key: str
    version_id: str = ""

    def _xml(self, tag: str) -> str:
        return _node(tag, _leaf("Key", self.key), _opt("VersionId", self.version_id))


@dataclass
class DeleteRequest:
    """A multi-object delete request."""

    objects: list[ObjectID] = field(default_factory=list)
    # In quiet mode only keys whose deletion failed are reported.
    quiet: bool = False

    @classmethod
    def from_xml(cls, data: bytes | str) -> DeleteRequest:
        root = _parse(data)
        return cls(
            objects=[
                ObjectID(
                    key=_child_text(obj, "Key") or "",
                    version_id=_child_text(obj, "VersionId") or "",
                )
                for obj in _children(root, "Object")
            ],
            quiet=_parse_bool(_child_text(root, "Quiet")),
        )


@dataclass
class ErrorResult:
    key: str = ""
    code: ErrorCode = ErrorCode.NONE
    message: str = ""
    resource: str = ""
    request_id: str = ""

    @classmethod
    def from_error(cls, err: BaseException) -> ErrorResult:
        if isinstance(err, ResourceErrorResponse):
            return cls(
                resource=err.resource,
                request_id=err.request_id,
                message=err.message,
                code=err.code,
            )
        if isinstance(err, ErrorResponse):
            return cls(request_id=err.request_id, message=err.message, code=err.code)
        if isinstance(err, S3Error):
            return cls(code=err.code)
        return cls(code=ErrorCode.INTERNAL)

    def __str__(self) -> str:
        return f"{self.key}: [{self.code}] {self.message}"

    def _xml(self) -> str:
        return _node(
            "Error",
            _opt("Key", self.key),
            _opt("Code", self.code),
            _opt("Message", self.message),
            _opt("Resource", self.resource),
            _opt("RequestId", self.request_id),
        )


@dataclass
class MultiDeleteResult:
    deleted: list[ObjectID] = field(default_factory=list)
    errors: list[ErrorResult] = field(default_factory=list)

    def as_error(self) -> Exception | None:
        """An exception describing every failed deletion, or None if none failed."""
        if not self.errors:
            return None
        lines = "\n".join(str(err) for err in self.errors)
        return RuntimeError(f"fakes3: multi delete failed:\n{lines}")

    def to_xml(self) -> str:
        return _node(
            "DeleteResult",
            *(obj._xml("Deleted") for obj in self.deleted),
            *(err._xml() for err in self.errors),
        )


@dataclass
class InitiateMultipartUpload:
    bucket: str
    key: str
    upload_id: str

    def to_xml(self) -> str:
        return _node(
            "InitiateMultipartUpload",
            _leaf("Bucket", self.bucket),
            _leaf("Key", self.key),
            _leaf("UploadId", self.upload_id),
        )


@dataclass
class ObjectList:
    """Contents and common prefixes collected while listing a bucket."""

    common_prefixes: list[CommonPrefix] = field(default_factory=list)
    contents: list[Content] = field(default_factory=list)
    is_truncated: bool = False
    next_marker: str = ""
    _seen: set[str] = field(default_factory=set, repr=False, compare=False)

    def add(self, content: Content) -> None:
        self.contents.append(content)

    def add_prefix(self, prefix: str) -> None:
        """Add a common prefix unless it was already added."""
        if prefix in self._seen:
            return
        self._seen.add(prefix)
        self.common_prefixes.append(CommonPrefix(prefix=prefix))


@dataclass
class _ListBucketResultBase:
    name: str = ""
    is_truncated: bool = False
    # Keys sharing the part up to the delimiter are rolled into one common prefix,
    # which counts once against max_keys.
    delimiter: str = ""
    prefix: str = ""
    max_keys: int = 0
    common_prefixes: list[CommonPrefix] = field(default_factory=list)
    contents: list[Content] = field(default_factory=list)
    xmlns: str = S3_XMLNS

    def _base_xml(self) -> list[str]:
        return [
            _leaf("Name", self.name),
            _leaf("IsTruncated", self.is_truncated),
            _opt("Delimiter", self.delimiter),
            _leaf("Prefix", self.prefix),
            _opt("MaxKeys", self.max_keys),
            _prefixes(self.common_prefixes),
            *(content._xml() for content in self.contents),
        ]


@dataclass
class ListBucketResult(_ListBucketResultBase):
    marker: str = ""
    next_marker: str = ""

    def to_xml(self) -> str:
        return _node(
            "ListBucketResult",
            *self._base_xml(),
            _leaf("Marker", self.marker),
            _opt("NextMarker", self.next_marker),
            xmlns=self.xmlns,
        )


@dataclass
class ListBucketResultV2(_ListBucketResultBase):
    continuation_token: str = ""
    key_count: int = 0
    next_continuation_token: str = ""
    start_after: str = ""
    encoding_type: str = ""

    def to_xml(self) -> str:
        return _node(
            "ListBucketResult",
            *self._base_xml(),
            _opt("ContinuationToken", self.continuation_token),
            _opt("KeyCount", self.key_count),
            _opt("NextContinuationToken", self.next_continuation_token),
            _opt("StartAfter", self.start_after),
            _opt("EncodingType", self.encoding_type),
            xmlns=self.xmlns,
        )


@dataclass
class GetBucketLocation:
    location_constraint: str = ""
    xmlns: str = S3_XMLNS

    def to_xml(self) -> str:
        return _node("LocationConstraint", _escape(self.location_constraint), xmlns=self.xmlns)


@dataclass
class DeleteMarker:
    key: str
    version_id: str = ""
    is_latest: bool = False
    last_modified: datetime | None = None
    owner: UserInfo | None = None

    def _xml(self) -> str:
        return _node(
            "DeleteMarker",
            _leaf("Key", self.key),
            _leaf("VersionId", self.version_id),
            _leaf("IsLatest", self.is_latest),
            _time("LastModified", self.last_modified),
            _owner("Owner", self.owner),
        )


@dataclass
class Version:
    key: str
    version_id: str = ""
    is_latest: bool = False
    last_modified: datetime | None = None
    size: int = 0
    # Always STANDARD for a version, according to the S3 docs.
    storage_class: str = ""
    etag: str = ""
    owner: UserInfo | None = None

    def _xml(self) -> str:
        return _node(
            "Version",
            _leaf("Key", self.key),
            _leaf("VersionId", self.version_id),
            _leaf("IsLatest", self.is_latest),
            _time("LastModified", self.last_modified),
            _leaf("Size", self.size),
            _leaf("StorageClass", self.storage_class or STORAGE_STANDARD),
            _leaf("ETag", self.etag),
            _owner("Owner", self.owner),
        )


VersionItem = Union[DeleteMarker, Version]


@dataclass
class ListBucketVersionsPage:
    key_marker: str = ""
    version_id_marker: str = ""
    max_keys: int = 0


@dataclass
class ListBucketVersionsResult:
    name: str = ""
    delimiter: str = ""
    prefix: str = ""
    common_prefixes: list[CommonPrefix] = field(default_factory=list)
    is_truncated: bool = False
    max_keys: int = 0
    key_marker: str = ""
    next_key_marker: str = ""
    version_id_marker: str = ""
    next_version_id_marker: str = ""
    # Versions and delete markers, interleaved in listing order.
    versions: list[VersionItem] = field(default_factory=list)
    xmlns: str = S3_XMLNS
    _seen: set[str] = field(default_factory=set, repr=False, compare=False)

    def add_prefix(self, prefix: str) -> None:
        """Add a common prefix unless it was already added."""
        if prefix in self._seen:
            return
        self._seen.add(prefix)
        self.common_prefixes.append(CommonPrefix(prefix=prefix))

    def to_xml(self) -> str:
        return _node(
            "ListBucketVersionsResult",
            _leaf("Name", self.name),
            _opt("Delimiter", self.delimiter),
            _opt("Prefix", self.prefix),
            _prefixes(self.common_prefixes),
            _leaf("IsTruncated", self.is_truncated),
            _leaf("MaxKeys", self.max_keys),
            _opt("KeyMarker", self.key_marker),
            _opt("NextKeyMarker", self.next_key_marker),
            _opt("VersionIdMarker", self.version_id_marker),
            _opt("NextVersionIdMarker", self.next_version_id_marker),
            *(item._xml() for item in self.versions),
            xmlns=self.xmlns,
        )


def new_list_bucket_versions_result(
    bucket_name: str,
    prefix: Prefix | None,
    page: ListBucketVersionsPage | None,
) -> ListBucketVersionsResult:
    """Start a version listing for ``bucket_name`` echoing the request's prefix and page."""
    result = ListBucketVersionsResult(name=bucket_name, xmlns=S3_XMLNS)
    if prefix is not None:
        result.prefix = prefix.prefix
        result.delimiter = prefix.delimiter
    if page is not None:
        result.max_keys = page.max_keys
        result.key_marker = page.key_marker
        result.version_id_marker = page.version_id_marker
    return result


@dataclass
class ListMultipartUploadItem:
    key: str
    upload_id: str
    initiator: UserInfo | None = None
    owner: UserInfo | None = None
    storage_class: str = ""
    initiated: datetime | None = None

    def _xml(self) -> str:
        return _node(
            "Upload",
            _leaf("Key", self.key),
            _leaf("UploadId", self.upload_id),
            _owner("Initiator", self.initiator),
            _owner("Owner", self.owner),
            _opt("StorageClass", self.storage_class),
            _time("Initiated", self.initiated),
        )


@dataclass
class ListMultipartUploadsResult:
    bucket: str = ""
    key_marker: str = ""
    upload_id_marker: str = ""
    next_key_marker: str = ""
    next_upload_id_marker: str = ""
    max_uploads: int = 0
    delimiter: str = ""
    prefix: str = ""
    common_prefixes: list[CommonPrefix] = field(default_factory=list)
    is_truncated: bool = False
    uploads: list[ListMultipartUploadItem] = field(default_factory=list)

    def to_xml(self) -> str:
        return _node(
            "ListMultipartUploadsResult",
            _leaf("Bucket", self.bucket),
            _opt("KeyMarker", self.key_marker),
            _opt("UploadIdMarker", self.upload_id_marker),
            _opt("NextKeyMarker", self.next_key_marker),
            _opt("NextUploadIdMarker", self.next_upload_id_marker),
            _opt("MaxUploads", self.max_uploads),
            _opt("Delimiter", self.delimiter),
            _opt("Prefix", self.prefix),
            _prefixes(self.common_prefixes),
            _opt("IsTruncated", self.is_truncated),
            *(upload._xml() for upload in self.uploads),
        )


@dataclass
class ListMultipartUploadPartItem:
    part_number: int
    last_modified: datetime | None = None
    etag: str = ""
    size: int = 0

    def _xml(self) -> str:
        return _node(
            "Part",
            _leaf("PartNumber", self.part_number),
            _time("LastModified", self.last_modified),
            _opt("ETag", self.etag),
            _leaf("Size", self.size),
        )


@dataclass
class ListMultipartUploadPartsResult:
    bucket: str = ""
    key: str = ""
    upload_id: str = ""
    storage_class: str = ""
    initiator: UserInfo | None = None
    owner: UserInfo | None = None
    part_number_marker: int = 0
    next_part_number_marker: int = 0
    max_parts: int = 0
    is_truncated: bool = False
    parts: list[ListMultipartUploadPartItem] = field(default_factory=list)

    def to_xml(self) -> str:
        return _node(
            "ListPartsResult",
            _leaf("Bucket", self.bucket),
            _leaf("Key", self.key),
            _leaf("UploadId", self.upload_id),
            _opt("StorageClass", self.storage_class),
            _owner("Initiator", self.initiator),
            _owner("Owner", self.owner),
            _leaf("PartNumberMarker", self.part_number_marker),
            _leaf("NextPartNumberMarker", self.next_part_number_marker),
            _leaf("MaxParts", self.max_parts),
            _opt("IsTruncated", self.is_truncated),
            *(part._xml() for part in self.parts),
        )


@dataclass
class CopyObjectResult:
    etag: str = ""
    last_modified: datetime | None = None

    def to_xml(self) -> str:
        return _node(
            "CopyObjectResult",
            _opt("ETag", self.etag),
            _time("LastModified", self.last_modified),
        )


class MFADeleteStatus(str, Enum):
    NONE = ""
    ENABLED = "Enabled"
    DISABLED = "Disabled"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str) -> MFADeleteStatus:
        value = text.strip().lower()
        if value == "enabled":
            return cls.ENABLED
        if value == "disabled":
            return cls.DISABLED
        raise error_message(
            ErrorCode.ILLEGAL_VERSIONING_CONFIGURATION,
            f"unexpected value {json.dumps(value)} for MFADeleteStatus, "
            "expected 'Enabled' or 'Disabled'",
        )

    def enabled(self) -> bool:
        return self is MFADeleteStatus.ENABLED


class VersioningStatus(str, Enum):
    NONE = ""
    ENABLED = "Enabled"
    SUSPENDED = "Suspended"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str) -> VersioningStatus:
        value = text.strip().lower()
        if value == "enabled":
            return cls.ENABLED
        if value == "suspended":
            return cls.SUSPENDED
        raise error_message(
            ErrorCode.ILLEGAL_VERSIONING_CONFIGURATION,
            f"unexpected value {json.dumps(value)} for Status, "
            "expected 'Enabled' or 'Suspended'",
        )


@dataclass
class VersioningConfiguration:
    status: VersioningStatus = VersioningStatus.NONE
    # When enabled, changing versioning or permanently deleting a version
    # requires the x-amz-mfa header.
    mfa_delete: MFADeleteStatus = MFADeleteStatus.NONE

    def enabled(self) -> bool:
        return self.status is VersioningStatus.ENABLED

    def set_enabled(self, enabled: bool) -> None:
        self.status = VersioningStatus.ENABLED if enabled else VersioningStatus.SUSPENDED

    @classmethod
    def from_xml(cls, data: bytes | str) -> VersioningConfiguration:
        root = _parse(data)
        config = cls()
        status = _child_text(root, "Status")
        if status is not None:
            config.status = VersioningStatus.parse(status)
        mfa = _child_text(root, "MfaDelete")
        if mfa is not None:
            config.mfa_delete = MFADeleteStatus.parse(mfa)
        return config

    def to_xml(self) -> str:
        return _node(
            "VersioningConfiguration",
            _opt("Status", self.status),
            _opt("MfaDelete", self.mfa_delete),
        )