"""In-memory bookkeeping for multipart uploads."""

from __future__ import annotations

import hashlib
import threading
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from sortedcontainers import SortedDict

from .errors import ErrorCode, S3Error, error_message
from .messages import (
    STORAGE_STANDARD,
    CompleteMultipartUploadRequest,
    ListMultipartUploadItem,
    ListMultipartUploadPartItem,
    ListMultipartUploadPartsResult,
    ListMultipartUploadsResult,
)
from .prefix import Prefix

# S3 limits part numbers to 10,000.
MAX_UPLOAD_PART_NUMBER = 10_000


def _first(value: Sequence[str] | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return value[0] if value else ""


def _no_such_upload() -> S3Error:
    return S3Error(ErrorCode.NO_SUCH_UPLOAD)


@dataclass(frozen=True)
class UploadListMarker:
    """Where a page of a multipart upload listing begins.

    ``object`` is the key-marker; ``upload_id`` the upload-id-marker, which is
    only meaningful together with the key.
    """

    object: str
    upload_id: str = ""

    @classmethod
    def from_query(cls, query: Mapping[str, Sequence[str] | str]) -> UploadListMarker | None:
        """Collect the key-marker and upload-id-marker query parameters."""
        obj = _first(query.get("key-marker"))
        if not obj:
            return None
        return cls(object=obj, upload_id=_first(query.get("upload-id-marker")))


@dataclass(frozen=True)
class MultipartUploadPart:
    """One uploaded part of a multipart upload."""

    part_number: int
    etag: str
    body: bytes
    last_modified: datetime


@dataclass(eq=False)
class MultipartUpload:
    """A multipart upload in progress and the parts received so far."""

    id: str
    bucket: str
    object: str
    meta: dict[str, str]
    initiated: datetime
    _parts: dict[int, MultipartUploadPart] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _slot_count(self) -> int:
        # Part numbers behave like indexes into a list starting at zero.
        return max(self._parts) + 1 if self._parts else 0

    def add_part(self, part_number: int, at: datetime, body: bytes) -> str:
        """Store a part, replacing any with the same number; return its ETag."""
        if part_number > MAX_UPLOAD_PART_NUMBER or part_number < 0:
            raise S3Error(ErrorCode.INVALID_PART)

        body = bytes(body)
        etag = f'"{hashlib.md5(body).hexdigest()}"'
        with self._lock:
            self._parts[part_number] = MultipartUploadPart(
                part_number=part_number, etag=etag, body=body, last_modified=at
            )
        return etag

    def reassemble(self, request: CompleteMultipartUploadRequest) -> tuple[bytes, str]:
        """Join the requested parts in order; return the body and its MD5 hex digest."""
        with self._lock:
            slots = self._slot_count()
            if len(request.parts) > slots:
                raise S3Error(ErrorCode.INVALID_PART)
            if not request.parts_are_sorted():
                raise S3Error(ErrorCode.INVALID_PART_ORDER)

            chunks = []
            for wanted in request.parts:
                number = wanted.part_number
                part = self._parts.get(number) if number < slots else None
                if part is None:
                    raise error_message(
                        ErrorCode.INVALID_PART,
                        f"unexpected part number {number} in complete request",
                    )
                if wanted.etag.strip('"') != part.etag.strip('"'):
                    raise error_message(
                        ErrorCode.INVALID_PART,
                        f"unexpected part etag for number {number} in complete request",
                    )
                chunks.append(part.body)

        body = b"".join(chunks)
        return body, hashlib.md5(body).hexdigest()

    def _sorted_parts(self) -> list[MultipartUploadPart]:
        with self._lock:
            return [self._parts[number] for number in sorted(self._parts)]


class _BucketUploads:
    """The uploads of one bucket, indexed by ID and, in key order, by object."""

    def __init__(self) -> None:
        self.uploads: dict[str, MultipartUpload] = {}
        # Object key -> uploads for that key, in initiation order.
        self.object_index: SortedDict = SortedDict()

    def add(self, upload: MultipartUpload) -> None:
        self.uploads[upload.id] = upload
        self.object_index.setdefault(upload.object, []).append(upload)

    def remove(self, upload_id: str) -> None:
        upload = self.uploads.pop(upload_id)
        uploads = self.object_index.get(upload.object)
        if not uploads:
            return
        remaining = [item for item in uploads if item.id != upload_id]
        if remaining:
            self.object_index[upload.object] = remaining
        else:
            del self.object_index[upload.object]


class Uploader:
    """Tracks multipart uploads in memory, per bucket.

    Uploads are not persisted and their parts are held in memory.
    """

    def __init__(self) -> None:
        self._last_id = 0
        self._buckets: dict[str, _BucketUploads] = {}
        self._lock = threading.Lock()

    def begin(
        self, bucket: str, obj: str, meta: dict[str, str], initiated: datetime
    ) -> MultipartUpload:
        """Start a new upload and return it; IDs are increasing decimal integers."""
        with self._lock:
            self._last_id += 1
            upload = MultipartUpload(
                id=str(self._last_id),
                bucket=bucket,
                object=obj,
                meta=meta,
                initiated=initiated,
            )
            self._buckets.setdefault(bucket, _BucketUploads()).add(upload)
            return upload

    def list_parts(
        self, bucket: str, obj: str, upload_id: str, marker: int, limit: int
    ) -> ListMultipartUploadPartsResult:
        """List the parts of an upload, starting at part number ``marker``."""
        with self._lock:
            upload = self._get_unlocked(bucket, obj, upload_id)

        result = ListMultipartUploadPartsResult(
            bucket=bucket,
            key=obj,
            upload_id=upload_id,
            max_parts=limit,
            part_number_marker=marker,
            storage_class=STORAGE_STANDARD,
        )
        count = 0
        for part in upload._sorted_parts():
            if part.part_number < marker:
                continue
            if count >= limit:
                result.is_truncated = True
                result.next_part_number_marker = part.part_number
                break
            result.parts.append(
                ListMultipartUploadPartItem(
                    part_number=part.part_number,
                    last_modified=part.last_modified,
                    etag=part.etag,
                    size=len(part.body),
                )
            )
            count += 1
        return result

    def list(
        self,
        bucket: str,
        marker: UploadListMarker | None,
        prefix: Prefix,
        limit: int,
    ) -> ListMultipartUploadsResult:
        """List uploads sorted by object key, then by initiation within each key."""
        with self._lock:
            bucket_uploads = self._buckets.get(bucket)
            if bucket_uploads is None:
                raise _no_such_upload()

            result = ListMultipartUploadsResult(
                bucket=bucket,
                delimiter=prefix.delimiter,
                prefix=prefix.prefix,
                max_uploads=limit,
            )

            index = bucket_uploads.object_index
            # The upload ID only matters for finding the page start if one was given.
            first_found = True
            keys: Iterator[str]
            if marker is not None:
                keys = iter(index.irange(minimum=marker.object))
                first_found = marker.upload_id == ""
                result.upload_id_marker = marker.upload_id
                result.key_marker = marker.object
            else:
                keys = iter(index)

            truncated = False
            count = 0
            seen_prefixes: set[str] = set()
            done = False

            for obj in keys:
                uploads = index[obj]
                match = prefix.match(obj)
                if match is None:
                    continue

                if not first_found:
                    for idx, upload in enumerate(uploads):
                        if upload.id == marker.upload_id:
                            first_found = True
                            uploads = uploads[idx:]
                            break
                    if not first_found:
                        continue

                if match.common_prefix:
                    if match.matched_part not in seen_prefixes:
                        result.common_prefixes.append(match.as_common_prefix())
                        seen_prefixes.add(match.matched_part)
                    continue

                for idx, upload in enumerate(uploads):
                    result.uploads.append(
                        ListMultipartUploadItem(
                            key=obj,
                            upload_id=upload.id,
                            storage_class=STORAGE_STANDARD,
                            initiated=upload.initiated,
                        )
                    )
                    count += 1
                    if count >= limit:
                        if idx != len(uploads) - 1:
                            truncated = True
                            result.next_upload_id_marker = uploads[idx + 1].id
                            result.next_key_marker = obj
                        done = True
                        break
                if done:
                    break

            # Not cut off inside one key's uploads: see whether more keys follow.
            if not truncated:
                for obj in keys:
                    match = prefix.match(obj)
                    if match is not None and not match.common_prefix:
                        truncated = True
                        result.next_upload_id_marker = index[obj][0].id
                        result.next_key_marker = obj
                        break

            result.is_truncated = truncated
            return result

    def complete(self, bucket: str, obj: str, upload_id: str) -> MultipartUpload:
        """Remove an upload from tracking and return it."""
        with self._lock:
            upload = self._get_unlocked(bucket, obj, upload_id)
            self._buckets[bucket].remove(upload_id)
            return upload

    def get(self, bucket: str, obj: str, upload_id: str) -> MultipartUpload:
        """Return the upload with ``upload_id`` for ``bucket`` and ``obj``."""
        with self._lock:
            return self._get_unlocked(bucket, obj, upload_id)

    def _get_unlocked(self, bucket: str, obj: str, upload_id: str) -> MultipartUpload:
        bucket_uploads = self._buckets.get(bucket)
        if bucket_uploads is None:
            raise _no_such_upload()
        upload = bucket_uploads.uploads.get(upload_id)
        if upload is None:
            raise _no_such_upload()
        if upload.bucket != bucket or upload.object != obj:
            raise _no_such_upload()
        return upload