"""A backend that keeps buckets and objects in memory."""

from __future__ import annotations

import hashlib
import threading
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import BinaryIO

from ..errors import (
    ErrorCode,
    S3Error,
    bucket_not_found,
    key_not_found,
    resource_error,
)
from ..messages import (
    BucketInfo,
    Content,
    CopyObjectResult,
    DeleteMarker,
    ErrorResult,
    ListBucketVersionsPage,
    ListBucketVersionsResult,
    MultiDeleteResult,
    ObjectID,
    ObjectList,
    Version,
    VersioningConfiguration,
    VersioningStatus,
    new_list_bucket_versions_result,
)
from ..prefix import Prefix
from ..ranges import ObjectRangeRequest
from ..timesource import TimeSource, default_time_source
from ..util import read_all
from .bucket import Bucket, BucketData, ObjectDeleteResult, S3Object
from .versionid import VersionGenerator

_EMPTY_PREFIX = Prefix()


@dataclass(frozen=True)
class ListBucketPage:
    """Paging for a bucket listing: start after ``marker``, return at most ``max_keys``."""

    marker: str = ""
    max_keys: int = 0


@dataclass(frozen=True)
class PutObjectResult:
    """The outcome of storing an object; the version ID is set only when versioning is on."""

    version_id: str = ""


def _quoted_etag(digest: bytes) -> str:
    return f'"{digest.hex()}"'


class MemoryBackend:
    """Stores buckets, objects and object versions in memory."""

    def __init__(
        self,
        time_source: TimeSource | None = None,
        version_seed: int | None = None,
    ) -> None:
        self._buckets: dict[str, Bucket] = {}
        self._time_source = time_source or default_time_source()
        if version_seed is None:
            version_seed = int(self._time_source.now().timestamp() * 1_000_000_000)
        self._versions = VersionGenerator(version_seed, 0)
        self._lock = threading.Lock()

    def _next_version(self) -> str:
        return self._versions.next()

    def _bucket(self, name: str) -> Bucket:
        bucket = self._buckets.get(name)
        if bucket is None:
            raise bucket_not_found(name)
        return bucket

    def list_buckets(self) -> list[BucketInfo]:
        with self._lock:
            return [
                BucketInfo(name=bucket.name, creation_date=bucket.creation_date)
                for bucket in self._buckets.values()
            ]

    def list_bucket(
        self,
        name: str,
        prefix: Prefix | None = None,
        page: ListBucketPage | None = None,
    ) -> ObjectList:
        """List a bucket's current objects and common prefixes in key order."""
        prefix = prefix or _EMPTY_PREFIX
        page = page or ListBucketPage()

        with self._lock:
            bucket = self._bucket(name)
            response = ObjectList()

            keys: Iterator[str]
            if page.marker:
                keys = iter(bucket.objects.irange(minimum=page.marker))
                next(keys, None)  # skip the item at the marker
            else:
                keys = iter(bucket.objects)

            count = 0
            last_matched_part = ""
            for key in keys:
                item = bucket.objects[key]
                data = item.data
                if data is None:
                    continue
                match = prefix.match(data.name)
                if match is None:
                    continue
                if match.common_prefix:
                    if match.matched_part == last_matched_part:
                        continue  # does not count towards the keys
                    response.add_prefix(match.matched_part)
                    last_matched_part = match.matched_part
                else:
                    response.add(
                        Content(
                            key=data.name,
                            last_modified=data.last_modified,
                            etag=_quoted_etag(data.hash),
                            size=len(data.body),
                        )
                    )

                count += 1
                if page.max_keys > 0 and count >= page.max_keys:
                    response.next_marker = data.name
                    response.is_truncated = next(keys, None) is not None
                    break

            return response

    def create_bucket(self, name: str) -> None:
        with self._lock:
            if name in self._buckets:
                raise resource_error(ErrorCode.BUCKET_ALREADY_EXISTS, name)
            self._buckets[name] = Bucket(name, self._time_source.now(), self._next_version)

    def delete_bucket(self, name: str) -> None:
        with self._lock:
            bucket = self._buckets.get(name)
            if bucket is None:
                raise S3Error(ErrorCode.NO_SUCH_BUCKET)
            if bucket.objects:
                raise resource_error(ErrorCode.BUCKET_NOT_EMPTY, name)
            del self._buckets[name]

    def bucket_exists(self, name: str) -> bool:
        with self._lock:
            return name in self._buckets

    def _current(self, bucket: Bucket, object_name: str) -> BucketData:
        obj = bucket.object(object_name)
        if obj is None or obj.data is None or obj.data.delete_marker:
            raise key_not_found(object_name)
        return obj.data

    def head_object(self, bucket_name: str, object_name: str) -> S3Object:
        with self._lock:
            bucket = self._bucket(bucket_name)
            return self._current(bucket, object_name).to_object(None, False)

    def get_object(
        self,
        bucket_name: str,
        object_name: str,
        range_request: ObjectRangeRequest | None = None,
    ) -> S3Object:
        with self._lock:
            bucket = self._bucket(bucket_name)
            result = self._current(bucket, object_name).to_object(range_request, True)
            if bucket.versioning is not VersioningStatus.ENABLED:
                result.version_id = ""
            return result

    def put_object(
        self,
        bucket_name: str,
        object_name: str,
        meta: dict[str, str] | None,
        data: BinaryIO,
        size: int,
    ) -> PutObjectResult:
        """Store ``size`` bytes read from ``data`` under ``object_name``."""
        # Read before taking the lock so a slow client does not hold it.
        body = bytes(read_all(data, size))

        with self._lock:
            bucket = self._bucket(bucket_name)
            digest = hashlib.md5(body).digest()
            item = BucketData(
                name=object_name,
                last_modified=self._time_source.now(),
                body=body,
                hash=digest,
                etag=_quoted_etag(digest),
                metadata=dict(meta or {}),
            )
            bucket.put(object_name, item)
            if bucket.versioning is VersioningStatus.ENABLED:
                return PutObjectResult(version_id=item.version_id)
            return PutObjectResult()

    def copy_object(
        self,
        src_bucket: str,
        src_key: str,
        dst_bucket: str,
        dst_key: str,
        meta: dict[str, str] | None,
    ) -> CopyObjectResult:
        """Copy an object, keeping source metadata not overridden by ``meta``."""
        source = self.get_object(src_bucket, src_key, None)
        merged = dict(meta or {})
        with source.contents:
            for key, value in source.metadata.items():
                if key not in merged and key != "X-Amz-Acl":
                    merged[key] = value
            self.put_object(dst_bucket, dst_key, merged, source.contents, source.size)

        return CopyObjectResult(
            etag=_quoted_etag(source.hash),
            last_modified=datetime.now(timezone.utc),
        )

    def delete_object(self, bucket_name: str, object_name: str) -> ObjectDeleteResult:
        with self._lock:
            bucket = self._bucket(bucket_name)
            return bucket.rm(object_name, self._time_source.now())

    def delete_multi(self, bucket_name: str, *args: str) -> MultiDeleteResult:
        """Delete each named object, collecting the keys deleted and the errors."""
        with self._lock:
            bucket = self._bucket(bucket_name)
            now = self._time_source.now()
            result = MultiDeleteResult()
            for object_name in args:
                try:
                    bucket.rm(object_name, now)
                except Exception as err:  # reported per key, not raised
                    result.errors.append(ErrorResult.from_error(err))
                else:
                    result.deleted.append(ObjectID(key=object_name))
            return result

    def versioning_configuration(self, bucket_name: str) -> VersioningConfiguration:
        with self._lock:
            bucket = self._bucket(bucket_name)
            return VersioningConfiguration(status=bucket.versioning)

    def set_versioning_configuration(
        self, bucket_name: str, config: VersioningConfiguration
    ) -> None:
        if config.mfa_delete.enabled():
            raise S3Error(ErrorCode.NOT_IMPLEMENTED)
        with self._lock:
            self._bucket(bucket_name).set_versioning(config.enabled())

    def get_object_version(
        self,
        bucket_name: str,
        object_name: str,
        version_id: str,
        range_request: ObjectRangeRequest | None = None,
    ) -> S3Object:
        with self._lock:
            bucket = self._bucket(bucket_name)
            version = bucket.object_version(object_name, version_id)
            return version.to_object(range_request, True)

    def head_object_version(
        self, bucket_name: str, object_name: str, version_id: str
    ) -> S3Object:
        with self._lock:
            bucket = self._bucket(bucket_name)
            return bucket.object_version(object_name, version_id).to_object(None, False)

    def delete_object_version(
        self, bucket_name: str, object_name: str, version_id: str
    ) -> ObjectDeleteResult:
        with self._lock:
            bucket = self._bucket(bucket_name)
            return bucket.rm_version(object_name, version_id, self._time_source.now())

    def list_bucket_versions(
        self,
        bucket_name: str,
        prefix: Prefix | None = None,
        page: ListBucketVersionsPage | None = None,
    ) -> ListBucketVersionsResult:
        """List every version and delete marker of the matching objects."""
        prefix = prefix or _EMPTY_PREFIX
        page = page or ListBucketVersionsPage()

        with self._lock:
            result = new_list_bucket_versions_result(bucket_name, prefix, page)
            bucket = self._bucket(bucket_name)

            keys: Iterator[str]
            if page.key_marker:
                if prefix.match(page.key_marker) is None:
                    raise S3Error(ErrorCode.INTERNAL)
                keys = iter(bucket.objects.irange(minimum=page.key_marker))
            else:
                keys = iter(bucket.objects)

            show_ids = bucket.versioning is not VersioningStatus.NONE
            truncated = False
            first = True
            count = 0
            done = False

            for key in keys:
                obj = bucket.objects[key]
                match = prefix.match(obj.name)
                if match is None:
                    continue
                if match.common_prefix:
                    result.add_prefix(match.matched_part)
                    continue

                if first and page.version_id_marker:
                    try:
                        versions = obj.iter_versions(seek=page.version_id_marker)
                    except KeyError:
                        raise S3Error(ErrorCode.INTERNAL) from None
                else:
                    versions = obj.iter_versions()
                first = False

                for version in versions:
                    is_latest = version is obj.data
                    if version.delete_marker:
                        result.versions.append(
                            DeleteMarker(
                                key=version.name,
                                version_id=version.version_id if show_ids else "",
                                is_latest=is_latest,
                                last_modified=version.last_modified,
                            )
                        )
                    else:
                        result.versions.append(
                            Version(
                                key=version.name,
                                version_id=version.version_id if show_ids else "",
                                is_latest=is_latest,
                                last_modified=version.last_modified,
                                size=len(version.body),
                                etag=version.etag,
                            )
                        )

                    count += 1
                    if page.max_keys > 0 and count >= page.max_keys:
                        truncated = next(versions, None) is not None
                        done = True
                        break
                if done:
                    break

            result.is_truncated = truncated or next(keys, None) is not None
            return result