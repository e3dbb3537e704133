"""Buckets, objects and object versions held in memory."""

from __future__ import annotations

import io
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO

from sortedcontainers import SortedDict

from ..errors import ErrorCode, S3Error, key_not_found
from ..messages import VersioningStatus
from ..ranges import ObjectRange, ObjectRangeRequest

VersionGen = Callable[[], str]


@dataclass
class S3Object:
    """An object as returned to callers, with its body as a readable stream."""

    name: str
    hash: bytes
    metadata: dict[str, str]
    size: int
    contents: BinaryIO
    range: ObjectRange | None = None
    is_delete_marker: bool = False
    version_id: str = ""


@dataclass
class ObjectDeleteResult:
    """What a delete did: whether it left a delete marker, and which version."""

    is_delete_marker: bool = False
    version_id: str = ""


@dataclass(eq=False)
class BucketData:
    """One stored version of an object, or a delete marker."""

    name: str
    last_modified: datetime
    version_id: str = ""
    delete_marker: bool = False
    body: bytes = b""
    hash: bytes = b""
    etag: str = ""
    metadata: dict[str, str] = field(default_factory=dict)

    def to_object(
        self, range_request: ObjectRangeRequest | None, with_body: bool
    ) -> S3Object:
        """Build an :class:`S3Object`, with the requested range of the body if ``with_body``."""
        size = len(self.body)
        object_range = None
        if with_body:
            data = self.body
            if range_request is not None:
                object_range = range_request.range(size)
                data = data[object_range.start : object_range.start + object_range.length]
            contents = io.BytesIO(data)
        else:
            contents = io.BytesIO()

        return S3Object(
            name=self.name,
            hash=self.hash,
            metadata=self.metadata,
            size=size,
            contents=contents,
            range=object_range,
            is_delete_marker=self.delete_marker,
            version_id=self.version_id,
        )


@dataclass(eq=False)
class BucketObject:
    """An object key with its current data and its archived versions."""

    name: str
    data: BucketData | None = None
    # Archived versions keyed by version ID, in ID order.
    versions: SortedDict = field(default_factory=SortedDict)

    def iter_versions(self, seek: str | None = None) -> Iterator[BucketData]:
        """Iterate over archived versions in ID order, then the current data.

        With ``seek``, iteration starts after the first archived version whose
        ID is not less than ``seek``; if there is none, only the current data
        is yielded, provided its ID is ``seek``. Otherwise KeyError is raised.
        """
        archived = list(self.versions.values())
        tail = [self.data] if self.data is not None else []
        if seek is None:
            return iter(archived + tail)

        index = self.versions.bisect_left(seek)
        if index < len(archived):
            return iter(archived[index + 1 :] + tail)
        if self.data is not None and self.data.version_id == seek:
            return iter(tail)
        raise KeyError(seek)


class Bucket:
    """A named bucket holding objects in key order."""

    def __init__(self, name: str, at: datetime, version_gen: VersionGen) -> None:
        self.name = name
        self.creation_date = at
        self.version_gen = version_gen
        self.versioning = VersioningStatus.NONE
        self.objects: SortedDict = SortedDict()

    def set_versioning(self, enabled: bool) -> None:
        """Enable versioning, or suspend it if it was enabled."""
        if enabled:
            self.versioning = VersioningStatus.ENABLED
        elif self.versioning is VersioningStatus.ENABLED:
            self.versioning = VersioningStatus.SUSPENDED

    def object(self, name: str) -> BucketObject | None:
        """Return the object stored under ``name``, if any."""
        return self.objects.get(name)

    def object_version(self, name: str, version_id: str) -> BucketData:
        """Return the given version of an object."""
        obj = self.object(name)
        if obj is None:
            raise key_not_found(name)
        if obj.data is not None and obj.data.version_id == version_id:
            return obj.data
        version = obj.versions.get(version_id)
        if version is None:
            raise S3Error(ErrorCode.NO_SUCH_VERSION)
        return version

    def put(self, name: str, item: BucketData) -> None:
        """Store ``item`` as the current data of ``name``, assigning it a version ID."""
        # A version is always generated; callers mask it when versioning is off.
        item.version_id = self.version_gen()

        obj = self.object(name)
        if obj is None:
            obj = BucketObject(name=name)
            self.objects[name] = obj

        if self.versioning is VersioningStatus.ENABLED and obj.data is not None:
            obj.versions[obj.data.version_id] = obj.data

        obj.data = item

    def rm(self, name: str, at: datetime) -> ObjectDeleteResult:
        """Delete an object, leaving a delete marker when versioning is enabled."""
        obj = self.object(name)
        if obj is None:
            # Deleting a missing key is not an error in S3.
            return ObjectDeleteResult()

        if self.versioning is VersioningStatus.ENABLED:
            marker = BucketData(name=name, last_modified=at, delete_marker=True)
            self.put(name, marker)
            return ObjectDeleteResult(is_delete_marker=True, version_id=marker.version_id)

        obj.data = None
        if not obj.versions:
            del self.objects[name]
        return ObjectDeleteResult()

    def rm_version(self, name: str, version_id: str, at: datetime) -> ObjectDeleteResult:
        """Permanently delete one version of an object."""
        obj = self.object(name)
        if obj is None:
            return ObjectDeleteResult()

        result = ObjectDeleteResult()
        if obj.data is not None and obj.data.version_id == version_id:
            result = ObjectDeleteResult(
                is_delete_marker=obj.data.delete_marker, version_id=version_id
            )
            obj.data = None
        elif obj.versions:
            version = obj.versions.pop(version_id, None)
            if version is None:
                # Deleting a missing version is not an error in S3.
                return ObjectDeleteResult()
            result = ObjectDeleteResult(
                is_delete_marker=version.delete_marker, version_id=version.version_id
            )

        if obj.data is None and not obj.versions:
            del self.objects[name]
        return result