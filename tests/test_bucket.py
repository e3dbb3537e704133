import itertools
from datetime import datetime, timezone

import pytest

from fakes3.errors import ErrorCode, S3Error
from fakes3.messages import VersioningStatus
from fakes3.ranges import ObjectRangeRequest
from fakes3.s3mem.bucket import Bucket, BucketData

AT = datetime(2019, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_gen():
    counter = itertools.count(1)
    return lambda: f"v{next(counter):04d}"


def make_bucket(versioned=False):
    bucket = Bucket("test", AT, make_gen())
    if versioned:
        bucket.set_versioning(True)
    return bucket


def data(name, body=b"body"):
    return BucketData(name=name, last_modified=AT, body=body)


def test_put_assigns_version_id():
    bucket = make_bucket()
    item = data("obj")
    bucket.put("obj", item)
    assert bucket.object("obj").data is item
    assert item.version_id == "v0001"
    assert bucket.creation_date == AT


def test_missing_object_is_none():
    assert make_bucket().object("nope") is None


def test_unversioned_put_replaces_without_archiving():
    bucket = make_bucket()
    bucket.put("obj", data("obj", b"one"))
    second = data("obj", b"two")
    bucket.put("obj", second)
    assert list(bucket.object("obj").iter_versions()) == [second]


def test_versioned_put_archives_previous():
    bucket = make_bucket(versioned=True)
    first, second = data("obj", b"one"), data("obj", b"two")
    bucket.put("obj", first)
    bucket.put("obj", second)
    assert list(bucket.object("obj").iter_versions()) == [first, second]
    assert bucket.object_version("obj", first.version_id) is first
    assert bucket.object_version("obj", second.version_id) is second


def test_object_version_errors():
    bucket = make_bucket()
    with pytest.raises(S3Error) as missing_key:
        bucket.object_version("nope", "v0001")
    assert missing_key.value.code == ErrorCode.NO_SUCH_KEY

    bucket.put("obj", data("obj"))
    with pytest.raises(S3Error) as missing_version:
        bucket.object_version("obj", "v9999")
    assert missing_version.value.code == ErrorCode.NO_SUCH_VERSION


def test_set_versioning_transitions():
    bucket = make_bucket()
    bucket.set_versioning(False)
    assert bucket.versioning is VersioningStatus.NONE
    bucket.set_versioning(True)
    assert bucket.versioning is VersioningStatus.ENABLED
    bucket.set_versioning(False)
    assert bucket.versioning is VersioningStatus.SUSPENDED


def test_rm_unversioned_removes_object():
    bucket = make_bucket()
    bucket.put("obj", data("obj"))
    result = bucket.rm("obj", AT)
    assert not result.is_delete_marker
    assert result.version_id == ""
    assert bucket.object("obj") is None


def test_rm_missing_object_is_not_an_error():
    result = make_bucket().rm("nope", AT)
    assert (result.is_delete_marker, result.version_id) == (False, "")


def test_rm_versioned_leaves_delete_marker():
    bucket = make_bucket(versioned=True)
    original = data("obj")
    bucket.put("obj", original)
    result = bucket.rm("obj", AT)
    obj = bucket.object("obj")
    assert result.is_delete_marker
    assert obj.data.delete_marker
    assert obj.data.version_id == result.version_id
    assert list(obj.iter_versions()) == [original, obj.data]


def test_rm_version_of_current_data():
    bucket = make_bucket(versioned=True)
    first, second = data("obj", b"one"), data("obj", b"two")
    bucket.put("obj", first)
    bucket.put("obj", second)
    result = bucket.rm_version("obj", second.version_id, AT)
    assert result.version_id == second.version_id
    assert not result.is_delete_marker
    assert list(bucket.object("obj").iter_versions()) == [first]


def test_rm_version_removes_object_when_last():
    bucket = make_bucket(versioned=True)
    first, second = data("obj", b"one"), data("obj", b"two")
    bucket.put("obj", first)
    bucket.put("obj", second)
    bucket.rm_version("obj", first.version_id, AT)
    bucket.rm_version("obj", second.version_id, AT)
    assert bucket.object("obj") is None


def test_rm_version_unknown_version():
    bucket = make_bucket(versioned=True)
    bucket.put("obj", data("obj", b"one"))
    bucket.put("obj", data("obj", b"two"))
    result = bucket.rm_version("obj", "v9999", AT)
    assert result.version_id == ""
    assert len(list(bucket.object("obj").iter_versions())) == 2


def test_iter_versions_seek():
    bucket = make_bucket(versioned=True)
    items = [data("obj", bytes([n])) for n in range(3)]
    for item in items:
        bucket.put("obj", item)
    obj = bucket.object("obj")
    assert list(obj.iter_versions(items[0].version_id)) == items[1:]
    assert list(obj.iter_versions(items[2].version_id)) == [items[2]]
    with pytest.raises(KeyError):
        obj.iter_versions("zzzz")


def test_to_object_with_range():
    item = data("obj", b"hello world")
    obj = item.to_object(ObjectRangeRequest(start=0, end=4), True)
    assert obj.contents.read() == b"hello"
    assert obj.size == len(b"hello world")
    assert obj.range.start == 0
    assert obj.range.length == len(b"hello")


def test_to_object_full_body():
    item = data("obj", b"hello world")
    obj = item.to_object(None, True)
    assert obj.contents.read() == b"hello world"
    assert obj.range is None
    assert obj.name == "obj"


def test_to_object_without_body():
    item = data("obj", b"hello world")
    obj = item.to_object(ObjectRangeRequest(start=0, end=4), False)
    assert obj.contents.read() == b""
    assert obj.size == len(b"hello world")
    assert obj.range is None


def test_to_object_invalid_range():
    item = data("obj", b"abc")
    with pytest.raises(S3Error) as exc:
        item.to_object(ObjectRangeRequest(start=10, end=15), True)
    assert exc.value.code == ErrorCode.INVALID_RANGE