from datetime import datetime, timezone

import pytest

from fakes3.errors import (
    ErrorCode,
    ErrorResponse,
    S3Error,
    bucket_not_found,
    has_error_code,
    key_not_found,
)
from fakes3.messages import (
    S3_XMLNS,
    BucketInfo,
    CompletedPart,
    CompleteMultipartUploadRequest,
    Content,
    CopyObjectResult,
    DeleteMarker,
    DeleteRequest,
    ErrorResult,
    GetBucketLocation,
    ListBucketVersionsPage,
    ListBucketResult,
    ListBucketVersionsResult,
    ListMultipartUploadsResult,
    MFADeleteStatus,
    MultiDeleteResult,
    ObjectID,
    ObjectList,
    Storage,
    Version,
    VersioningConfiguration,
    VersioningStatus,
    bucket_names,
    format_content_time,
    new_list_bucket_versions_result,
)
from fakes3.prefix import CommonPrefix, new_prefix

NOON = datetime(2019, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_object_list_add_prefix():
    result = ObjectList()
    result.add_prefix("prefix1")
    assert len(result.common_prefixes) == 1
    result.add_prefix("prefix1")
    assert len(result.common_prefixes) == 1
    result.add_prefix("prefix2")
    assert [p.prefix for p in result.common_prefixes] == ["prefix1", "prefix2"]


def test_object_list_add_content():
    result = ObjectList()
    result.add(Content(key="a"))
    assert [c.key for c in result.contents] == ["a"]


def test_content_time():
    assert format_content_time(NOON) == "2019-01-01T12:00:00Z"


def test_content_time_milliseconds_trimmed():
    moment = datetime(2019, 1, 1, 12, 0, 0, 120999, tzinfo=timezone.utc)
    assert format_content_time(moment) == "2019-01-01T12:00:00.12Z"


def test_content_time_omit_empty():
    assert CopyObjectResult(etag="x").to_xml() == "<CopyObjectResult><ETag>x</ETag></CopyObjectResult>"


def test_copy_object_result():
    res = CopyObjectResult(etag='"etag0"', last_modified=NOON)
    assert res.to_xml() == (
        "<CopyObjectResult>"
        "<ETag>&#34;etag0&#34;</ETag>"
        "<LastModified>2019-01-01T12:00:00Z</LastModified>"
        "</CopyObjectResult>"
    )


@pytest.mark.parametrize(
    "err, code",
    [
        (EOFError(), ErrorCode.INTERNAL),
        (S3Error(ErrorCode.BAD_DIGEST), ErrorCode.BAD_DIGEST),
        (ErrorResponse(ErrorCode.BAD_DIGEST), ErrorCode.BAD_DIGEST),
        (key_not_found("nup"), ErrorCode.NO_SUCH_KEY),
    ],
)
def test_error_result_from_error(err, code):
    assert ErrorResult.from_error(err).code == code


def test_error_result_from_resource_error_keeps_resource():
    result = ErrorResult.from_error(bucket_not_found("bkt"))
    assert result.resource == "bkt"
    assert result.code == ErrorCode.NO_SUCH_BUCKET


def test_error_result_str():
    result = ErrorResult(key="k", code=ErrorCode.NO_SUCH_KEY, message="gone")
    assert str(result) == "k: [NoSuchKey] gone"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Enabled", MFADeleteStatus.ENABLED),
        ("enabled", MFADeleteStatus.ENABLED),
        ("ENABLED", MFADeleteStatus.ENABLED),
        ("Disabled", MFADeleteStatus.DISABLED),
    ],
)
def test_mfa_delete_status(text, expected):
    assert MFADeleteStatus.parse(text) is expected
    assert MFADeleteStatus.parse(text).value == expected.value


def test_mfa_delete_status_invalid():
    with pytest.raises(S3Error) as info:
        MFADeleteStatus.parse("QUACK QUACK")
    assert has_error_code(info.value, ErrorCode.ILLEGAL_VERSIONING_CONFIGURATION)


def test_mfa_delete_enabled():
    assert MFADeleteStatus.ENABLED.enabled() is True
    assert MFADeleteStatus.DISABLED.enabled() is False


def test_versioning_status_invalid():
    with pytest.raises(S3Error) as info:
        VersioningStatus.parse("on")
    assert info.value.code == ErrorCode.ILLEGAL_VERSIONING_CONFIGURATION


def test_versioning_configuration_from_xml():
    config = VersioningConfiguration.from_xml(
        "<VersioningConfiguration><Status> enabled </Status>"
        "<MfaDelete>Disabled</MfaDelete></VersioningConfiguration>"
    )
    assert config.status is VersioningStatus.ENABLED
    assert config.mfa_delete is MFADeleteStatus.DISABLED
    assert config.enabled() is True


def test_versioning_configuration_bad_mfa_xml():
    with pytest.raises(S3Error):
        VersioningConfiguration.from_xml(
            "<VersioningConfiguration><MfaDelete>QUACK QUACK</MfaDelete></VersioningConfiguration>"
        )


def test_versioning_configuration_set_enabled_and_xml():
    config = VersioningConfiguration()
    assert config.to_xml() == "<VersioningConfiguration></VersioningConfiguration>"
    config.set_enabled(False)
    assert config.status is VersioningStatus.SUSPENDED
    assert config.to_xml() == (
        "<VersioningConfiguration><Status>Suspended</Status></VersioningConfiguration>"
    )
    config.set_enabled(True)
    assert VersioningConfiguration.from_xml(config.to_xml()) == config


def test_bucket_names_sorted():
    buckets = [BucketInfo("zed"), BucketInfo("alpha"), BucketInfo("mid")]
    assert bucket_names(buckets) == ["alpha", "mid", "zed"]


def test_storage_xml():
    storage = Storage(buckets=[BucketInfo("b1", NOON)], xmlns="")
    assert storage.to_xml() == (
        "<ListAllMyBucketsResult><Buckets><Bucket><Name>b1</Name>"
        "<CreationDate>2019-01-01T12:00:00Z</CreationDate></Bucket></Buckets>"
        "</ListAllMyBucketsResult>"
    )


def test_complete_request_from_xml():
    request = CompleteMultipartUploadRequest.from_xml(
        '<CompleteMultipartUpload xmlns="urn:test">'
        "<Part><PartNumber>1</PartNumber><ETag>\"a\"</ETag></Part>"
        "<Part><PartNumber>2</PartNumber><ETag>\"b\"</ETag></Part>"
        "</CompleteMultipartUpload>"
    )
    assert request.parts == [CompletedPart(1, '"a"'), CompletedPart(2, '"b"')]
    assert request.part_ids() == [1, 2]
    assert request.parts_are_sorted() is True


def test_complete_request_malformed():
    with pytest.raises(S3Error) as info:
        CompleteMultipartUploadRequest.from_xml("<oops")
    assert info.value.code == ErrorCode.MALFORMED_XML


def test_part_ids_sorted():
    request = CompleteMultipartUploadRequest(parts=[CompletedPart(3), CompletedPart(1)])
    assert request.part_ids() == [1, 3]


def test_delete_request_from_xml():
    request = DeleteRequest.from_xml(
        "<Delete><Object><Key>a</Key></Object>"
        "<Object><Key>b</Key><VersionId>v1</VersionId></Object>"
        "<Quiet>true</Quiet></Delete>"
    )
    assert request.objects == [ObjectID("a"), ObjectID("b", "v1")]
    assert request.quiet is True


def test_delete_request_quiet_default():
    assert DeleteRequest.from_xml("<Delete></Delete>").quiet is False


def test_multi_delete_result_as_error():
    assert MultiDeleteResult(deleted=[ObjectID("a")]).as_error() is None
    result = MultiDeleteResult(errors=[ErrorResult(key="k", code=ErrorCode.INTERNAL, message="m")])
    err = result.as_error()
    assert str(err) == "fakes3: multi delete failed:\nk: [InternalError] m"


def test_multi_delete_result_xml():
    result = MultiDeleteResult(
        deleted=[ObjectID("a")], errors=[ErrorResult(key="b", code=ErrorCode.NO_SUCH_KEY)]
    )
    assert result.to_xml() == (
        "<DeleteResult><Deleted><Key>a</Key></Deleted>"
        "<Error><Key>b</Key><Code>NoSuchKey</Code></Error></DeleteResult>"
    )


def test_list_bucket_result_xml():
    result = ListBucketResult(
        name="b",
        common_prefixes=[CommonPrefix("dir/")],
        contents=[Content(key="k", last_modified=NOON, etag='"e"', size=3)],
    )
    assert result.to_xml() == (
        f'<ListBucketResult xmlns="{S3_XMLNS}"><Name>b</Name>'
        "<IsTruncated>false</IsTruncated><Prefix></Prefix>"
        "<CommonPrefixes><Prefix>dir/</Prefix></CommonPrefixes>"
        "<Contents><Key>k</Key><LastModified>2019-01-01T12:00:00Z</LastModified>"
        "<ETag>&#34;e&#34;</ETag><Size>3</Size></Contents>"
        "<Marker></Marker></ListBucketResult>"
    )


def test_get_bucket_location_xml():
    assert GetBucketLocation(location_constraint="eu", xmlns="").to_xml() == (
        "<LocationConstraint>eu</LocationConstraint>"
    )


def test_new_list_bucket_versions_result():
    page = ListBucketVersionsPage(key_marker="k", version_id_marker="v", max_keys=5)
    result = new_list_bucket_versions_result("bkt", new_prefix("p/", "/"), page)
    assert (result.name, result.prefix, result.delimiter) == ("bkt", "p/", "/")
    assert (result.max_keys, result.key_marker, result.version_id_marker) == (5, "k", "v")
    assert result.xmlns == S3_XMLNS


def test_new_list_bucket_versions_result_without_prefix_or_page():
    result = new_list_bucket_versions_result("bkt", None, None)
    assert (result.prefix, result.max_keys) == ("", 0)


def test_list_bucket_versions_add_prefix_dedupes():
    result = ListBucketVersionsResult()
    result.add_prefix("a/")
    result.add_prefix("a/")
    result.add_prefix("b/")
    assert result.common_prefixes == [CommonPrefix("a/"), CommonPrefix("b/")]


def test_list_bucket_versions_xml_preserves_order():
    result = ListBucketVersionsResult(
        name="b",
        xmlns="",
        versions=[
            DeleteMarker(key="k", version_id="2", is_latest=True),
            Version(key="k", version_id="1", size=4, etag="e"),
        ],
    )
    assert result.to_xml() == (
        "<ListBucketVersionsResult><Name>b</Name><IsTruncated>false</IsTruncated>"
        "<MaxKeys>0</MaxKeys>"
        "<DeleteMarker><Key>k</Key><VersionId>2</VersionId><IsLatest>true</IsLatest></DeleteMarker>"
        "<Version><Key>k</Key><VersionId>1</VersionId><IsLatest>false</IsLatest>"
        "<Size>4</Size><StorageClass>STANDARD</StorageClass><ETag>e</ETag></Version>"
        "</ListBucketVersionsResult>"
    )


def test_list_multipart_uploads_omits_empty():
    assert ListMultipartUploadsResult(bucket="b").to_xml() == (
        "<ListMultipartUploadsResult><Bucket>b</Bucket></ListMultipartUploadsResult>"
    )


def test_object_list_prefix_tracking_is_per_instance():
    first, second = ObjectList(), ObjectList()
    first.add_prefix("x")
    second.add_prefix("x")
    assert len(first.common_prefixes) == 1 and len(second.common_prefixes) == 1