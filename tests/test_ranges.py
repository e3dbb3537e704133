import pytest

from fakes3.errors import ErrorCode, S3Error
from fakes3.ranges import (
    RANGE_NO_END,
    ObjectRange,
    ObjectRangeRequest,
    parse_range_header,
    range_headers,
)


@pytest.mark.parametrize(
    "inst, inend, rev, sz, outst, outln",
    [
        (0, RANGE_NO_END, False, 5, 0, 5),
        (0, 5, False, 10, 0, 6),
        (0, 0, False, 4, 0, 1),
        (1, 5, False, 10, 1, 5),
        (1, 5, False, 3, 1, 2),
        (5, 7, False, 6, 5, 1),
        (0, 10, True, 10, 0, 10),
        (0, 5, True, 10, 5, 5),
    ],
)
def test_range_request(inst, inend, rev, sz, outst, outln):
    rng = ObjectRangeRequest(start=inst, end=inend, from_end=rev).range(sz)
    assert rng == ObjectRange(start=outst, length=outln)


@pytest.mark.parametrize(
    "inst, inend, rev, sz",
    [
        (0, 0, False, 0),
        (1, 1, False, 1),
        (10, 15, False, 10),
        (40, 50, False, 11),
        (0, 20, True, 10),
        (0, 11, True, 10),
        (0, 0, True, 10),  # zero suffix-length is not satisfiable
    ],
)
def test_range_request_fails(inst, inend, rev, sz):
    with pytest.raises(S3Error) as info:
        ObjectRangeRequest(start=inst, end=inend, from_end=rev).range(sz)
    assert info.value.code == ErrorCode.INVALID_RANGE


def test_range_headers_partial():
    assert ObjectRange(start=2, length=3).headers(10) == {
        "Content-Range": "bytes 2-4/10",
        "Content-Length": "3",
    }
    assert range_headers(ObjectRange(start=2, length=3), 10)["Content-Range"] == "bytes 2-4/10"


def test_range_headers_full():
    assert range_headers(None, 10) == {"Content-Length": "10"}


def test_parse_empty_header():
    assert parse_range_header("") is None


@pytest.mark.parametrize(
    "header, expected",
    [
        ("bytes=0-4", ObjectRangeRequest(start=0, end=4)),
        ("bytes=3-", ObjectRangeRequest(start=3, end=RANGE_NO_END)),
        ("bytes=-5", ObjectRangeRequest(end=5, from_end=True)),
        ("bytes= 1 - 2 ", ObjectRangeRequest(start=1, end=2)),
    ],
)
def test_parse_range_header(header, expected):
    assert parse_range_header(header) == expected


@pytest.mark.parametrize(
    "header",
    ["items=0-1", "bytes=", "bytes=5", "bytes=5-3", "bytes=a-3", "bytes=1-b", "bytes=-x"],
)
def test_parse_range_header_invalid(header):
    with pytest.raises(S3Error) as info:
        parse_range_header(header)
    assert info.value.code == ErrorCode.INVALID_RANGE


def test_parse_range_header_multiple():
    with pytest.raises(S3Error) as info:
        parse_range_header("bytes=0-1,2-3")
    assert info.value.code == ErrorCode.NOT_IMPLEMENTED


def test_parsed_range_resolves():
    request = parse_range_header("bytes=-3")
    assert request.range(10) == ObjectRange(start=7, length=3)