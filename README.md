# fakes3

A fake of the Amazon S3 API that lives in memory, for tests that need
S3-like behaviour without a network or an account. It provides:

- an in-memory storage backend with buckets, objects, versioning, prefix and
  delimiter listings, and multi-object delete (`fakes3.s3mem.backend`);
- in-memory multipart uploads with part listing and reassembly
  (`fakes3.uploader`);
- the XML messages that S3 sends and accepts (`fakes3.messages`);
- byte-range parsing, bucket-name validation and S3-style URL encoding
  (`fakes3.ranges`, `fakes3.util`);
- verification of AWS Signature Version 4 `Authorization` headers
  (`fakes3.signature`).

## What it does not do

The package is a library only. It has no HTTP server, no request router and
no command-line program: it does not listen on a port or turn HTTP requests
into backend calls. To serve S3 clients you wire these pieces into a web
framework yourself. Everything is kept in memory; nothing persists.

## Installation

```
pip install fakes3
```

To run the test suite:

```
pip install "fakes3[test]"
pytest
```

## Storing and reading objects

```python
import io

from fakes3.errors import ErrorCode, S3Error, has_error_code
from fakes3.s3mem.backend import MemoryBackend

backend = MemoryBackend(version_seed=0)
backend.create_bucket("my-bucket")

body = b"hello"
backend.put_object("my-bucket", "greeting.txt", {}, io.BytesIO(body), len(body))

obj = backend.get_object("my-bucket", "greeting.txt")
assert obj.contents.read() == b"hello"

try:
    backend.head_object("my-bucket", "missing.txt")
except S3Error as err:
    assert has_error_code(err, ErrorCode.NO_SUCH_KEY)
```

Errors are raised as `S3Error` (or its subclasses `ErrorResponse` and
`ResourceErrorResponse`) carrying an `ErrorCode`; `has_error_code` checks
what went wrong. `put_object` raises `ErrorCode.INCOMPLETE_BODY` when the
stream holds more or fewer bytes than the given size.

`MemoryBackend` also offers `list_buckets`, `list_bucket` (with a `Prefix`
and a `ListBucketPage`), `delete_bucket`, `bucket_exists`, `copy_object`,
`delete_object` and `delete_multi`.

## Versioning

```python
from fakes3.messages import VersioningConfiguration, VersioningStatus

backend.set_versioning_configuration(
    "my-bucket", VersioningConfiguration(status=VersioningStatus.ENABLED)
)
result = backend.put_object("my-bucket", "greeting.txt", {}, io.BytesIO(b"v2"), 2)
old = backend.get_object_version("my-bucket", "greeting.txt", result.version_id)
listing = backend.list_bucket_versions("my-bucket")
```

With versioning enabled, `delete_object` leaves a delete marker;
`delete_object_version` removes one version permanently. Version IDs come from
`fakes3.s3mem.versionid.VersionGenerator` and sort in the order they were made.

## Multipart uploads

```python
from datetime import datetime, timezone

from fakes3.messages import CompleteMultipartUploadRequest, CompletedPart
from fakes3.uploader import Uploader

uploader = Uploader()
now = datetime.now(timezone.utc)
upload = uploader.begin("my-bucket", "big.bin", {}, now)
etag = upload.add_part(1, now, b"abc")

body, md5_hex = upload.reassemble(
    CompleteMultipartUploadRequest(parts=[CompletedPart(part_number=1, etag=etag)])
)
uploader.complete("my-bucket", "big.bin", upload.id)
```

`Uploader.list` and `Uploader.list_parts` produce paged listings; upload IDs
are increasing decimal numbers.

## XML messages

Response classes in `fakes3.messages` have a `to_xml()` method; request
classes such as `DeleteRequest`, `CompleteMultipartUploadRequest` and
`VersioningConfiguration` have `from_xml()`. Times are written as
`2019-01-01T12:00:00Z` by `format_content_time`.

## Prefixes and delimiters

`Prefix.match` follows S3's rules for rolling keys up into common prefixes:

```python
from fakes3.prefix import new_prefix

match = new_prefix("foo", "/").match("foo/bar")
# match.matched_part == "foo/", match.common_prefix is True
```

`match` returns `None` when the key does not match.

## Byte ranges

```python
from fakes3.ranges import parse_range_header

request = parse_range_header("bytes=0-4")
object_range = request.range(10)   # start 0, length 5
```

Only a single range per request is supported; several ranges raise
`ErrorCode.NOT_IMPLEMENTED`, and unsatisfiable ones `ErrorCode.INVALID_RANGE`.

## Bucket names and URL encoding

```python
from fakes3.util import url_encode, validate_bucket_name

validate_bucket_name("my-bucket")      # passes
validate_bucket_name("192.168.1.1")    # raises S3Error (InvalidBucketName)
url_encode("a b~/c")                   # 'a+b%7E/c'
```

## Deterministic time

```python
from datetime import datetime, timedelta, timezone

from fakes3.s3mem.backend import MemoryBackend
from fakes3.timesource import fixed_time_source

clock = fixed_time_source(datetime(2019, 1, 1, 12, tzinfo=timezone.utc))
backend = MemoryBackend(time_source=clock, version_seed=0)
clock.advance(timedelta(minutes=1))
```

## Signature V4 verification

```python
from fakes3.signature.v4 import CredentialStore, Request, v4_sign_verify

store = CredentialStore()
store.store_keys({"AKIDEXAMPLE": "secret"})

request = Request(method="GET", path="/my-bucket", headers=signed_headers, host="localhost")
credentials = v4_sign_verify(request, store)
```

`v4_sign_verify` returns the matching `Credentials`, or raises
`SignatureError` whose `code` is a `SignatureErrorCode` and whose `api_error`
holds the S3 error code, description and HTTP status.
`encode_api_error_to_response` in `fakes3.signature.apierrors` renders that
error as an XML body. Without a store, the shared store filled by
`store_keys` and `reload_keys` is used. `get_access_key` in
`fakes3.signature.parser` extracts the access key from an `Authorization`
header without verifying it.