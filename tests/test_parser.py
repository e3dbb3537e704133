import pytest

from fakes3.signature.apierrors import SignatureError, SignatureErrorCode
from fakes3.signature.parser import (
    Credentials,
    extract_fields,
    get_access_key,
    parse_credential_header,
    parse_sign_v4,
    parse_signature,
    parse_signed_header,
)

ACCESS_KEY = "placeholder"
SCOPE = "20130524/us-east-1/s3/aws4_request"
SIGNATURE = "fe5f80f77d5fa3beca038a248ff027d0445342fe2855ddc963176630326f1024"


def _auth(credential=f"{ACCESS_KEY}/{SCOPE}", signed="host;range;x-amz-date", signature=SIGNATURE):
    return (
        f"AWS4-HMAC-SHA256 Credential={credential}, "
        f"SignedHeaders={signed}, Signature={signature}"
    )


def test_parse_sign_v4_fields():
    values = parse_sign_v4(_auth())
    assert values.credential.access_key == ACCESS_KEY
    assert values.credential.scope.region == "us-east-1"
    assert values.credential.scope.service == "s3"
    assert values.credential.scope.request == "aws4_request"
    assert values.signed_headers == ["host", "range", "x-amz-date"]
    assert values.signature == SIGNATURE


def test_scope_string_round_trips():
    header = parse_credential_header(f"Credential={ACCESS_KEY}/{SCOPE}")
    assert header.scope_string() == SCOPE
    assert header.scope.date.strftime("%Y%m%d") == "20130524"


def test_access_key_may_contain_slashes():
    header = parse_credential_header(f"Credential=abc/def/{SCOPE}")
    assert header.access_key == "abc/def"


def test_get_access_key():
    assert get_access_key(_auth()) == ACCESS_KEY


def test_spaces_are_ignored():
    auth = _auth().replace(", ", " ,   ")
    assert parse_sign_v4(auth).signature == SIGNATURE


def test_unsupported_algorithm():
    with pytest.raises(SignatureError) as info:
        parse_sign_v4("Bearer token")
    assert info.value.code == SignatureErrorCode.UNSUPPORTED_ALGORITHM


def test_wrong_field_count():
    auth = f"AWS4-HMAC-SHA256 Credential={ACCESS_KEY}/{SCOPE}, Signature={SIGNATURE}"
    with pytest.raises(SignatureError) as info:
        parse_sign_v4(auth)
    assert info.value.code == SignatureErrorCode.MISSING_FIELDS


@pytest.mark.parametrize(
    "credential, code",
    [
        ("Credential=20130524/us-east-1/s3/aws4_request", SignatureErrorCode.CRED_MALFORMED),
        (f"Credential={ACCESS_KEY}/2013052/us-east-1/s3/aws4_request",
         SignatureErrorCode.MALFORMED_CREDENTIAL_DATE),
        (f"Credential={ACCESS_KEY}/20131340/us-east-1/s3/aws4_request",
         SignatureErrorCode.MALFORMED_CREDENTIAL_DATE),
        (f"Credential=ab/{SCOPE}", SignatureErrorCode.INVALID_ACCESS_KEY_ID),
        (f"Credential={ACCESS_KEY}/20130524/us-east-1/ec2/aws4_request",
         SignatureErrorCode.INVALID_SERVICE_S3),
        (f"Credential={ACCESS_KEY}/20130524/us-east-1/s3/aws5_request",
         SignatureErrorCode.INVALID_REQUEST_VERSION),
    ],
)
def test_credential_errors(credential, code):
    with pytest.raises(SignatureError) as info:
        parse_credential_header(credential)
    assert info.value.code == code


@pytest.mark.parametrize(
    "element, code",
    [
        ("Foo=bar", SignatureErrorCode.MISSING_SIGN_TAG),
        ("Credential=", SignatureErrorCode.MISSING_FIELDS),
        ("Credential", SignatureErrorCode.MISSING_FIELDS),
        ("Credential=a=b", SignatureErrorCode.MISSING_FIELDS),
    ],
)
def test_extract_fields_errors(element, code):
    with pytest.raises(SignatureError) as info:
        extract_fields(element, "Credential")
    assert info.value.code == code


def test_extract_fields_value():
    assert extract_fields("  Credential=value ", "Credential") == "value"


def test_parse_signed_header_and_signature():
    assert parse_signed_header("SignedHeaders=host") == ["host"]
    assert parse_signature(f"Signature={SIGNATURE}") == SIGNATURE
    with pytest.raises(SignatureError) as info:
        parse_signature("SignedHeaders=host")
    assert info.value.code == SignatureErrorCode.MISSING_SIGN_TAG


def test_credentials_defaults():
    creds = Credentials(access_key=ACCESS_KEY, secret_key="secret")
    assert creds.expiration is None
    assert creds.groups == []
    assert creds.claims == {}