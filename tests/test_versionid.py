import base64

from fakes3.s3mem.versionid import VersionGenerator


def test_version_ids_are_sorted():
    generator = VersionGenerator(0, 32)
    last = ""
    for index in range(1000):
        current = generator.next()
        assert last <= current, f"failed at index {index}: {current} < {last}"
        last = current


def test_version_ids_are_unique():
    generator = VersionGenerator(7)
    ids = [generator.next() for _ in range(500)]
    assert len(set(ids)) == len(ids)


def test_version_id_prefix():
    generator = VersionGenerator(1)
    assert generator.next().startswith("3/")


def test_same_seed_gives_same_sequence():
    first = VersionGenerator(42)
    second = VersionGenerator(42)
    assert [first.next() for _ in range(10)] == [second.next() for _ in range(10)]


def test_different_seeds_give_different_ids():
    assert VersionGenerator(1).next() != VersionGenerator(2).next()


def test_version_id_decodes_to_counter():
    generator = VersionGenerator(0)
    generator.next()
    raw = base64.b32hexdecode(generator.next()[2:])
    assert raw[:30] == b"2".rjust(30, b"0")
    assert raw[30:31] == b"\x00"


def test_negative_seed_is_accepted():
    generator = VersionGenerator(-1)
    first, second = generator.next(), generator.next()
    assert first < second