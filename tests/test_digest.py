"""Tests for the digest engine."""

import pytest

from docanchor_api.errors import InvalidInputError, MalformedHashError
from docanchor_api.hashing.digest import (
    HashMethod,
    digest_document,
    hash_content,
    hash_file,
    normalize_to_bytes32,
)

HELLO_WORLD_SHA256 = "0xb94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"
HELLO_WORLD_KECCAK = "0x47173285a8d7341e5e972fc677286384f802f8ef42a5ec5f03bbfa254cb01fad"
EMPTY_KECCAK = "0xc5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"


def test_hash_content_known_vector():
    digest = hash_content("hello world")
    assert digest.value == HELLO_WORLD_SHA256
    assert digest.method == HashMethod.CONTENT_SHA256


def test_hash_content_accepts_bytes_and_str():
    assert hash_content(b"hello world") == hash_content("hello world")


def test_hash_content_utf8():
    assert hash_content("héllo").value == hash_content("héllo".encode("utf-8")).value


def test_hash_file_known_vectors():
    assert hash_file(b"hello world").value == HELLO_WORLD_KECCAK
    assert hash_file(b"").value == EMPTY_KECCAK
    assert hash_file(b"").method == HashMethod.FILE_KECCAK


def test_digests_are_deterministic():
    data = bytes(range(256)) * 4
    assert hash_file(data) == hash_file(data)
    assert hash_content(data) == hash_content(data)


def test_file_and_content_paths_differ():
    """The same bytes hashed by the two paths must not be treated as equal."""
    assert hash_file(b"hello world").value != hash_content(b"hello world").value


def test_digest_shape():
    for digest in (hash_file(b"abc"), hash_content("abc")):
        assert digest.value.startswith("0x")
        assert len(digest.value) == 66
        assert digest.value == digest.value.lower()
        assert len(digest.as_bytes()) == 32
        assert str(digest) == digest.value


def test_normalize_pads_short_hash():
    assert normalize_to_bytes32("0xabc") == "0x" + "0" * 61 + "abc"


def test_normalize_without_prefix_and_upper_case():
    assert normalize_to_bytes32("ABC") == "0x" + "0" * 61 + "abc"
    assert normalize_to_bytes32("0XABC") == "0x" + "0" * 61 + "abc"


def test_normalize_is_idempotent():
    for value in ("0xabc", "1", HELLO_WORLD_SHA256, "0x" + "f" * 64):
        once = normalize_to_bytes32(value)
        assert normalize_to_bytes32(once) == once


def test_normalize_leaves_full_length_hash():
    assert normalize_to_bytes32(HELLO_WORLD_SHA256[2:]) == HELLO_WORLD_SHA256


def test_normalize_rejects_too_long():
    with pytest.raises(MalformedHashError):
        normalize_to_bytes32("0x" + "a" * 65)


def test_normalize_rejects_non_hex():
    with pytest.raises(MalformedHashError):
        normalize_to_bytes32("0xnothex")


def test_normalize_rejects_non_string():
    with pytest.raises(MalformedHashError):
        normalize_to_bytes32(b"\x01\x02")


def test_digest_document_picks_path():
    assert digest_document(file_bytes=b"hello world").value == HELLO_WORLD_KECCAK
    assert digest_document(text="hello world").value == HELLO_WORLD_SHA256


def test_digest_document_requires_exactly_one_input():
    with pytest.raises(InvalidInputError):
        digest_document()
    with pytest.raises(InvalidInputError):
        digest_document(file_bytes=b"x", text="x")


def test_hash_content_rejects_lone_surrogate():
    with pytest.raises(InvalidInputError):
        hash_content("\ud800")
