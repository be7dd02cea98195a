import base64
import os

import pyrage
import pytest

from agecrypt.container import ArmorError, dearmor, open_container, parse_header


@pytest.fixture
def ciphertext(x25519):
    return pyrage.encrypt(b"hello", [x25519.to_public()])


def test_parse_header_of_x25519_container(ciphertext):
    header = parse_header(ciphertext)
    assert header.types == ["X25519"]
    assert not header.is_scrypt


def test_parse_header_of_passphrase_container(wrapped_key):
    header = parse_header(wrapped_key[1])
    assert header.types == ["scrypt"]
    assert header.is_scrypt


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"age",
        b"age-encryption.org/v1",
        b"age-encryption.org/v1\n-> X25519 abc\n",
        b"not an age file at all\n",
        b"age-encryption.org/v2\n-> X25519 abc\n\n--- abc\n",
        b"age-encryption.org/v1\n--- abc\n",
        b"age-encryption.org/v1\n->  X25519\n\n--- abc\n",
        b"age-encryption.org/v1\n-> X25519 abc\n" + b"A" * 65 + b"\n--- x\n",
    ],
)
def test_parse_header_rejects_non_containers(data):
    assert parse_header(data) is None


def test_parse_header_rejects_truncated_container(ciphertext):
    header_end = ciphertext.index(b"\n---")
    for cut in [1, 10, 25, header_end, header_end + 3]:
        assert parse_header(ciphertext[:cut]) is None


def test_parse_header_rejects_random_bytes():
    assert parse_header(os.urandom(1024)) is None


def test_open_container_dearmors(ciphertext, armor):
    header, binary = open_container(armor(ciphertext))
    assert binary == ciphertext
    assert header.types == ["X25519"]


def test_open_container_accepts_binary(ciphertext):
    header, binary = open_container(ciphertext)
    assert binary is ciphertext


def test_dearmor_truncated_returns_none(ciphertext, armor):
    armored = armor(ciphertext)
    assert dearmor(armored[:-40]) is None
    assert open_container(armored[:-40]) is None


def test_dearmor_rejects_bad_base64():
    with pytest.raises(ArmorError):
        dearmor(
            b"-----BEGIN AGE ENCRYPTED FILE-----\n"
            b"!!!!\n"
            b"-----END AGE ENCRYPTED FILE-----\n"
        )


def test_dearmor_rejects_short_inner_lines():
    with pytest.raises(ArmorError):
        dearmor(
            b"-----BEGIN AGE ENCRYPTED FILE-----\n"
            b"YWdl\n"
            b"YWdl\n"
            b"-----END AGE ENCRYPTED FILE-----\n"
        )


def make_header(*stanzas, mac=None):
    lines = [b"age-encryption.org/v1"]
    for args, body in stanzas:
        lines.append(b"-> " + b" ".join(args))
        encoded = base64.b64encode(body).rstrip(b"=")
        chunks = [encoded[i:i + 64] for i in range(0, len(encoded), 64)]
        if not chunks or len(chunks[-1]) == 64:
            chunks.append(b"")
        lines.extend(chunks)
    if mac is None:
        mac = base64.b64encode(os.urandom(32)).rstrip(b"=")
    lines.append(b"--- " + mac)
    return b"\n".join(lines) + b"\n"


def test_parse_header_ignores_grease_stanzas():
    data = make_header(
        ([b"X25519", b"abc"], os.urandom(32)),
        ([b"x-grease", b"y"], os.urandom(70)),
    )
    header = parse_header(data)
    assert len(header.stanzas) == 2
    assert header.types == ["X25519"]
    assert not header.is_scrypt
    assert header.size == len(data)


def test_parse_header_size_of_real_container(ciphertext):
    header = parse_header(ciphertext)
    assert ciphertext[:header.size].endswith(b"\n")
    assert b"\n--- " in ciphertext[:header.size]
    assert len(ciphertext) - header.size > 16


@pytest.mark.parametrize(
    "body",
    [
        b"!!!!",
        b"YWJj=",
        b"A",
    ],
)
def test_parse_header_rejects_invalid_stanza_body(body):
    data = make_header(([b"X25519", b"abc"], b""))
    data = data.replace(b"X25519 abc\n\n", b"X25519 abc\n" + body + b"\n")
    assert parse_header(data) is None


@pytest.mark.parametrize(
    "mac", [b"", b"abc", b"!" * 43, b"A" * 42 + b"="])
def test_parse_header_rejects_invalid_mac(mac):
    data = make_header(([b"X25519", b"abc"], os.urandom(32)), mac=mac)
    assert parse_header(data) is None


def test_open_container_requires_payload_nonce(ciphertext, armor):
    header = parse_header(ciphertext)
    for cut in [0, 1, 15]:
        assert open_container(ciphertext[:header.size + cut]) is None
        assert open_container(armor(ciphertext[:header.size + cut])) is None
    assert open_container(ciphertext[:header.size + 16]) is not None
