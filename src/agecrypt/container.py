"""Recognise age containers without decrypting them.

Only the header structure is inspected: which stanzas it carries and
whether it is complete. Whether a file can actually be decrypted is left
to pyrage.
"""

import base64
import binascii
from typing import Iterator, List, Optional, Sequence, Tuple

VERSION_LINE = b"age-encryption.org/v1"
ARMOR_BEGIN = b"-----BEGIN AGE ENCRYPTED FILE-----"
ARMOR_END = b"-----END AGE ENCRYPTED FILE-----"
COLUMNS = 64
MAC_COLUMNS = 43
NONCE_SIZE = 16
GREASE_SUFFIX = "-grease"


class ArmorError(ValueError):
    """The ASCII armor is complete but its body is not valid base64."""


class Header(object):
    """The recipient stanzas of an age header.

    `size` is the length of the encoded header including the MAC line.
    """

    def __init__(self, stanzas: Sequence[Sequence[bytes]], size: int = 0):
        self.stanzas = [list(args) for args in stanzas]
        self.size = size

    @property
    def types(self) -> List[str]:
        # Grease stanzas are random filler that carries no recipient.
        types = [
            args[0].decode("ascii", errors="replace") for args in self.stanzas]
        return [t for t in types if not t.endswith(GREASE_SUFFIX)]

    @property
    def is_scrypt(self) -> bool:
        return "scrypt" in self.types

    def __repr__(self):
        return "<Header {}>".format(", ".join(self.types))


def is_armored(data: bytes) -> bool:
    return data.lstrip().startswith(ARMOR_BEGIN)


def dearmor(data: bytes) -> Optional[bytes]:
    """Return the binary content of an armored container.

    Returns `None` if the armor is cut off before its end marker.
    """
    lines = data.strip().split(b"\n")
    lines = [line.rstrip(b"\r") for line in lines]
    if lines[0] != ARMOR_BEGIN:
        raise ArmorError("armored data must start with the begin marker")
    try:
        end = lines.index(ARMOR_END)
    except ValueError:
        return None
    body = lines[1:end]
    for line in body[:-1]:
        if len(line) != COLUMNS:
            raise ArmorError("armored body lines must be 64 columns wide")
    try:
        return base64.b64decode(b"".join(body), validate=True)
    except binascii.Error as e:
        raise ArmorError(f"invalid base64 in armored body: {e}") from e


def _lines(data: bytes) -> Iterator[Tuple[bytes, int]]:
    # Yields each line with the offset following it. An unterminated
    # trailing line means the header was truncated.
    start = 0
    while True:
        end = data.find(b"\n", start)
        if end == -1:
            return
        yield data[start:end], end + 1
        start = end + 1


def _is_unpadded_base64(data: bytes) -> bool:
    if b"=" in data:
        return False
    try:
        base64.b64decode(data + b"=" * (-len(data) % 4), validate=True)
    except binascii.Error:
        return False
    return True


def parse_header(data: bytes) -> Optional[Header]:
    """Parse the header of a binary age container.

    Returns `None` if `data` does not start with a complete age header.
    """
    lines = _lines(data)
    stanzas = []
    try:
        version, _ = next(lines)
        if version != VERSION_LINE:
            return None
        line, offset = next(lines)
        while line.startswith(b"-> "):
            args = line[3:].split(b" ")
            if not all(args):
                return None
            body = b""
            while True:
                chunk, offset = next(lines)
                if len(chunk) > COLUMNS:
                    return None
                body += chunk
                if len(chunk) < COLUMNS:
                    break
            if not _is_unpadded_base64(body):
                return None
            stanzas.append(args)
            line, offset = next(lines)
    except StopIteration:
        return None
    if not line.startswith(b"--- "):
        return None
    mac = line[4:]
    if len(mac) != MAC_COLUMNS or not _is_unpadded_base64(mac):
        return None
    if not stanzas:
        return None
    return Header(stanzas, offset)


def open_container(data: bytes) -> Optional[Tuple[Header, bytes]]:
    """Return the header and the binary form of an age container.

    Returns `None` if `data` is not a (complete) age container: the header
    must be complete and followed by the payload nonce. Raises
    `ArmorError` for a complete armor with an undecodable body.
    """
    if is_armored(data):
        binary = dearmor(data)
        if binary is None:
            return None
    else:
        binary = data
    header = parse_header(binary)
    if header is None:
        return None
    if len(binary) - header.size < NONCE_SIZE:
        return None
    return header, binary
