import logging
from typing import Optional, Sequence

import pyrage

from agecrypt import DecryptionError, EncryptionError
from agecrypt.container import ArmorError, open_container
from agecrypt.identity import resolve_identities
from agecrypt.recipient import resolve_recipients

logger = logging.getLogger(__name__)

# age reports this when no identity unwraps any recipient stanza.
NO_MATCHING_KEYS = "no matching keys"


def decrypt(identities: Sequence, encrypted, credential) -> Optional[bytes]:
    """Decrypt an age container read from the `encrypted` stream.

    Returns `None` if the content is not an age container at all, so that
    callers can pass it through unchanged.
    """
    data = encrypted.read()
    try:
        container = open_container(data)
    except ArmorError as e:
        raise DecryptionError.from_context(f"Malformed armored file: {e}") from e
    if container is None:
        logger.debug("Content is not an age container")
        return None
    header, binary = container
    if header.is_scrypt:
        raise DecryptionError.from_context(
            "Passphrase encrypted files are not supported")

    loaded = resolve_identities(identities, credential)
    try:
        return pyrage.decrypt(binary, [i.handle for i in loaded])
    except pyrage.DecryptError as e:
        paths = [str(p) for p in identities]
        if NO_MATCHING_KEYS in str(e).lower():
            message = "Failed to decrypt: no matching identity found."
        else:
            message = "Failed to decrypt."
        raise DecryptionError.from_context(
            "{} Configured identities: [{}] ({})".format(
                message, ", ".join(paths), e),
            paths,
        ) from e


def encrypt(public_keys: Sequence[str], cleartext) -> bytes:
    """Encrypt the `cleartext` stream for the given recipient strings."""
    if not public_keys:
        raise EncryptionError.from_context(
            "Couldn't encrypt: no recipients given")
    recipients = resolve_recipients(public_keys)
    try:
        return pyrage.encrypt(cleartext.read(), [r.handle for r in recipients])
    except pyrage.EncryptError as e:
        raise EncryptionError.from_context(
            f"Couldn't encrypt for recipients: {e}", public_keys) from e
