"""The git filter driver and the commands managing its configuration."""

import io
import logging
import pathlib
from typing import Dict, List, Optional

from agecrypt import ReportingException, output
from agecrypt.cipher import decrypt, encrypt
from agecrypt.config import CONFIG_FILENAME, AppConfig
from agecrypt.container import open_container
from agecrypt.identity import validate_identity
from agecrypt.utils import digest

logger = logging.getLogger(__name__)

FILTER_NAME = "git-agecrypt"
IDENTITY_KEY = "git-agecrypt.config.identity"


class Context(object):
    """Everything a filter invocation needs: the repository, its
    configuration and the credential."""

    def __init__(self, repo, credential, config=None):
        self.repo = repo
        self.credential = credential
        self._config = config

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            self._config = AppConfig.load(CONFIG_FILENAME, self.repo.workdir)
        return self._config

    @property
    def identities(self) -> List[str]:
        return self.repo.get_config_values(IDENTITY_KEY)

    def cleartext_digest(self, file, cleartext) -> str:
        file = pathlib.PurePosixPath(file).as_posix()
        recipients = sorted(self.config.recipients.get(file, []))
        return digest("\n".join(recipients), cleartext)


def init(repo):
    repo.set_config(f"filter.{FILTER_NAME}.required", "true")
    repo.set_config(f"filter.{FILTER_NAME}.smudge", "git-agecrypt smudge -f %f")
    repo.set_config(f"filter.{FILTER_NAME}.clean", "git-agecrypt clean -f %f")
    repo.set_config(f"diff.{FILTER_NAME}.textconv", "git-agecrypt textconv")


def deinit(repo):
    repo.remove_config_section(f"filter.{FILTER_NAME}")
    repo.remove_config_section(f"diff.{FILTER_NAME}")
    repo.remove_sidecars()


def clean(ctx, file, stdin, stdout):
    """Encrypt the content of `file` for its configured recipients.

    age output differs on every run. If the content is unchanged since it
    was last encrypted or checked out, the staged ciphertext is reused so
    that git does not see a modification.
    """
    cleartext = stdin.read()
    public_keys = ctx.config.get_public_keys(file)
    current = ctx.cleartext_digest(file, cleartext)

    if ctx.repo.load_sidecar(file) == current:
        existing = ctx.repo.get_index_blob(file)
        if existing is not None and open_container(existing) is not None:
            logger.debug("%s is unchanged, reusing staged ciphertext", file)
            stdout.write(existing)
            return

    logger.debug("Encrypting %s", file)
    encrypted = encrypt(public_keys, io.BytesIO(cleartext))
    ctx.repo.save_sidecar(file, current)
    stdout.write(encrypted)


def smudge(ctx, file, stdin, stdout):
    """Decrypt the content of `file`. Content that is not encrypted is
    passed through unchanged."""
    encrypted = stdin.read()
    decrypted = decrypt(ctx.identities, io.BytesIO(encrypted), ctx.credential)
    if decrypted is None:
        logger.debug("%s is not encrypted, passing through", file)
        stdout.write(encrypted)
        return
    ctx.repo.save_sidecar(file, ctx.cleartext_digest(file, decrypted))
    stdout.write(decrypted)


def textconv(ctx, path, stdout):
    with open(path, "rb") as f:
        content = f.read()
    decrypted = decrypt(ctx.identities, io.BytesIO(content), ctx.credential)
    stdout.write(content if decrypted is None else decrypted)


# configuration commands


def add_identities(ctx, paths):
    for path in paths:
        path = str(pathlib.Path(path).expanduser().absolute())
        note = validate_identity(path, ctx.credential)
        if note:
            output.annotate(f"{path}: {note}")
        ctx.repo.add_config_value(IDENTITY_KEY, path)


def remove_identities(ctx, paths):
    for path in paths:
        path = str(pathlib.Path(path).expanduser().absolute())
        ctx.repo.remove_config_value(IDENTITY_KEY, path)


def list_identities(ctx) -> Dict[str, Optional[str]]:
    """Return the configured identity paths with a validation note each.

    Validation errors are reported as notes, so that one broken identity
    file does not hide the others.
    """
    result = {}
    for path in ctx.identities:
        try:
            result[path] = validate_identity(path, ctx.credential)
        except ReportingException as e:
            result[path] = f"invalid: {e}"
    return result


def add_recipients(ctx, recipients, paths):
    ctx.config.add(recipients, paths)
    ctx.config.save()


def remove_recipients(ctx, recipients, paths):
    ctx.config.remove(recipients, paths)
    ctx.config.save()


def list_recipients(ctx) -> Dict[str, List[str]]:
    return ctx.config.list_recipients()
