"""Obtain the passphrase for encrypted identity files.

The passphrase is kept in a `Credential` holder which is created once by
the command line entry point and handed to everything that may need to
open an encrypted identity file.
"""

import enum
import logging
import os
from typing import Optional, Tuple

from agecrypt import GetterNotFound, PassphraseCommandError
from agecrypt.utils import CmdExecutionError, cmd

logger = logging.getLogger(__name__)

AGE_PASSPHRASE_ENV = "AGE_PASSPHRASE"
AGE_PASSPHRASE_GETTER_ENV = "AGE_PASSPHRASE_GETTER"
IMPLICIT_GETTER_KEY = "sops"


class GetterSource(enum.Enum):
    """How a passphrase getter was triggered. Only used in messages."""

    ARG = "-g argument"
    ENV_VAR = f"{AGE_PASSPHRASE_GETTER_ENV} env var"
    IMPLICIT_SOPS = f"implicit {IMPLICIT_GETTER_KEY} key in [passphrase] section"

    def __str__(self):
        return self.value


class Credential(object):
    """Holds the passphrase for the lifetime of the process."""

    def __init__(self, passphrase: Optional[str] = None):
        self._passphrase = passphrase
        self._published = False

    @classmethod
    def from_environment(cls, environ=None) -> "Credential":
        environ = os.environ if environ is None else environ
        return cls(environ.get(AGE_PASSPHRASE_ENV))

    @property
    def passphrase(self) -> Optional[str]:
        return self._passphrase

    @property
    def is_set(self) -> bool:
        return self._passphrase is not None

    def publish(self, passphrase: str, origin: str):
        if self._published:
            raise RuntimeError("The passphrase has already been published.")
        logger.debug("Setting passphrase from %s", origin)
        self._passphrase = passphrase
        self._published = True

    def __repr__(self):
        return "<Credential {}>".format("set" if self.is_set else "unset")


def select_getter(
    explicit_key, config, environ=None
) -> Optional[Tuple[str, GetterSource]]:
    """Determine the getter key to use, in order of priority:

    1. an explicit key (the `-g` argument),
    2. the AGE_PASSPHRASE_GETTER environment variable; an empty value
       suppresses the passphrase getter altogether,
    3. the implicit `sops` key, if it is present in the configuration.

    """
    environ = os.environ if environ is None else environ
    if explicit_key is not None:
        return explicit_key, GetterSource.ARG

    env_value = environ.get(AGE_PASSPHRASE_GETTER_ENV)
    if env_value is not None:
        if not env_value:
            logger.debug(
                "%s is set but empty, suppressing default %s getter",
                AGE_PASSPHRASE_GETTER_ENV,
                IMPLICIT_GETTER_KEY,
            )
            return None
        logger.debug(
            "Using getter key from %s: %s", AGE_PASSPHRASE_GETTER_ENV,
            env_value)
        return env_value, GetterSource.ENV_VAR

    if config.has_passphrase_key(IMPLICIT_GETTER_KEY):
        return IMPLICIT_GETTER_KEY, GetterSource.IMPLICIT_SOPS
    return None


def run_getter(command: str, source: GetterSource) -> str:
    """Run a getter command through the shell and return the passphrase."""
    try:
        stdout, _ = cmd(command, encoding=None)
    except CmdExecutionError as e:
        raise PassphraseCommandError.from_context(
            "Passphrase command failed",
            command,
            source,
            exitcode=e.returncode,
            stderr=e.stderr,
        ) from e
    except OSError as e:
        raise PassphraseCommandError.from_context(
            f"Failed to execute passphrase command: {e}", command, source
        ) from e

    try:
        passphrase = stdout.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        raise PassphraseCommandError.from_context(
            "Passphrase command output is not valid UTF-8", command, source
        ) from e

    if not passphrase:
        raise PassphraseCommandError.from_context(
            "Passphrase command returned empty output", command, source
        )
    return passphrase


def resolve_credential(explicit_key, config, credential, environ=None):
    """Run the applicable passphrase getter and publish its result into
    `credential`. Does nothing if no getter applies.
    """
    selected = select_getter(explicit_key, config, environ)
    if selected is None:
        return
    key, source = selected

    command = config.get_passphrase_command(key)
    if command is None:
        raise GetterNotFound.from_context(key, source)

    logger.debug("Executing passphrase command for key '%s'", key)
    credential.publish(run_getter(command, source), f"getter '{key}'")
