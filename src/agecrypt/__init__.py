import os.path
from typing import Optional, Sequence

from ._output import output

with open(os.path.dirname(__file__) + "/version.txt") as f:
    __version__ = f.read().strip()


class ReportingException(Exception):
    """Exceptions that support user-readable reporting."""

    def __str__(self):
        raise NotImplementedError()

    def report(self):
        raise NotImplementedError()


class ConfigurationError(ReportingException):
    """The configuration of git-agecrypt is invalid or incomplete."""

    message: str

    @classmethod
    def from_context(cls, message):
        self = cls()
        self.message = message
        return self

    def __str__(self):
        return str(self.message)

    def report(self):
        output.error(self.message)


class GetterNotFound(ConfigurationError):
    """A passphrase getter key is not defined in the [passphrase] section."""

    key: str
    source: str

    @classmethod
    def from_context(cls, key, source):
        self = cls()
        self.key = key
        self.source = str(source)
        self.message = (
            f"Passphrase getter '{key}' not found in [passphrase] section "
            f"of git-agecrypt.toml (triggered by {self.source})"
        )
        return self

    def report(self):
        output.error("Passphrase getter not configured")
        output.tabular("getter", self.key, red=True)
        output.tabular("source", self.source)


class PassphraseCommandError(ReportingException):
    """Running a passphrase getter command did not yield a passphrase."""

    reason: str
    command: str
    source: str
    exitcode: Optional[str]
    stderr: str

    @classmethod
    def from_context(cls, reason, command, source, exitcode=None, stderr=b""):
        self = cls()
        self.reason = reason
        self.command = command
        self.source = str(source)
        self.exitcode = None if exitcode is None else str(exitcode)
        if isinstance(stderr, bytes):
            stderr = stderr.decode("utf-8", errors="replace")
        self.stderr = stderr
        return self

    def __str__(self):
        message = (
            f"{self.reason} (triggered by {self.source})\n"
            f"Command: {self.command}"
        )
        if self.exitcode is not None:
            message += f"\nExit code: {self.exitcode}\nstderr: {self.stderr}"
        return message

    def report(self):
        output.error(self.reason)
        output.tabular("command", self.command, red=True)
        output.tabular("source", self.source)
        if self.exitcode is not None:
            output.tabular("exit code", self.exitcode)
            output.tabular("stderr", self.stderr, separator=":\n")


class IdentityError(ReportingException):
    """An identity file could not be loaded."""

    path: str
    message: str

    @classmethod
    def from_context(cls, path, message):
        self = cls()
        self.path = str(path)
        self.message = message
        return self

    def __str__(self):
        return f"{self.message}: {self.path}"

    def report(self):
        output.error(self.message)
        output.tabular("identity", self.path, red=True)


class CredentialRequired(IdentityError):
    """An identity file is encrypted but no passphrase was provided."""

    @classmethod
    def from_context(cls, path, message=None):
        return super().from_context(
            path,
            message
            or "AGE_PASSPHRASE not set, a passphrase is needed to decrypt",
        )


class CredentialRejected(IdentityError):
    """The provided passphrase did not decrypt an identity file."""

    @classmethod
    def from_context(cls, path, message=None):
        return super().from_context(
            path,
            message or "Failed to decrypt identity file with AGE_PASSPHRASE",
        )


class RecipientError(ReportingException):
    """A recipient string could not be loaded."""

    recipient: str
    message: str

    @classmethod
    def from_context(cls, recipient, message="Invalid recipient"):
        self = cls()
        self.recipient = recipient
        self.message = message
        return self

    def __str__(self):
        return f"{self.message}: {self.recipient!r}"

    def report(self):
        output.error(self.message)
        output.tabular("recipient", repr(self.recipient), red=True)


class DecryptionError(ReportingException):
    """An age container could not be decrypted."""

    message: str
    identities: Sequence[str]

    @classmethod
    def from_context(cls, message, identities=()):
        self = cls()
        self.message = message
        self.identities = [str(i) for i in identities]
        return self

    def __str__(self):
        return self.message

    def report(self):
        output.error(self.message)
        if self.identities:
            output.tabular("identities", ", ".join(self.identities))


class EncryptionError(ReportingException):
    """Content could not be encrypted for the given recipients."""

    message: str
    recipients: Sequence[str]

    @classmethod
    def from_context(cls, message, recipients=()):
        self = cls()
        self.message = message
        self.recipients = list(recipients)
        return self

    def __str__(self):
        return self.message

    def report(self):
        output.error(self.message)
        for recipient in self.recipients:
            output.tabular("recipient", recipient)
