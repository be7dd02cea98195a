import base64
import subprocess

import pyrage
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from agecrypt._output import output
from agecrypt.credential import (
    AGE_PASSPHRASE_ENV,
    AGE_PASSPHRASE_GETTER_ENV,
    Credential,
)
from agecrypt.repository import Repository

PASSPHRASE = "correct horse battery staple"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    monkeypatch.delenv(AGE_PASSPHRASE_ENV, raising=False)
    monkeypatch.delenv(AGE_PASSPHRASE_GETTER_ENV, raising=False)


@pytest.fixture(autouse=True)
def restore_output(monkeypatch):
    monkeypatch.setattr(output, "backend", output.backend)
    monkeypatch.setattr(output, "enable_debug", False)


class UntouchableCredential(object):
    """Fails the test if anybody looks at the passphrase."""

    @property
    def passphrase(self):
        raise AssertionError("credential was consulted")

    @property
    def is_set(self):
        raise AssertionError("credential was consulted")


@pytest.fixture
def untouchable_credential():
    return UntouchableCredential()


@pytest.fixture
def credential():
    return Credential(PASSPHRASE)


@pytest.fixture
def x25519():
    return pyrage.x25519.Identity.generate()


@pytest.fixture
def identity_file(tmp_path, x25519):
    path = tmp_path / "identity.txt"
    path.write_text(
        "# created: 2024-01-01T00:00:00Z\n"
        "# public key: {}\n"
        "{}\n".format(x25519.to_public(), x25519)
    )
    return path


@pytest.fixture(scope="session")
def wrapped_key():
    # scrypt is deliberately slow, encrypt only once per session.
    identity = pyrage.x25519.Identity.generate()
    content = "# wrapped\n{}\n".format(identity).encode("ascii")
    return identity, pyrage.passphrase.encrypt(content, PASSPHRASE)


@pytest.fixture
def wrapped_identity_file(tmp_path, wrapped_key):
    path = tmp_path / "identity.age"
    path.write_bytes(wrapped_key[1])
    return path


@pytest.fixture
def ssh_key(tmp_path):
    key = Ed25519PrivateKey.generate()
    path = tmp_path / "id_ed25519"
    path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.OpenSSH,
            serialization.NoEncryption(),
        )
    )
    public = (
        key.public_key()
        .public_bytes(
            serialization.Encoding.OpenSSH, serialization.PublicFormat.OpenSSH
        )
        .decode("ascii")
    )
    return path, public


def _armor(binary):
    body = base64.b64encode(binary)
    lines = [body[i:i + 64] for i in range(0, len(body), 64)]
    return b"\n".join(
        [b"-----BEGIN AGE ENCRYPTED FILE-----"]
        + lines
        + [b"-----END AGE ENCRYPTED FILE-----", b""]
    )


@pytest.fixture
def armor():
    return _armor


@pytest.fixture
def repo(tmp_path):
    workdir = tmp_path / "repo"
    subprocess.check_call(["git", "init", "-q", str(workdir)])
    return Repository.from_current_dir(cwd=workdir)


@pytest.fixture
def in_repo(repo, monkeypatch):
    monkeypatch.chdir(repo.workdir)
    return repo

