"""The git-agecrypt.toml configuration file.

    [config]
    "secrets/production.env" = ["age1...", "ssh-ed25519 AAAA..."]

    [passphrase]
    sops = "sops -d --extract '[\"age_passphrase\"]' secrets.yaml"

`[config]` maps repository paths to the recipients a file is encrypted
for. `[passphrase]` maps getter keys to shell commands that print the
passphrase of encrypted identity files.
"""

import json
import logging
import pathlib
import tomllib
from typing import Dict, List, Optional

from agecrypt import ConfigurationError
from agecrypt.recipient import validate_recipients

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "git-agecrypt.toml"


class AppConfig(object):

    def __init__(self, path, recipients=None, passphrase=None):
        self.path = pathlib.Path(path)
        self.recipients: Dict[str, List[str]] = recipients or {}
        self.passphrase: Dict[str, str] = passphrase or {}

    @classmethod
    def load(cls, path, workdir=None) -> "AppConfig":
        path = pathlib.Path(path)
        if workdir is not None and not path.is_absolute():
            path = pathlib.Path(workdir) / path
        if not path.exists():
            logger.debug("No configuration at %s, using defaults", path)
            return cls(path)
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError.from_context(
                f"Could not parse {path}: {e}")

        recipients = data.get("config", {})
        if not isinstance(recipients, dict) or not all(
                isinstance(v, list) and all(isinstance(r, str) for r in v)
                for v in recipients.values()):
            raise ConfigurationError.from_context(
                f"[config] in {path} must map paths to lists of recipients")

        passphrase = data.get("passphrase", {})
        if not isinstance(passphrase, dict) or not all(
                isinstance(v, str) for v in passphrase.values()):
            raise ConfigurationError.from_context(
                f"[passphrase] in {path} must map keys to shell commands")

        return cls(path, dict(recipients), dict(passphrase))

    def has_passphrase_key(self, key: str) -> bool:
        return key in self.passphrase

    def get_passphrase_command(self, key: str) -> Optional[str]:
        return self.passphrase.get(key)

    def get_public_keys(self, file) -> List[str]:
        file = pathlib.PurePosixPath(file).as_posix()
        try:
            return list(self.recipients[file])
        except KeyError:
            raise ConfigurationError.from_context(
                f"No recipients configured for {file}")

    def list_recipients(self) -> Dict[str, List[str]]:
        return {path: list(r) for path, r in self.recipients.items()}

    def add(self, recipients, paths):
        validate_recipients(recipients)
        for path in paths:
            current = self.recipients.setdefault(_normalize(path), [])
            for recipient in recipients:
                if recipient not in current:
                    current.append(recipient)

    def remove(self, recipients, paths):
        for path in paths:
            path = _normalize(path)
            if path not in self.recipients:
                continue
            remaining = [
                r for r in self.recipients[path] if r not in recipients]
            if remaining:
                self.recipients[path] = remaining
            else:
                del self.recipients[path]

    def save(self):
        # Minimal TOML writer: two tables of strings / string lists.
        lines = ["[config]"]
        for path in sorted(self.recipients):
            values = ", ".join(_toml_str(r) for r in self.recipients[path])
            lines.append(f"{_toml_str(path)} = [{values}]")
        if self.passphrase:
            lines.append("")
            lines.append("[passphrase]")
            for key in sorted(self.passphrase):
                lines.append(
                    f"{_toml_str(key)} = {_toml_str(self.passphrase[key])}")
        self.path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        logger.debug("Wrote configuration to %s", self.path)


def _normalize(path) -> str:
    return pathlib.PurePosixPath(path).as_posix()


def _toml_str(value: str) -> str:
    # JSON string escapes are a subset of TOML basic string escapes.
    return json.dumps(value, ensure_ascii=False)
