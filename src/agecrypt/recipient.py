"""Turn recipient strings into pyrage recipients."""

import enum
import logging
from typing import Dict, List, Sequence

import pyrage

from agecrypt import RecipientError

logger = logging.getLogger(__name__)


class RecipientKind(enum.Enum):
    X25519 = "x25519"
    SSH = "ssh"
    PLUGIN = "plugin"


class Recipient(object):
    """A recipient a file is encrypted for.

    `text` is the recipient string, or for plugin recipients the strings of
    all recipients handled by the plugin named `plugin`.
    """

    def __init__(self, kind, text, handle, plugin=None):
        self.kind = kind
        self.text = text
        self.handle = handle
        self.plugin = plugin

    def __repr__(self):
        if self.kind is RecipientKind.PLUGIN:
            return f"<Recipient plugin={self.plugin} {self.text!r}>"
        return f"<Recipient {self.kind.value} {self.text!r}>"


class NoOpCallbacks(object):
    """Plugin callbacks for encryption: nothing is ever asked for."""

    def display_message(self, message):
        logger.info(message)

    def confirm(self, message, yes_string, no_string):
        return None

    def request_public_string(self, description):
        return None

    def request_passphrase(self, description):
        return None


# Parsers tried in order; the first one that accepts a string wins.
PARSERS = [
    (RecipientKind.X25519, pyrage.x25519.Recipient.from_str),
    (RecipientKind.SSH, pyrage.ssh.Recipient.from_str),
    (RecipientKind.PLUGIN, pyrage.plugin.Recipient.from_str),
]


def parse_recipient(text: str):
    for kind, parser in PARSERS:
        try:
            return kind, parser(text)
        except (pyrage.RecipientError, ValueError):
            continue
    raise RecipientError.from_context(text)


def group_plugin_recipients(parsed) -> Dict[str, List]:
    """Group plugin recipients by plugin name, keeping first-seen order."""
    groups: Dict[str, List] = {}
    for text, handle in parsed:
        groups.setdefault(handle.plugin(), []).append((text, handle))
    return groups


def resolve_recipients(texts: Sequence[str]) -> List[Recipient]:
    recipients = []
    plugin_recipients = []
    for text in texts:
        kind, handle = parse_recipient(text)
        if kind is RecipientKind.PLUGIN:
            plugin_recipients.append((text, handle))
        else:
            recipients.append(Recipient(kind, text, handle))

    for name, members in group_plugin_recipients(plugin_recipients).items():
        logger.debug(
            "Using plugin %s for %d recipient(s)", name, len(members))
        try:
            handle = pyrage.plugin.RecipientPluginV1(
                name, [h for _, h in members], [], NoOpCallbacks())
        except Exception as e:
            raise RecipientError.from_context(
                ", ".join(t for t, _ in members),
                f"Could not load plugin age-plugin-{name}: {e}",
            ) from e
        recipients.append(
            Recipient(
                RecipientKind.PLUGIN,
                [t for t, _ in members],
                handle,
                plugin=name,
            ))
    return recipients


def validate_recipients(texts: Sequence[str]):
    resolve_recipients(texts)
