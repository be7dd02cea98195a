import argparse
import logging
import sys
import textwrap
from typing import Optional

import agecrypt
import agecrypt.gitfilter
from agecrypt import ConfigurationError, ReportingException
from agecrypt._output import TerminalBackend, output
from agecrypt.credential import Credential, resolve_credential
from agecrypt.log import setup_logging
from agecrypt.repository import Repository


def init(ctx):
    agecrypt.gitfilter.init(ctx.repo)
    output.annotate(
        "Filter configured. Assign it to files in .gitattributes, e.g.:\n"
        "    secrets/* filter=git-agecrypt diff=git-agecrypt")


def deinit(ctx):
    agecrypt.gitfilter.deinit(ctx.repo)


def clean(ctx, file):
    agecrypt.gitfilter.clean(ctx, file, sys.stdin.buffer, sys.stdout.buffer)


def smudge(ctx, file):
    agecrypt.gitfilter.smudge(ctx, file, sys.stdin.buffer, sys.stdout.buffer)


def textconv(ctx, path):
    agecrypt.gitfilter.textconv(ctx, path, sys.stdout.buffer)


def config_add(ctx, identities=None, recipients=None, paths=None):
    if identities:
        agecrypt.gitfilter.add_identities(ctx, identities)
        return
    if not paths:
        raise ConfigurationError.from_context(
            "Adding recipients requires at least one path (-p)")
    agecrypt.gitfilter.add_recipients(ctx, recipients, paths)


def config_remove(ctx, identities=None, recipients=None, paths=None):
    if identities:
        agecrypt.gitfilter.remove_identities(ctx, identities)
        return
    if not paths:
        raise ConfigurationError.from_context(
            "Removing recipients requires at least one path (-p)")
    agecrypt.gitfilter.remove_recipients(ctx, recipients, paths)


def config_list(ctx, identities=False, recipients=False):
    if identities:
        for path, note in agecrypt.gitfilter.list_identities(ctx).items():
            print(f"{path} ({note})" if note else path)
        return
    for path, keys in agecrypt.gitfilter.list_recipients(ctx).items():
        print(f"{path}:")
        for key in keys:
            print(f"  - {key}")


def _config_target(p, many=True):
    group = p.add_mutually_exclusive_group(required=True)
    if many:
        group.add_argument(
            "-i", "--identity", dest="identities", nargs="+",
            metavar="PATH", help="Identity files to use for decryption.")
        group.add_argument(
            "-r", "--recipient", dest="recipients", nargs="+",
            metavar="RECIPIENT",
            help="Recipients (age, ssh or plugin public keys).")
        p.add_argument(
            "-p", "--path", dest="paths", nargs="+", metavar="PATH",
            help="Repository paths the recipients apply to.")
    else:
        group.add_argument(
            "-i", "--identities", action="store_true",
            help="List identities.")
        group.add_argument(
            "-r", "--recipients", action="store_true",
            help="List recipients per path.")


def main(args: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(
        description=(
            "git-agecrypt v{}: transparent git file encryption with age"
        ).format(agecrypt.__version__),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.set_defaults(func=parser.print_usage, needs_credential=False)

    parser.add_argument(
        "-d", "--debug", action="store_true", help="Enable debug mode."
    )
    parser.add_argument(
        "-g",
        "--passphrase-getter",
        metavar="KEY",
        default=None,
        help="Key in the [passphrase] section of git-agecrypt.toml whose "
        "command prints the passphrase for encrypted identity files.",
    )

    subparsers = parser.add_subparsers()

    p = subparsers.add_parser(
        "init", help="Configure the git filter in this repository.")
    p.set_defaults(func=init)

    p = subparsers.add_parser(
        "deinit", help="Remove the git filter configuration and state.")
    p.set_defaults(func=deinit)

    p = subparsers.add_parser(
        "clean", help="Encrypt stdin to stdout (used by git).")
    p.add_argument("-f", "--file", required=True, help="Path being filtered.")
    p.set_defaults(func=clean)

    p = subparsers.add_parser(
        "smudge", help="Decrypt stdin to stdout (used by git).")
    p.add_argument("-f", "--file", required=True, help="Path being filtered.")
    p.set_defaults(func=smudge, needs_credential=True)

    p = subparsers.add_parser(
        "textconv", help="Print the decrypted file (used by git diff).")
    p.add_argument("path", help="File to decrypt.")
    p.set_defaults(func=textconv, needs_credential=True)

    config = subparsers.add_parser(
        "config",
        help=textwrap.dedent(
            """
            Manage identities (stored in the git configuration) and
            recipients (stored in git-agecrypt.toml)."""
        ),
    )
    config.set_defaults(func=config.print_usage)
    sp = config.add_subparsers()

    p = sp.add_parser("add", help="Add identities or recipients.")
    _config_target(p)
    p.set_defaults(func=config_add)

    p = sp.add_parser("remove", help="Remove identities or recipients.")
    _config_target(p)
    p.set_defaults(func=config_remove)

    p = sp.add_parser("list", help="List identities or recipients.")
    _config_target(p, many=False)
    p.set_defaults(func=config_list)

    args = parser.parse_args(args)

    # Consume global arguments
    output.enable_debug = args.debug
    output.backend = TerminalBackend()
    if args.debug:
        setup_logging(logging.DEBUG)

    if args.func.__name__ == "print_usage":
        args.func(sys.stderr)
        sys.exit(1)

    func_args = dict(args._get_kwargs())
    func = func_args.pop("func")
    getter = func_args.pop("passphrase_getter")
    needs_credential = func_args.pop("needs_credential") or bool(
        func_args.get("identities"))
    del func_args["debug"]

    try:
        repo = Repository.from_current_dir()
        ctx = agecrypt.gitfilter.Context(repo, Credential.from_environment())
        if needs_credential:
            resolve_credential(getter, ctx.config, ctx.credential)
        return func(ctx, **func_args)
    except ReportingException as e:
        e.report()
        sys.exit(1)
