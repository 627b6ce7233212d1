#!/usr/bin/env python3
"""
protectctl - Protected JSON configuration tool

Encrypts selected values of a JSON configuration file in place and reads
them back decrypted.

Usage:
    protectctl protect appsettings.json -e "SomeApi:Secret" -e "DBConnection"
    protectctl get appsettings.json SomeApi:Secret -e "SomeApi:Secret"
    protectctl status appsettings.json

The password is taken from --password or the PROTECTED_CONFIG_PASSWORD
environment variable. Prefer the environment variable; command line
arguments are visible to other users in the process list.
"""

import argparse
import os
import sys
from typing import List, Optional

from .envelope import is_protected
from .errors import ProtectedConfigError
from .flatten import load_json_stream
from .logging_config import setup_logging
from .provider import ProtectedJsonSource

PASSWORD_ENV = 'PROTECTED_CONFIG_PASSWORD'

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2


def _resolve_password(args: argparse.Namespace, environ) -> Optional[str]:
    return args.password or environ.get(PASSWORD_ENV) or None


def _build_source(args: argparse.Namespace, password: str) -> ProtectedJsonSource:
    return ProtectedJsonSource(
        password=password,
        path=args.config_file,
        encrypted_key_expressions=args.expressions or (),
        backup=getattr(args, 'backup', False),
    )


def cmd_protect(args: argparse.Namespace, password: str) -> int:
    provider = _build_source(args, password).build()
    report = provider.load()
    print(f"File: {args.config_file}")
    print(f"  Matched keys:      {len(report.matched)}")
    print(f"  Already protected: {len(report.already_protected)}")
    print(f"  Newly protected:   {len(report.newly_protected)}")
    for key in report.newly_protected:
        print(f"    + {key}")
    return EXIT_OK


def cmd_get(args: argparse.Namespace, password: str) -> int:
    provider = _build_source(args, password).build()
    provider.load()
    found, value = provider.try_get(args.key)
    if not found:
        print(f"Key not found: {args.key}", file=sys.stderr)
        return EXIT_ERROR
    print("" if value is None else value)
    return EXIT_OK


def cmd_status(args: argparse.Namespace) -> int:
    with open(args.config_file, 'rb') as f:
        data = load_json_stream(f)
    protected = [key for key, value in data.items() if is_protected(value)]
    print(f"File: {args.config_file}")
    print(f"  Keys:      {len(data)}")
    print(f"  Protected: {len(protected)}")
    for key in protected:
        print(f"    * {key}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='protectctl',
        description='Protected JSON configuration management',
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    def add_password_options(sub: argparse.ArgumentParser) -> None:
        sub.add_argument('--password', '-p', help=f'Password (default: ${PASSWORD_ENV})')
        sub.add_argument(
            '--expression', '-e', dest='expressions', action='append', default=[],
            help='Regular expression matching keys to protect (repeatable)',
        )

    protect_cmd = subparsers.add_parser('protect', help='Encrypt matching values in place')
    protect_cmd.add_argument('config_file', help='JSON configuration file')
    protect_cmd.add_argument('--backup', action='store_true', help='Keep a .bak copy before writing')
    add_password_options(protect_cmd)

    get_cmd = subparsers.add_parser('get', help='Print the decrypted value of a key')
    get_cmd.add_argument('config_file', help='JSON configuration file')
    get_cmd.add_argument('key', help='Flattened key, e.g. SomeApi:Secret')
    add_password_options(get_cmd)

    status_cmd = subparsers.add_parser('status', help='List keys holding protected values')
    status_cmd.add_argument('config_file', help='JSON configuration file')

    return parser


def main(argv: Optional[List[str]] = None, environ=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    environ = os.environ if environ is None else environ

    setup_logging(verbose=args.verbose)

    try:
        if args.command == 'status':
            return cmd_status(args)

        password = _resolve_password(args, environ)
        if not password:
            print(f"Error: a password is required (--password or ${PASSWORD_ENV})", file=sys.stderr)
            return EXIT_USAGE

        if args.command == 'protect':
            return cmd_protect(args, password)
        return cmd_get(args, password)

    except (ProtectedConfigError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == '__main__':
    sys.exit(main())
