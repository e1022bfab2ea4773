"""
Command line entry point: `tablemap class:generate`.

    tablemap class:generate --dsn mysql+aiomysql://db.local/shop --username shop \
        --table products --class Product > product.py

    mysql -e "describe products" shop | tablemap class:generate --desc \
        --table products --class Product > product.py

Generated code goes to stdout; progress and validation messages to stderr.
"""
import argparse
import asyncio
import getpass
import logging
import sys

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from .config.settings import get_settings
from .core.logging import setup_logging
from .database import Database
from .exceptions.base import RepositoryError
from .tools.class_generator import (
    build_model_info,
    describe_table,
    parse_describe_output,
    render_model_module,
)
from .utils.logging import get_project_version

logger = logging.getLogger(__name__)


class UsageError(Exception):
    pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tablemap", description="tablemap data structure helper")
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_project_version()}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("class:generate", help="Generate a ModelObject class from a given table.")
    generate.add_argument("--desc", action="store_true",
                          help="Do not connect, read a DESCRIBE result from stdin instead.")
    generate.add_argument("--dsn", help="SQLAlchemy database URL")
    generate.add_argument("--username", help="DB username")
    generate.add_argument("--password", help="DB password. Prompted if omitted.")
    generate.add_argument("--table", help="Table to analyze")
    generate.add_argument("--class", dest="class_name", help="Name of the class to generate")
    generate.add_argument("--module-doc", help="Docstring of the generated module")
    generate.set_defaults(handler=class_generate)

    return parser


def _validate(args: argparse.Namespace) -> None:
    if not args.dsn and not args.desc:
        raise UsageError("Missing --dsn option.")
    if args.dsn and args.desc:
        raise UsageError("Cannot use both --dsn and --desc options.")

    if args.dsn:
        try:
            url = make_url(args.dsn)
        except ArgumentError as exc:
            raise UsageError(f"Invalid --dsn: {exc}") from exc
        if not args.username and url.get_backend_name() != "sqlite":
            raise UsageError("Missing --username option.")

    if not args.table:
        raise UsageError("Missing --table option.")
    if not args.class_name:
        raise UsageError("Missing --class option.")
    if not args.class_name.isidentifier():
        raise UsageError(f"Invalid --class name: {args.class_name!r}")


async def _describe_live(args: argparse.Namespace, password: str | None, stderr) -> list[dict]:
    database = Database("class_generator").inject_dsn(args.dsn, args.username, password)
    try:
        stderr.write("Connecting to DB...")
        await database.fetch_all("select 1")
        stderr.write("[OK]\n")

        stderr.write("Analyzing table...")
        table_def = await describe_table(database, args.table)
        stderr.write("[OK]\n")
        return table_def
    finally:
        await database.terminate()


def class_generate(args: argparse.Namespace, stdin=None, stdout=None, stderr=None) -> int:
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr

    try:
        _validate(args)
    except UsageError as exc:
        stderr.write(f"{exc}\n")
        return 1

    if args.dsn:
        password = args.password
        if password is None and make_url(args.dsn).get_backend_name() != "sqlite":
            password = getpass.getpass("Enter password: ")
        try:
            table_def = asyncio.run(_describe_live(args, password, stderr))
        except RepositoryError as exc:
            stderr.write(f"[FAILED]\n{exc}\n")
            logger.error("cli.describe_failed", extra={"table": args.table, "error_code": exc.error_code})
            return 1
    else:
        table_def = parse_describe_output(stdin)

    if not table_def:
        stderr.write(f"No column found for table {args.table}.\n")
        return 1

    info = build_model_info(table_def)
    stdout.write(render_model_module(info, args.table, args.class_name, args.module_doc))
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(get_settings())
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
