"""
Command line entry point: run the service or manage user accounts.
"""
from typing import List, Optional
import argparse
import logging
import sys

from .core.accounts import AccountService
from .core.configuration import DEFAULT_CONFIG_PATH, Configuration
from .core.errors import WarehouseError
from .core.sqlite_store import SqliteStore
from .utils.log import configure_logging, uvicorn_log_config

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="warehouse",
        description="Release aggregation service with subscriptions and a Transmission backend.",
    )
    actions = parser.add_mutually_exclusive_group(required=True)
    actions.add_argument("-s", "--service", action="store_true", help="run the HTTP service and background tasks")
    actions.add_argument("-c", "--create", metavar="USER", help="create a user with a generated password")
    actions.add_argument("-d", "--delete", metavar="USER", help="delete a user")
    actions.add_argument("-r", "--reset", metavar="USER", help="generate a new password for a user")
    parser.add_argument("-a", "--admin", action="store_true", help="make the created user an administrator")
    parser.add_argument(
        "-C",
        "--config",
        metavar="PATH",
        default=None,
        help=f"configuration file (default: $WAREHOUSE_CONFIG or {DEFAULT_CONFIG_PATH})",
    )
    return parser


def run_service(config: Configuration) -> None:
    import uvicorn

    from .web.app import create_app
    from .web.runtime import build_runtime

    runtime = build_runtime(config)
    app = create_app(runtime)
    runtime.start()
    logger.info("Listening on %s:%s.", config.listen_hostname, config.listen_port)
    try:
        uvicorn.run(
            app,
            host=config.listen_hostname,
            port=config.listen_port,
            log_config=uvicorn_log_config(config.log_level),
        )
    finally:
        runtime.stop()


def manage_users(config: Configuration, args: argparse.Namespace) -> None:
    store = SqliteStore(config.database_path)
    accounts = AccountService(store)
    try:
        if args.create:
            _, password = accounts.create_user(args.create, is_admin=args.admin)
            kind = "administrator" if args.admin else "user"
            print(f'Created {kind} "{args.create}" with password: {password}')
        elif args.delete:
            if not accounts.delete_user(args.delete):
                raise WarehouseError(f'Unable to find user "{args.delete}".')
            print(f'Deleted user "{args.delete}".')
        elif args.reset:
            password = accounts.reset_password(args.reset)
            print(f'New password of user "{args.reset}": {password}')
    finally:
        store.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.admin and not args.create:
        print("Error: -a/--admin can only be used with -c/--create.", file=sys.stderr)
        return 1

    try:
        config = Configuration.load(args.config)
        configure_logging(config.log_path, config.log_level)
        if args.service:
            run_service(config)
        else:
            manage_users(config, args)
    except WarehouseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0
