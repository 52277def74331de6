"""
mssqlhop CLI entry point.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, List

from pydantic import ValidationError

from mssqlhop.application.actions import get_action
from mssqlhop.application.database_context import DatabaseContext
from mssqlhop.domain.errors import MssqlHopError
from mssqlhop.infrastructure.config_loader import ConfigLoader, OutputFormat
from mssqlhop.infrastructure.logging_config import setup_logging
from mssqlhop.infrastructure.sql.channel import Channel
from mssqlhop.infrastructure.sql.connection_profile import AuthType, ConnectionProfile
from mssqlhop.interface.formatters import ResultPrinter

logger = logging.getLogger(__name__)

DEFAULT_ACTION = "info"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mssqlhop",
        description="mssqlhop - SQL Server linked server traversal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Global args
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", type=str, help="Write logs to file")
    parser.add_argument("--config", type=str, help="Settings file (JSON)")

    # Target
    parser.add_argument("host", metavar="HOST", help="name[:port][/login][@database]")
    parser.add_argument(
        "-c", "--credentials",
        required=True,
        choices=[auth.value for auth in AuthType],
        help="Credential type",
    )
    parser.add_argument("-u", "--username", type=str, help="Username")
    parser.add_argument("-p", "--password", type=str, help="Password")
    parser.add_argument("-d", "--domain", type=str, help="Domain for local logins")
    parser.add_argument("--token", type=str, help="Entra ID access token")

    # Routing
    parser.add_argument("-l", "--links", type=str, help="Linked server chain, e.g. SQL02/webapp,SQL03")
    parser.add_argument("--timeout", type=int, help="Initial statement timeout in seconds")
    parser.add_argument(
        "-o", "--output",
        choices=[fmt.value for fmt in OutputFormat],
        help="Result format",
    )

    # Action
    parser.add_argument("action", metavar="ACTION", nargs="?", default=DEFAULT_ACTION, help="Action to run")
    parser.add_argument("arguments", metavar="ARGS", nargs="*", help="Action arguments")
    return parser


def parse_arguments(argv: List[str]) -> argparse.Namespace:
    """Parse a command line with options anywhere around HOST, ACTION and ARGS."""
    return build_parser().parse_intermixed_args(argv)


def main(
    argv: List[str] | None = None,
    channel_factory: Callable[[ConnectionProfile], Channel] | None = None,
) -> int:
    """Main entry point for the mssqlhop CLI."""
    argv = sys.argv[1:] if argv is None else list(argv)

    # Intercept --help / -h for rich formatted help
    if not argv or argv in (["-h"], ["--help"]):
        from mssqlhop.interface.cli_help import print_main_help

        print_main_help()
        return 0

    args = parse_arguments(argv)
    setup_logging(
        level=logging.DEBUG if args.debug else logging.INFO,
        log_file=args.log_file,
        use_colors=sys.stderr.isatty(),
    )

    try:
        return run(args, channel_factory=channel_factory)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    except ValidationError as e:
        logger.error("Invalid arguments: %s", e)
        return 1
    except MssqlHopError as e:
        logger.error("%s", e)
        logger.debug("Failure details", exc_info=True)
        return 1


def run(
    args: argparse.Namespace,
    channel_factory: Callable[[ConnectionProfile], Channel] | None = None,
) -> int:
    settings = ConfigLoader(args.config).load().with_overrides(
        default_timeout=args.timeout,
        output_format=args.output,
    )

    # Validate everything before opening a connection
    action = get_action(args.action, args.arguments)
    profile = ConnectionProfile.from_host_argument(
        args.host,
        auth_type=AuthType(args.credentials),
        username=args.username,
        password=args.password,
        domain=args.domain,
        access_token=args.token,
        connect_timeout=settings.connect_timeout,
        encrypt=settings.encrypt,
        trust_server_certificate=settings.trust_server_certificate,
        odbc_driver=settings.odbc_driver,
    )
    profile.validate_credentials()

    with DatabaseContext.connect(profile, settings, channel_factory=channel_factory) as context:
        if args.links:
            context.query_service.set_linked_servers(args.links)

        logger.info("Running '%s' on %s", action.name, context.query_service.execution_server.hostname)
        result = action.execute(context)
        title = f"{action.name} @ {context.query_service.execution_server.hostname}"

    ResultPrinter(settings.output_format).print_result(result, title=title)
    return 0
