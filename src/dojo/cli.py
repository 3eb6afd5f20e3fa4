"""CLI entry point for Dojo."""

import argparse
import json
import logging
import sys

from .config import DojoConfig, config_to_yaml, load_config, merge_cli_args, resolve_secret
from .registry import RegistryClient, RegistryClientError, create_registry_server
from .service import RegistrationService
from .tokens import TokenTable

logger = logging.getLogger(__name__)


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add config flags shared by serve and tokens."""
    parser.add_argument("--config", type=str, help="Path to YAML config file")
    parser.add_argument(
        "--team-count", type=int, dest="team_count",
        help="Number of team tokens to derive (default: 20)",
    )
    parser.add_argument(
        "--log-level", type=str, dest="log_level",
        help="Logging level (default: INFO)",
    )


def _add_serve_args(parser: argparse.ArgumentParser) -> None:
    """Add listen and polling flags shared by serve and config."""
    parser.add_argument("--host", type=str, help="Listen address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Listen port (default: 8080)")
    parser.add_argument(
        "--poll-interval", type=float, dest="poll_interval",
        help="Seconds between health polls of each team server (default: 1)",
    )
    parser.add_argument(
        "--poll-timeout", type=float, dest="poll_timeout",
        help="Seconds before a health poll is reported as timed out (default: 1)",
    )


def _build_config(args) -> DojoConfig:
    """Build a DojoConfig from a config file + CLI overrides."""
    if args.config:
        config = load_config(args.config)
    else:
        config = DojoConfig()
    merge_cli_args(config, args)
    return config


def _setup_logging(config: DojoConfig) -> None:
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_token_table(config: DojoConfig) -> TokenTable:
    secret = resolve_secret(config)
    if not secret:
        logger.warning("No secret configured; team tokens are derived from the empty string")
    return TokenTable(secret, config.team_count)


def cmd_serve(args) -> None:
    """Run the registry server until interrupted."""
    config = _build_config(args)
    _setup_logging(config)

    service = RegistrationService(
        _build_token_table(config),
        poll_interval=config.poll_interval,
        poll_timeout=config.poll_timeout,
        transport_timeout=config.transport_timeout,
    )
    server = create_registry_server(service, host=config.host, port=config.port)
    logger.info("Registry server listening on %s:%d", config.host, config.port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
        service.shutdown(timeout=config.poll_timeout)
        logger.info("Registry server stopped")


def cmd_tokens(args) -> None:
    """Print the team tokens derived from the configured secret."""
    config = _build_config(args)
    _setup_logging(config)
    tokens = _build_token_table(config)
    if args.format == "json":
        print(json.dumps({str(team): tok for team, tok in enumerate(tokens)}, indent=2))
    else:
        for team, tok in enumerate(tokens):
            print(f"{team:>3}  {tok}")


def cmd_config(args) -> None:
    """Print the config file merged with CLI overrides."""
    config = _build_config(args)
    print(config_to_yaml(config), end="")


# ---------------------------------------------------------------------------
# dojo registry subcommand
# ---------------------------------------------------------------------------

def _format_record(team: int, record) -> str:
    return f"{team:>3}  {record.address}  {record.status or '(pending)'}"


def _client(args) -> RegistryClient:
    return RegistryClient(host=args.registry_host, port=args.registry_port)


def cmd_registry_list(args) -> None:
    records = _client(args).list_servers()
    if args.format == "json":
        print(json.dumps({str(t): r.to_dict(include_message=False)
                          for t, r in sorted(records.items())}, indent=2))
        return
    lines = [_format_record(t, r) for t, r in sorted(records.items())]
    print("\n".join(lines) if lines else "(no servers)")


def cmd_registry_get(args) -> None:
    record = _client(args).get_server(args.team)
    if record is None:
        print(f"Team {args.team} not found.", file=sys.stderr)
        sys.exit(1)
    if args.format == "json":
        print(json.dumps(record.to_dict(), indent=2))
    else:
        print(_format_record(args.team, record))
        if record.message is not None:
            print(f"     message: {record.message}")


def cmd_registry_register(args) -> None:
    try:
        _client(args).register(args.token, args.url)
    except RegistryClientError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


def cmd_registry_delete(args) -> None:
    try:
        _client(args).deregister(args.token, args.team)
    except RegistryClientError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


def _add_registry_args(parser: argparse.ArgumentParser) -> None:
    """Add --registry-host and --registry-port to a registry sub-parser."""
    parser.add_argument(
        "--registry-host", type=str, default="localhost",
        help="Hostname of the registry server (default: localhost)",
    )
    parser.add_argument(
        "--registry-port", type=int, default=8080,
        help="Port of the registry HTTP API (default: 8080)",
    )
    parser.add_argument(
        "--format", choices=["text", "json"], default="text",
        help="Output format (default: text)",
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="dojo",
        description="Dojo: team server address exchange",
    )
    subparsers = parser.add_subparsers(dest="command")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the registry server")
    _add_common_args(serve_parser)
    _add_serve_args(serve_parser)
    serve_parser.set_defaults(func=cmd_serve)

    # config
    config_parser = subparsers.add_parser(
        "config", help="Print the effective configuration as YAML (secret omitted)",
    )
    _add_common_args(config_parser)
    _add_serve_args(config_parser)
    config_parser.set_defaults(func=cmd_config)

    # tokens
    tokens_parser = subparsers.add_parser(
        "tokens", help="Print team tokens derived from the secret",
    )
    _add_common_args(tokens_parser)
    tokens_parser.add_argument(
        "--format", choices=["text", "json"], default="text",
        help="Output format (default: text)",
    )
    tokens_parser.set_defaults(func=cmd_tokens)

    # registry
    registry_parser = subparsers.add_parser(
        "registry", help="Query or update a running registry server",
    )
    registry_sub = registry_parser.add_subparsers(dest="registry_command")

    reg_list = registry_sub.add_parser("list", help="List all registered servers")
    _add_registry_args(reg_list)
    reg_list.set_defaults(func=cmd_registry_list)

    reg_get = registry_sub.add_parser("get", help="Get a single team's server")
    _add_registry_args(reg_get)
    reg_get.add_argument("team", type=int, help="Team number")
    reg_get.set_defaults(func=cmd_registry_get)

    reg_register = registry_sub.add_parser("register", help="Register or update a server address")
    _add_registry_args(reg_register)
    reg_register.add_argument("--token", type=str, required=True, help="Team token")
    reg_register.add_argument("url", type=str, help="Server address, e.g. host:port")
    reg_register.set_defaults(func=cmd_registry_register)

    reg_delete = registry_sub.add_parser("delete", help="Remove a team's server")
    _add_registry_args(reg_delete)
    reg_delete.add_argument("--token", type=str, required=True, help="Team token")
    reg_delete.add_argument("team", type=int, help="Team number")
    reg_delete.set_defaults(func=cmd_registry_delete)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "registry" and not args.registry_command:
        registry_parser.print_help()
        sys.exit(1)

    args.func(args)
