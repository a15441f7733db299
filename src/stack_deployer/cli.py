"""Command-line interface for stack-deployer."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import AppConfig, load_config
from .domain import Environment
from .errors import ConfigurationError
from .handlers import (
    CommandError,
    ConfigureCommandHandler,
    CreateCommandHandler,
    DestroyCommandHandler,
    EnvironmentInfo,
    ListCommandHandler,
    ProvisionCommandHandler,
    PurgeCommandHandler,
    RegisterCommandHandler,
    ReleaseCommandHandler,
    RunCommandHandler,
    ShowCommandHandler,
)
from .output import ConsoleOutput, UserOutput
from .persistence import EnvironmentStore
from .steps import ReleaseSettings
from .tools import ToolFactory
from .utils.logging import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


@dataclass
class CLIContext:
    """Context captured from CLI arguments."""

    config: AppConfig
    store: EnvironmentStore
    tools: ToolFactory
    output: UserOutput
    output_format: str
    console: Console

    @property
    def build_root(self) -> Path:
        return Path(self.config.paths.build_root)

    @property
    def release_settings(self) -> ReleaseSettings:
        release = self.config.release
        return ReleaseSettings(
            image=release.image,
            http_port=release.http_port,
            remote_app_dir=release.remote_app_dir,
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stack-deployer",
        description="Provision, configure and deploy an application stack to one environment.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file overriding defaults.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default from config, INFO).",
    )
    parser.add_argument(
        "--output",
        choices=["text", "json"],
        default="text",
        help="Result format written to stdout.",
    )
    parser.add_argument(
        "--quiet", "-q", action="store_true", help="Hide step progress messages."
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    create_parser = subparsers.add_parser("create", help="Create a new environment")
    create_parser.add_argument(
        "--env-file", required=True, help="JSON file describing the environment"
    )

    for command, help_text in (
        ("provision", "Create the infrastructure for an environment"),
        ("configure", "Install Docker and system configuration on the instance"),
        ("release", "Deploy the application stack files to the instance"),
        ("run", "Start the application stack"),
        ("show", "Show the state of an environment"),
    ):
        sub = subparsers.add_parser(command, help=help_text)
        sub.add_argument("name", help="Environment name")

    register_parser = subparsers.add_parser(
        "register", help="Adopt an existing instance instead of provisioning one"
    )
    register_parser.add_argument("name", help="Environment name")
    register_parser.add_argument(
        "--ip", required=True, help="IP address of the existing instance"
    )

    destroy_parser = subparsers.add_parser(
        "destroy", help="Destroy the infrastructure and local build files"
    )
    destroy_parser.add_argument("name", help="Environment name")
    destroy_parser.add_argument(
        "--yes", "-y", action="store_true", help="Do not ask for confirmation"
    )

    purge_parser = subparsers.add_parser(
        "purge", help="Remove all local data of an environment"
    )
    purge_parser.add_argument("name", help="Environment name")
    purge_parser.add_argument(
        "--yes", "-y", action="store_true", help="Do not ask for confirmation"
    )
    purge_parser.add_argument(
        "--force",
        action="store_true",
        help="Purge even if the environment was not destroyed",
    )

    subparsers.add_parser("list", help="List all environments")
    return parser


def _build_context(args: argparse.Namespace) -> CLIContext:
    config = load_config(args.config)
    if args.log_level:
        config.logging.level = args.log_level
    configure_logging(config.logging.level, config.logging.file)

    output = ConsoleOutput(quiet=args.quiet, interactive=sys.stdin.isatty())
    return CLIContext(
        config=config,
        store=EnvironmentStore(Path(config.paths.data_root)),
        tools=ToolFactory.from_config(config),
        output=output,
        output_format=args.output,
        console=Console(),
    )


def _emit(context: CLIContext, payload: Dict[str, Any]) -> None:
    # Text mode already reported through the output channel
    if context.output_format == "json":
        print(json.dumps(payload, indent=2))


def _environment_payload(environment: Environment) -> Dict[str, Any]:
    return {
        "name": str(environment.name),
        "state": environment.state.value,
        "instance_ip": str(environment.instance_ip) if environment.instance_ip else None,
    }


def _report_error(context: CLIContext, error: CommandError) -> int:
    if context.output_format == "json":
        print(json.dumps(error.to_dict(), indent=2))
    else:
        context.output.error(str(error))
        context.output.detail(error.help())
    return EXIT_FAILURE


def _show_info(context: CLIContext, info: EnvironmentInfo) -> None:
    if context.output_format == "json":
        print(json.dumps(info.to_dict(), indent=2))
        return
    table = Table(show_header=False, box=None)
    table.add_row("Name", info.name)
    table.add_row("State", info.state)
    table.add_row("Provider", info.provider)
    table.add_row("Instance", info.instance_name)
    table.add_row("IP address", info.instance_ip or "-")
    table.add_row("SSH", f"{info.ssh_username} (port {info.ssh_port})")
    table.add_row("Created", info.created_at)
    if info.failure:
        table.add_row("Failed step", info.failure["failed_step"])
        table.add_row("Error kind", info.failure["error_kind"])
        table.add_row("Error", escape(info.failure["error_summary"]))
        if info.failure.get("trace_file_path"):
            table.add_row("Trace file", info.failure["trace_file_path"])
    context.console.print(table)


def _list_environments(context: CLIContext) -> int:
    summaries = ListCommandHandler(context.store).execute()
    if context.output_format == "json":
        print(json.dumps([summary.to_dict() for summary in summaries], indent=2))
        return EXIT_OK
    if not summaries:
        context.console.print("No environments found.")
        return EXIT_OK
    table = Table("Name", "State", "Provider", "IP address")
    for summary in summaries:
        if summary.error:
            table.add_row(summary.name, "[red]unreadable[/red]", "-", escape(summary.error))
        else:
            table.add_row(summary.name, summary.state or "-", summary.provider or "-", summary.instance_ip or "-")
    context.console.print(table)
    return EXIT_OK


def _read_env_file(path: str) -> Dict[str, Any]:
    env_file = Path(path)
    try:
        return json.loads(env_file.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Environment file not found: {env_file}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in environment file {env_file}: {exc}") from exc


def dispatch_command(args: argparse.Namespace, context: CLIContext) -> int:
    output = context.output
    command = args.command

    if command == "list":
        return _list_environments(context)

    if command == "show":
        info = ShowCommandHandler(context.store).execute(args.name)
        _show_info(context, info)
        return EXIT_OK

    if command == "create":
        handler = CreateCommandHandler(
            context.store,
            context.build_root,
            hetzner_api_token=context.config.providers.hetzner_api_token,
        )
        environment = handler.execute(_read_env_file(args.env_file), output)
        _emit(context, _environment_payload(environment))
        return EXIT_OK

    if command == "register":
        environment = RegisterCommandHandler(context.store, context.tools).execute(args.name, args.ip, output)
        _emit(context, _environment_payload(environment))
        return EXIT_OK

    if command == "destroy":
        if not args.yes and not output.confirm(
            f"Destroy environment '{args.name}' and its infrastructure?", default=False
        ):
            output.warn("Cancelled")
            return EXIT_OK
        environment = DestroyCommandHandler(context.store, context.tools).execute(args.name, output)
        _emit(context, _environment_payload(environment))
        return EXIT_OK

    if command == "purge":
        if not args.yes and not output.confirm(
            f"Remove all local data of environment '{args.name}'?", default=False
        ):
            output.warn("Cancelled")
            return EXIT_OK
        PurgeCommandHandler(context.store, context.build_root).execute(args.name, force=args.force, output=output)
        _emit(context, {"name": args.name, "purged": True})
        return EXIT_OK

    lifecycle = {
        "provision": lambda: ProvisionCommandHandler(context.store, context.tools),
        "configure": lambda: ConfigureCommandHandler(
            context.store, context.tools, firewall=context.config.configure.firewall
        ),
        "release": lambda: ReleaseCommandHandler(
            context.store, context.tools, settings=context.release_settings
        ),
        "run": lambda: RunCommandHandler(
            context.store, context.tools, settings=context.release_settings
        ),
    }
    if command in lifecycle:
        environment = lifecycle[command]().execute(args.name, output)
        _emit(context, _environment_payload(environment))
        return EXIT_OK

    raise ConfigurationError(f"Unsupported command: {command}")


def run_cli(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        context = _build_context(args)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    try:
        return dispatch_command(args, context)
    except CommandError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        return _report_error(context, exc)
    except ConfigurationError as exc:
        context.output.error(str(exc))
        return EXIT_USAGE
