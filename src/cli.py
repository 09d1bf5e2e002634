#!/usr/bin/env python3
"""CLI entry point for ml-driver.

Noun-action subcommands:
- ml-driver service deploy -s chat
- ml-driver service list
- ml-driver endpoint show -n chat-endpoint -s chat

Exit codes: 0 success, 1 configuration or usage error, 2 provisioning failure.
"""

import argparse
import json
import logging
import signal
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Optional

from actions import ServiceTarget
from common import CancelToken
from config import (
    default_env_file,
    discover_project_file,
    get_base_dir,
    load_project,
    resolve_scope,
)
from envstore import DotenvStore
from errors import ConfigError, ProvisionError
from provision import Provisioner
from resolver import expand
from scenarios import Orchestrator, get_scenario, list_scenarios
from toolbridge import ToolBridge

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_FAILED = 2

NOUN_COMMANDS = {
    "service": "Service provisioning (deploy/list)",
    "endpoint": "Online endpoint inspection (show)",
}

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'

logger = logging.getLogger(__name__)


def get_version() -> str:
    """Installed package version, or 'dev' when running from a checkout."""
    try:
        return version('ml-driver')
    except PackageNotFoundError:
        return 'dev'


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging on stderr, keeping stdout for command output."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        force=True,
    )


def print_usage():
    """Print top-level usage showing noun commands."""
    print(f"ml-driver {get_version()}")
    print()
    print("Usage: ml-driver <noun> <action> [options]")
    print()
    print("Commands:")
    for noun, desc in NOUN_COMMANDS.items():
        print(f"  {noun:<12} {desc}")
    print()
    print("Run 'ml-driver <noun> <action> --help' for command-specific options.")
    print()
    print("Examples:")
    print("  ml-driver service deploy -s chat")
    print("  ml-driver service deploy -s chat --skip flow --dry-run")
    print("  ml-driver endpoint show -n chat-endpoint -s chat")


def _add_project_args(parser: argparse.ArgumentParser):
    """Add arguments shared by every action."""
    parser.add_argument(
        '--project', '-P',
        type=Path,
        help='Project file (default: $ML_DRIVER_PROJECT or ./project.yaml)',
    )
    parser.add_argument(
        '--env-file', '-E',
        type=Path,
        help='Dotenv environment store (default: $ML_DRIVER_ENV_FILE or .ml-driver/.env)',
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging',
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='ml-driver',
        description='Provisions ML workspace resources for ai.endpoint services',
    )
    parser.add_argument('--version', action='version', version=f'ml-driver {get_version()}')
    nouns = parser.add_subparsers(dest='noun')

    service = nouns.add_parser('service', help=NOUN_COMMANDS['service'])
    service_actions = service.add_subparsers(dest='action')

    deploy = service_actions.add_parser('deploy', help='Provision a service')
    _add_project_args(deploy)
    deploy.add_argument('--service', '-s', required=True, help='Service name from the project file')
    deploy.add_argument(
        '--scenario', '-S',
        default='deploy-service',
        choices=list_scenarios(),
        help='Scenario to run (default: deploy-service)',
    )
    deploy.add_argument(
        '--skip',
        action='append',
        default=[],
        metavar='PHASE',
        help='Phases to skip (can be repeated)',
    )
    deploy.add_argument(
        '--dry-run',
        action='store_true',
        help='Show what would be executed without running actions',
    )
    deploy.add_argument(
        '--timeout', '-t',
        type=int,
        help='Overall timeout in seconds. Running tools and requests are cancelled when it expires.',
    )
    deploy.add_argument(
        '--report-dir', '-r',
        type=Path,
        default=get_base_dir() / 'reports',
        help='Directory for run reports',
    )
    deploy.add_argument(
        '--json',
        dest='json_output',
        action='store_true',
        help='Output structured JSON to stdout (logs go to stderr)',
    )

    list_parser = service_actions.add_parser('list', help='List services in the project')
    _add_project_args(list_parser)

    endpoint = nouns.add_parser('endpoint', help=NOUN_COMMANDS['endpoint'])
    endpoint_actions = endpoint.add_subparsers(dest='action')
    show = endpoint_actions.add_parser('show', help='Show an online endpoint as JSON')
    _add_project_args(show)
    show.add_argument('--name', '-n', required=True, help='Endpoint name (templates allowed)')
    show.add_argument('--service', '-s', required=True, help='Service whose workspace to read')

    return parser


def _load(args):
    """Load project and environment store from CLI arguments."""
    project = load_project(discover_project_file(args.project))
    env_file = args.env_file or default_env_file(project)
    store = DotenvStore(env_file)
    logger.debug(f"Project {project.name} at {project.path}, env store {env_file}")
    return project, store


def _provisioner(project, store) -> Provisioner:
    tools = ToolBridge(tools=project.tools or None, cwd=project.path)
    return Provisioner(store=store, tools=tools)


def _install_sigint(cancel: CancelToken):
    """Route Ctrl-C to the cancel token; returns the previous handler."""
    def handler(signum, frame):
        logger.warning("Interrupted, cancelling")
        cancel.cancel()
    return signal.signal(signal.SIGINT, handler)


def service_deploy(args) -> int:
    project, store = _load(args)
    service = project.get_service(args.service)
    scope = resolve_scope(service, store.get)
    scenario = get_scenario(args.scenario)

    cancel = CancelToken(timeout=args.timeout)
    target = ServiceTarget(
        service=service,
        scope=scope,
        provisioner=_provisioner(project, store),
        cancel=cancel,
    )
    orchestrator = Orchestrator(
        scenario=scenario,
        target=target,
        report_dir=args.report_dir,
        skip_phases=args.skip,
        dry_run=args.dry_run,
    )

    previous = _install_sigint(cancel)
    try:
        success = orchestrator.run()
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)

    if args.json_output and not args.dry_run:
        print(json.dumps(orchestrator.report.to_dict(), indent=2))
    return EXIT_OK if success else EXIT_FAILED


def service_list(args) -> int:
    project, _store = _load(args)
    if not project.services:
        print(f"No services in project '{project.name}'")
        return EXIT_OK
    print(f"Services in project '{project.name}':")
    for name in sorted(project.services):
        service = project.services[name]
        cfg = service.config
        parts = [kind for kind in ('flow', 'environment', 'model', 'endpoint', 'deployment')
                 if getattr(cfg, kind) is not None]
        print(f"  {name:20} {service.host:12} {', '.join(parts) or '-'}")
    return EXIT_OK


def endpoint_show(args) -> int:
    project, store = _load(args)
    service = project.get_service(args.service)
    scope = resolve_scope(service, store.get)
    name = expand(args.name, store.get)
    endpoint = _provisioner(project, store).get_endpoint(scope, name)
    print(json.dumps(endpoint, indent=2))
    return EXIT_OK


HANDLERS = {
    ('service', 'deploy'): service_deploy,
    ('service', 'list'): service_list,
    ('endpoint', 'show'): endpoint_show,
}


def main(argv: Optional[list] = None) -> int:
    """CLI entry point: dispatch to noun-action handlers."""
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print_usage()
        return EXIT_OK

    parser = build_parser()
    args = parser.parse_args(argv)

    handler = HANDLERS.get((args.noun, getattr(args, 'action', None)))
    if handler is None:
        parser.print_help()
        return EXIT_CONFIG

    configure_logging(args.verbose)

    try:
        return handler(args)
    except ConfigError as e:
        logger.error(f"{e.code}: {e.describe()}")
        return EXIT_CONFIG
    except ProvisionError as e:
        logger.error(f"{e.code}: {e.describe()}")
        return EXIT_FAILED


if __name__ == '__main__':
    sys.exit(main())
