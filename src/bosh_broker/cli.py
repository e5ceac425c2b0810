"""Command-line interface for the BOSH service broker."""

from __future__ import annotations

import argparse
import json
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .broker import OperationState, ServiceBroker, build_catalog
from .config import BrokerConfig, DirectorConfig, load_config
from .director import DirectorClient
from .errors import BrokerError
from .utils.logging import get_logger

logger = get_logger(__name__)

DirectorFactory = Callable[[DirectorConfig], DirectorClient]


@dataclass
class CLIContext:
    """Context captured from CLI arguments."""

    config: BrokerConfig
    director_factory: DirectorFactory


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bosh-broker",
        description="Provision service instances as BOSH deployments.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file overriding defaults.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("catalog", help="Print the service catalog as JSON")

    provision_parser = subparsers.add_parser(
        "provision", help="Provision a service instance"
    )
    provision_parser.add_argument("--plan", required=True, help="Plan id")
    provision_parser.add_argument("--instance-id", required=True, help="Instance id")
    provision_parser.add_argument(
        "--params", default=None,
        help="Instance parameters as a JSON object",
    )
    provision_parser.add_argument(
        "--wait", action="store_true",
        help="Poll the deployment task until it finishes",
    )
    provision_parser.add_argument(
        "--interval", type=float, default=5.0,
        help="Seconds between status polls with --wait",
    )

    task_parser = subparsers.add_parser("task", help="Show the state of a director task")
    task_parser.add_argument("task_id", help="Director task id")

    return parser


def handle_catalog_command(context: CLIContext) -> int:
    services = build_catalog(context.config)
    print(json.dumps({"services": [s.to_dict() for s in services]}, indent=2))
    return 0


def handle_provision_command(args: argparse.Namespace, context: CLIContext) -> int:
    director = context.director_factory(context.config.director)
    broker = ServiceBroker(context.config, director)

    result = broker.provision(args.instance_id, args.plan, args.params)
    print(f"🚀 Provisioning {result.instance_id}: task {result.task_id}")
    if not args.wait:
        return 0

    while True:
        operation = broker.last_operation(args.instance_id)
        if operation.state is not OperationState.IN_PROGRESS:
            break
        logger.info("Task %s still running", operation.task_id)
        time.sleep(args.interval)

    if operation.state is OperationState.SUCCEEDED:
        print(f"✅ {operation.description}")
        return 0
    print(f"❌ {operation.description}")
    return 1


def handle_task_command(args: argparse.Namespace, context: CLIContext) -> int:
    director = context.director_factory(context.config.director)
    print(director.task_status(args.task_id))
    return 0


def dispatch_command(args: argparse.Namespace, context: CLIContext) -> int:
    if args.command == "catalog":
        return handle_catalog_command(context)
    if args.command == "provision":
        return handle_provision_command(args, context)
    if args.command == "task":
        return handle_task_command(args, context)
    raise ValueError(f"Unsupported command: {args.command}")


def run_cli(
    argv: Optional[list[str]] = None,
    *,
    director_factory: Optional[DirectorFactory] = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        context = CLIContext(
            config=load_config(args.config),
            director_factory=director_factory or DirectorClient.from_config,
        )
        return dispatch_command(args, context)
    except (BrokerError, FileNotFoundError) as exc:
        print(f"❌ {exc}")
        return 1
