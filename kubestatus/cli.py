"""
Command-line interface for Kubestatus.

This module provides the command-line interface, handling argument parsing,
input validation, logging setup and dispatch to the status pipeline or the
HTTP server.

Key Functions:
- build_parser: Create and configure the argument parser
- build_options: Turn parsed arguments into StatusOptions
- main: Main entry point for the CLI application

Example:
    ```bash
    # Auto-detect the kind behind a name
    kubestatus status web-backend

    # Explicit type, only problematic pods, JSON output
    kubestatus status deployment/web-backend --problematic --output json

    # Group pods matching a selector by controller
    kubestatus status -l app=web,tier=backend -A

    # Serve the same data over HTTP
    kubestatus serve --port 8080
    ```
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from .constants import (
    DEFAULT_HOST, DEFAULT_LOG_LEVEL, DEFAULT_MAX_WORKERS, DEFAULT_OUTPUT_FORMAT, DEFAULT_PORT, DEFAULT_SORT_KEY,
    ENV_HOST, ENV_LOG_LEVEL, ENV_MAX_WORKERS, ENV_PORT, LOG_FORMAT, OUTPUT_FORMATS, SORT_KEYS,
)
from .exceptions import ConfigurationError, InvalidSelectorError, KubestatusError
from .kube import load_kube
from .models import StatusOptions
from .pipeline import StatusPipeline
from .serialization import render_summary, workloads_to_json
from .validation import (
    validate_host, validate_label_selector, validate_max_workers, validate_output_format, validate_port,
    validate_sort_key,
)

log = logging.getLogger("kubestatus")

RESOURCE_FLAGS = ("deployment", "statefulset", "daemonset", "job")


def setup_logging() -> None:
    """Configure logging (level via KUBESTATUS_LOG_LEVEL env or default INFO)."""
    logging.basicConfig(
        level=getattr(logging, os.getenv(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        log.warning(f"[config] Invalid {name}, using default: {default}")
        return default


def build_parser() -> argparse.ArgumentParser:
    """
    Build and configure the command-line argument parser.

    Environment Variables:
        KUBESTATUS_HOST: Default host to bind to (default: localhost)
        KUBESTATUS_PORT: Default port to bind to (default: 8080)
        KUBESTATUS_MAX_WORKERS: Default concurrent per-pod tasks (default: 16)
    """
    p = argparse.ArgumentParser("kubestatus", description="Container status and health for Kubernetes workloads")
    p.add_argument("--kubeconfig", default=None, help="Path to kubeconfig (defaults to kube rules)")
    p.add_argument("--context", default=None, help="Kubecontext override")
    p.add_argument("--max-workers", type=int, default=_env_int(ENV_MAX_WORKERS, DEFAULT_MAX_WORKERS),
                   help="Concurrent per-pod collection tasks (env: KUBESTATUS_MAX_WORKERS)")
    sub = p.add_subparsers(dest="command", required=True)

    status = sub.add_parser("status", help="Show container status for a pod, workload or selector")
    status.add_argument("target", nargs="?", default="", help="Name or type/name (e.g. deploy/web, pod/web-1)")
    for kind in RESOURCE_FLAGS:
        status.add_argument(f"--{kind}", default=None, help=f"Show all pods of the given {kind}")
    status.add_argument("-l", "--selector", default="", help="Label selector to fetch and group matching pods")
    ns = status.add_mutually_exclusive_group()
    ns.add_argument("-n", "--namespace", default="", help="Target namespace (defaults to current context)")
    ns.add_argument("-A", "--all-namespaces", action="store_true", help="Match pods across all namespaces")
    status.add_argument("--events", action="store_true", help="Show events from the last hour instead of 5 minutes")
    status.add_argument("--logs", action="store_true", help="Show last 10 log lines (Pod targets only)")
    status.add_argument("--env", action="store_true", help="Show environment variables (sensitive values masked)")
    status.add_argument("--wide", action="store_true", help="Collect volumes, environment and ephemeral containers")
    status.add_argument("-c", "--container", default=None, help="Only display the named container")
    status.add_argument("--problematic", action="store_true", help="Show only problematic pods")
    status.add_argument("--sort", default=DEFAULT_SORT_KEY, help=f"Sort pods by: {', '.join(SORT_KEYS)}")
    status.add_argument("-o", "--output", default=DEFAULT_OUTPUT_FORMAT, help=f"Output: {', '.join(OUTPUT_FORMATS)}")

    serve = sub.add_parser("serve", help="Serve status over HTTP")
    serve.add_argument("--host", default=os.getenv(ENV_HOST, DEFAULT_HOST), help="Host to bind (env: KUBESTATUS_HOST)")
    serve.add_argument("--port", type=int, default=_env_int(ENV_PORT, DEFAULT_PORT),
                       help="Port for HTTP server (env: KUBESTATUS_PORT)")
    return p


def build_options(args: argparse.Namespace) -> StatusOptions:
    """
    Turn parsed ``status`` arguments into StatusOptions.

    Raises:
        ConfigurationError: On conflicting or invalid arguments
        InvalidSelectorError: On a malformed selector
    """
    flagged = [(kind, getattr(args, kind)) for kind in RESOURCE_FLAGS if getattr(args, kind)]
    sources = len(flagged) + bool(args.selector) + bool(args.target)
    if sources > 1:
        raise ConfigurationError("specify only one of a target, a resource flag or --selector")
    if sources == 0:
        raise ConfigurationError("a target, a resource flag or --selector is required")

    resource_type, resource_name = "", args.target
    if flagged:
        resource_type, resource_name = flagged[0]

    return StatusOptions(
        namespace=args.namespace,
        all_namespaces=args.all_namespaces,
        selector=validate_label_selector(args.selector) if args.selector else "",
        resource_type=resource_type,
        resource_name=resource_name,
        show_events=args.events,
        show_logs=args.logs,
        show_env=args.env,
        extended_detail=args.wide,
        container_filter=args.container,
        problematic=args.problematic,
        sort_by=validate_sort_key(args.sort),
        max_workers=validate_max_workers(args.max_workers),
    )


async def run_status(args: argparse.Namespace, options: StatusOptions, output: str) -> str:
    kube = await load_kube(args.kubeconfig, args.context)
    pipeline = StatusPipeline(kube, max_workers=options.max_workers)
    workloads = await pipeline.run(options)
    if output == "json":
        return workloads_to_json(workloads)
    if not workloads:
        return "No problematic pods found." if options.problematic else "No pods found."
    return render_summary(workloads)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point for the Kubestatus CLI application.

    Raises:
        SystemExit: On configuration errors (exit code 2) or runtime errors (exit code 1)
    """
    setup_logging()
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "serve":
            host = validate_host(args.host)
            port = validate_port(args.port)
            max_workers = validate_max_workers(args.max_workers)
        else:
            options = build_options(args)
            output = validate_output_format(args.output)
    except (ConfigurationError, InvalidSelectorError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        if args.command == "serve":
            from .server import run_server
            asyncio.run(run_server(args.kubeconfig, args.context, port=port, host=host, max_workers=max_workers))
        else:
            print(asyncio.run(run_status(args, options, output)))
    except KeyboardInterrupt:
        print("\nShutting down...", file=sys.stderr)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)
    except KubestatusError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
