"""Command-line entry point for zap-assistant."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from zap_assistant.core import AppSettings, configure_logging, enabled_features, load_app_settings
from zap_assistant.di.errors import token_name
from zap_assistant.di.factory import ServiceFactory


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(description="zap-assistant service runtime")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file containing configuration overrides.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="info",
        choices=["info", "health", "services"],
        help="Operation to execute.",
    )
    return parser


def execute(args: argparse.Namespace, settings: AppSettings) -> int:
    """Execute the requested CLI command and return the exit code."""
    command = args.command
    if command == "info":
        features = enabled_features(settings)
        print(f"Environment: {settings.environment}")
        print(f"Enabled features: {', '.join(features) if features else 'none'}")
        return 0

    factory = ServiceFactory(settings)
    factory.initialize()
    try:
        if command == "services":
            for token in factory.get_container().get_registered_services():
                print(token_name(token))
            for name, reason in factory.disabled_services.items():
                print(f"{name} (disabled: {reason})")
            return 0

        report = factory.health_report or factory.run_health_checks()
        for name, result in report.results.items():
            marker = "ok" if result.healthy else "FAIL"
            print(f"[{marker}] {name}: {result.detail}")
        if not report.results:
            print("No services expose health checks.")
        return 0 if report.healthy else 1
    finally:
        factory.clear()


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    settings = load_app_settings(env_file=args.env_file)
    configure_logging(settings.logging)
    sys.exit(execute(args, settings))


__all__ = ["build_parser", "execute", "main"]
