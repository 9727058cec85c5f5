"""Vaada settlement CLI entry point."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

load_dotenv(Path.cwd() / ".env")

from vaada import __version__
from vaada.config import get_settings
from vaada.pipeline import run_receipt_backfill, run_settlement
from vaada.scheduler import start_scheduler
from vaada.services.fitness import ProviderKind
from vaada.settlement import RunReport
from vaada.storage import get_credential_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# Vaada Settlement Configuration
# Operational parameters for the settlement pipeline.
# Private keys and API secrets belong in .env, not here.

ledger:
  rpc_url: https://base.publicnode.com
  chain_id: 8453
  receipt_timeout_seconds: 120
  min_receipt_timeout_seconds: 15
  distance_decimals: 0
  steps_decimals: 0

providers:
  timeout_seconds: 30
  max_retries: 3

pipeline:
  time_budget_seconds: 240
  stuck_after_hours: 48
  log_reports: true

scheduler:
  settlement_interval_minutes: 15

telegram:
  send_stuck_alerts: true
  send_run_failures: true
  send_settlement_summaries: false
"""


def _init_logfire() -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from vaada.observability import initialize_logfire

        initialize_logfire(get_settings())
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def _print_report(report: RunReport, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report.model_dump(mode="json"), indent=2))
        return

    print(f"Run {report.run_id}: {report.summary()}\n")
    for goal in report.goals:
        phase = goal.phase.value if goal.phase else "unreadable"
        label = f"Goal #{goal.goal_id} {goal.name}".rstrip()
        print(f"{label} [{phase}]")
        for outcome in goal.participants:
            detail = outcome.reason or (
                f"achieved={outcome.achieved}" if outcome.achieved is not None else ""
            )
            print(f"  • {outcome.user}: {outcome.status} {detail}".rstrip())
        if goal.settlement:
            print(f"  Settlement: {goal.settlement.status}")
        if goal.minting:
            print(
                f"  Receipts: {goal.minting.status} "
                f"(minted={goal.minting.minted}, skipped={goal.minting.skipped})"
            )
            if goal.minting.status == "dry_run":
                for entry in goal.minting.entries:
                    print(f"    - {entry.participant} payout={entry.payout}")
        if goal.error:
            print(f"  ❌ {goal.error}")
    if report.stuck_goals:
        print(f"\n⚠️  Stuck goals: {', '.join(map(str, report.stuck_goals))}")
    print()


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory structure and configuration files."""
    data_dir = Path("data").resolve()

    try:
        (data_dir / "reports").mkdir(parents=True, exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        store = get_credential_store(data_dir)
        if not store.path.exists():
            store.save(store.load())
            logger.info(f"Created empty credentials file: {store.path}")

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Copy .env.example to .env and set VERIFIER_PRIVATE_KEY and provider secrets")
        print("2. Review and customize data/config.yaml if needed")
        print("3. Run 'python -m vaada config' to verify configuration")
        print("4. Run 'python -m vaada run --once' for a single settlement pass\n")

        return 0

    except OSError as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== Vaada Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}\n")

        print("Ledger:")
        print(f"  RPC URL: {settings.ledger.rpc_url}")
        print(f"  Chain ID: {settings.ledger.chain_id}")
        print(f"  Goal Stake: {settings.ledger.goal_stake_address}")
        print(f"  Automation: {settings.ledger.automation_address}")
        print(f"  Receipts: {settings.ledger.receipts_address}")
        print(f"  Receipt Timeout: {settings.ledger.receipt_timeout_seconds:.0f}s")
        print(
            f"  Decimals: distance={settings.ledger.distance_decimals} "
            f"steps={settings.ledger.steps_decimals}\n"
        )

        print("Pipeline:")
        print(f"  Time Budget: {settings.pipeline.time_budget_seconds}s")
        print(f"  Stuck After: {settings.pipeline.stuck_after_hours}h")
        print(f"  Log Reports: {settings.pipeline.log_reports}\n")

        print("Scheduler (minutes):")
        print(f"  Settlement Run: {settings.scheduler.settlement_interval_minutes}\n")

        print("Secrets:")
        print(f"  Verifier Key: {'✓ Set' if settings.verifier_private_key else '✗ Not set'}")
        print(f"  Strava: {'✓ Set' if settings.strava_client_secret else '✗ Not set'}")
        print(f"  Fitbit: {'✓ Set' if settings.fitbit_client_secret else '✗ Not set'}")
        print(f"  Telegram: {'✓ Set' if settings.telegram_enabled else '✗ Not set'}")
        print(f"  Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")

        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"\n❌ Failed to load configuration: {e}\n")
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Start the settlement service, or run a single pass with --once."""
    try:
        _init_logfire()

        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)

        settings = get_settings()

        print("\n=== Vaada Settlement Pipeline ===\n")
        print(f"Version: {__version__}")
        print(f"Chain ID: {settings.ledger.chain_id}")
        print(f"Data Directory: {settings.data_dir}\n")

        if args.once:
            print("Running settlement once (Verify -> Settle -> Mint)...\n")
            report = asyncio.run(run_settlement(settings))
            _print_report(report, args.json)
            return 0 if report.fatal_error is None else 1

        print("Starting scheduler...\n")
        start_scheduler(settings)

        return 0

    except KeyboardInterrupt:
        print("\n\nReceived interrupt signal. Shutting down...\n")
        return 0
    except Exception as e:
        logger.error(f"Failed to start system: {e}", exc_info=True)
        print(f"\nFailed to start: {e}\n")
        return 1


def cmd_verify_goal(args: argparse.Namespace) -> int:
    """Run the pipeline for a single goal."""
    _init_logfire()

    try:
        print(f"\n=== Verify Goal #{args.goal_id} ===\n")

        report = asyncio.run(run_settlement(get_settings(), goal_ids=[args.goal_id]))
        _print_report(report, args.json)

        if report.fatal_error:
            return 1
        return 0 if report.ok else 2

    except Exception as e:
        logger.error(f"Goal verification failed: {e}", exc_info=True)
        print(f"\n❌ Goal verification failed: {e}\n")
        return 1


def cmd_mint_receipts(args: argparse.Namespace) -> int:
    """Mint any missing receipts across settled goals."""
    _init_logfire()

    try:
        mode = " (dry run)" if args.dry_run else ""
        print(f"\n=== Receipt Backfill{mode} ===\n")

        report = asyncio.run(run_receipt_backfill(get_settings(), dry_run=args.dry_run))
        _print_report(report, args.json)

        return 0 if report.fatal_error is None else 1

    except Exception as e:
        logger.error(f"Receipt backfill failed: {e}", exc_info=True)
        print(f"\n❌ Receipt backfill failed: {e}\n")
        return 1


def cmd_credentials(args: argparse.Namespace) -> int:
    """Add or remove a provider refresh token for a wallet."""
    try:
        store = get_credential_store(get_settings().data_dir)
        provider = ProviderKind(args.provider)

        if args.action == "add":
            store.put(args.wallet, provider, args.refresh_token, args.external_id)
            print(f"\n✓ Stored {provider.value} credentials for {args.wallet.lower()}\n")
            return 0

        if store.remove(args.wallet, provider):
            print(f"\n✓ Removed {provider.value} credentials for {args.wallet.lower()}\n")
            return 0
        print(f"\n❌ No {provider.value} credentials for {args.wallet.lower()}\n")
        return 1

    except Exception as e:
        logger.error(f"Credential update failed: {e}")
        print(f"\n❌ Credential update failed: {e}\n")
        return 1


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Vaada: verify, settle and mint receipts for fitness goals",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Vaada {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory and configuration files",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_run = subparsers.add_parser(
        "run",
        help="Start the settlement scheduler",
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser_run.add_argument(
        "--once",
        action="store_true",
        help="Run one settlement pass then exit",
    )
    parser_run.add_argument(
        "--json",
        action="store_true",
        help="Print the run report as JSON",
    )
    parser_run.set_defaults(func=cmd_run)

    parser_verify = subparsers.add_parser(
        "verify-goal",
        help="Verify, settle and mint a single goal",
    )
    parser_verify.add_argument("goal_id", type=int, help="Goal ID on the ledger")
    parser_verify.add_argument(
        "--json",
        action="store_true",
        help="Print the run report as JSON",
    )
    parser_verify.set_defaults(func=cmd_verify_goal)

    parser_mint = subparsers.add_parser(
        "mint-receipts",
        help="Mint missing receipts for settled goals",
    )
    parser_mint.add_argument(
        "--dry-run",
        action="store_true",
        help="List the receipts that would be minted without writing",
    )
    parser_mint.add_argument(
        "--json",
        action="store_true",
        help="Print the run report as JSON",
    )
    parser_mint.set_defaults(func=cmd_mint_receipts)

    parser_creds = subparsers.add_parser(
        "credentials",
        help="Manage stored provider refresh tokens",
    )
    parser_creds.add_argument("action", choices=["add", "remove"])
    parser_creds.add_argument("wallet", help="Participant wallet address")
    parser_creds.add_argument("provider", choices=[p.value for p in ProviderKind])
    parser_creds.add_argument("--refresh-token", default="", help="OAuth refresh token")
    parser_creds.add_argument("--external-id", default="", help="Provider user id")
    parser_creds.set_defaults(func=cmd_credentials)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    if args.func is cmd_credentials and args.action == "add" and not args.refresh_token:
        parser.error("credentials add requires --refresh-token")

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
