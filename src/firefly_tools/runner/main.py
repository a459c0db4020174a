"""
CLI main entry point.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable

import yaml

from .. import __version__
from ..config import Config, ConfigValidationError, create_default_config, load_config
from ..firefly_client import FireflyClient, FireflyError
from ..firefly_client.engine import SUPPORTED_FIREFLY_VERSION
from ..logging_setup import setup_logging
from ..tools.category_importer import (
    DEFAULT_CATEGORIES_DIR,
    CategoryImportError,
    import_categories,
    load_categories_from_file,
    scan_category_files,
    select_category_file,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_PARTIAL = 2


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="firefly-tools",
        description="Command-line tools for the Firefly III API",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # init-config command
    init_parser = subparsers.add_parser("init-config", help="Write a default config file")
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file",
    )

    # check command
    subparsers.add_parser("check", help="Validate configuration and test the API connection")

    # overview command
    overview_parser = subparsers.add_parser(
        "overview", help="Show instance info, accounts and recent transactions"
    )
    overview_parser.add_argument(
        "--limit",
        type=int,
        default=5,
        help="Number of recent transactions to show (default: 5)",
    )

    # accounts command
    accounts_parser = subparsers.add_parser("accounts", help="List accounts")
    accounts_parser.add_argument(
        "--type",
        dest="account_type",
        type=str,
        default=None,
        help="Account type filter: asset, expense, revenue, liability, cash",
    )

    # transactions command
    tx_parser = subparsers.add_parser("transactions", help="List transactions")
    tx_parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum transactions to fetch (default: 10)",
    )
    tx_parser.add_argument("--start", type=str, help="Start date (YYYY-MM-DD)")
    tx_parser.add_argument("--end", type=str, help="End date (YYYY-MM-DD)")
    tx_parser.add_argument(
        "--type",
        dest="type_filter",
        type=str,
        help="Transaction type: withdrawal, deposit, transfer",
    )

    # budgets / categories commands
    subparsers.add_parser("budgets", help="List budgets")
    subparsers.add_parser("categories", help="List categories")

    # import-categories command
    import_parser = subparsers.add_parser(
        "import-categories", help="Create categories from a local JSON file"
    )
    import_parser.add_argument(
        "--dir",
        dest="directory",
        type=Path,
        default=DEFAULT_CATEGORIES_DIR,
        help=f"Directory holding category files (default: {DEFAULT_CATEGORIES_DIR})",
    )
    import_parser.add_argument(
        "--file",
        dest="file_choice",
        type=str,
        default=None,
        help="File name or number to import (default: ask)",
    )
    import_parser.add_argument(
        "-y",
        "--yes",
        dest="assume_yes",
        action="store_true",
        help="Do not ask for confirmation",
    )
    import_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be created without calling the API",
    )

    return parser


def cmd_init_config(config_path: Path, force: bool) -> int:
    """Write the default config template."""
    if config_path.exists() and not force:
        print(f"⚠️  Configuration file already exists at {config_path}")
        print("   Use --force to overwrite it")
        return EXIT_FAILURE

    create_default_config(config_path)
    print(f"✅ Created {config_path}")
    print("📝 Edit it with your Firefly III URL and personal access token,")
    print(f"   then run: firefly-tools -c {config_path} check")
    return EXIT_OK


async def cmd_check(client: FireflyClient, config: Config) -> int:
    """Probe the API with the loaded configuration."""
    print(f"🔗 API URL: {config.firefly.base_url}")
    print("🔍 Testing API connection...")

    if not await client.test_connection():
        print("❌ Failed to connect to Firefly III API")
        print("Please check your configuration:")
        print("- Base URL is correct and accessible")
        print("- API token is valid")
        print("- Firefly III instance is running")
        return EXIT_FAILURE

    about = await client.get_about()
    print("✅ API connection successful!")
    if about:
        print(f"   Firefly III {about.get('version', '?')} (API {about.get('api_version', '?')})")
    return EXIT_OK


async def cmd_overview(client: FireflyClient, config: Config, limit: int) -> int:
    """Instance info, account balances and the most recent transactions."""
    print(f"🔥 Firefly III Tools v{__version__}")
    print(f"📋 Compatible with Firefly III v{SUPPORTED_FIREFLY_VERSION}")

    result = await cmd_check(client, config)
    if result != EXIT_OK:
        return result

    print("\n💰 Fetching accounts...")
    accounts = await client.get_accounts()
    print(f"📊 Found {len(accounts.data)} accounts")
    for account in accounts.data:
        print(
            f"  • {account.name} ({account.account_type}): "
            f"{account.current_balance} {account.currency_code}"
        )

    print("\n📝 Fetching recent transactions...")
    transactions = await client.get_transactions({"limit": limit})
    print(f"📋 Found {len(transactions.data)} recent transactions")
    for transaction in transactions.data:
        split = transaction.first_split
        if split is None:
            continue
        print(f"  • {split.date[:10]}: {split.description} - {split.amount} {split.currency_code}")

    stats = client.get_stats()
    print(f"\n📊 API Stats: {stats.request_count} requests made")
    return EXIT_OK


async def cmd_accounts(client: FireflyClient, account_type: str | None) -> int:
    accounts = await client.get_accounts(account_type)
    print(f"\n💰 Accounts ({len(accounts.data)})")
    print("=" * 40)
    for account in accounts.data:
        status = "" if account.active else " [inactive]"
        print(
            f"  {account.id:>5}  {account.name} ({account.account_type}): "
            f"{account.current_balance} {account.currency_code}{status}"
        )
    return EXIT_OK


async def cmd_transactions(
    client: FireflyClient,
    limit: int,
    start: str | None,
    end: str | None,
    type_filter: str | None,
) -> int:
    params: dict[str, str | int] = {"limit": limit}
    if start:
        params["start"] = start
    if end:
        params["end"] = end
    if type_filter:
        params["type"] = type_filter

    transactions = await client.get_transactions(params)
    print(f"\n📝 Transactions ({len(transactions.data)})")
    print("=" * 40)
    for transaction in transactions.data:
        split = transaction.first_split
        if split is None:
            continue
        extra = f" [+{len(transaction.splits) - 1} splits]" if len(transaction.splits) > 1 else ""
        print(
            f"  {transaction.id:>5}  {split.date[:10]}  {split.description} "
            f"{split.amount} {split.currency_code}{extra}"
        )
    return EXIT_OK


async def cmd_budgets(client: FireflyClient) -> int:
    budgets = await client.get_budgets()
    print(f"\n📊 Budgets ({len(budgets.data)})")
    print("=" * 40)
    for budget in budgets.data:
        status = "" if budget.active else " [inactive]"
        print(f"  {budget.id:>5}  {budget.name}{status}")
    return EXIT_OK


async def cmd_categories(client: FireflyClient) -> int:
    categories = await client.get_categories()
    print(f"\n🏷️  Categories ({len(categories.data)})")
    print("=" * 40)
    for category in categories.data:
        print(f"  {category.id:>5}  {category.name}")
    return EXIT_OK


async def cmd_import_categories(
    client: FireflyClient,
    directory: Path,
    file_choice: str | None,
    assume_yes: bool,
    dry_run: bool,
    prompt: Callable[[str], str] = input,
) -> int:
    """
    Import categories from a local file.

    Returns:
        0 if every category was created, 2 if some failed,
        1 if nothing could be imported
    """
    print("🏷️  Firefly III Category Importer")
    print("=" * 40)

    if not dry_run:
        print("🔗 Connecting to Firefly III API...")
        if not await client.test_connection():
            print("❌ Failed to connect to Firefly III API")
            return EXIT_FAILURE
        print("✅ API connection successful")

    try:
        files = scan_category_files(directory)
        print(f"📁 Found {len(files)} category file(s) in {directory}")
        selected = select_category_file(files, choice=file_choice, prompt=prompt)
        print(f"📂 Selected file: {selected.name}")
        categories = load_categories_from_file(selected.path)
    except CategoryImportError as e:
        print(f"❌ {e}")
        return EXIT_FAILURE

    print(f"📋 Loaded {len(categories)} categories")

    if not dry_run and not assume_yes:
        answer = prompt(
            f"⚠️  About to create {len(categories)} categories in Firefly III. Continue? [y/N] "
        )
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted, nothing was imported")
            return EXIT_OK

    result = await import_categories(client, categories, dry_run=dry_run)

    print()
    print("📊 Import Summary")
    print("=" * 40)
    print(f"  ✅ Created: {result.created}")
    if dry_run:
        print(f"  ⏭️  Skipped (dry run): {result.skipped}")
    print(f"  ❌ Errors:  {result.errors}")
    print(f"  📋 Total:   {result.total}")

    if result.failures:
        print()
        print("⚠️  Some categories could not be created:")
        for failure in result.failures:
            print(f"   - {failure.name}: {failure.message}")
        return EXIT_PARTIAL

    if not dry_run:
        print("🎉 All categories imported successfully!")
    return EXIT_OK


async def run_command(parsed: argparse.Namespace, config: Config, client: FireflyClient) -> int:
    """Route a parsed command to its handler."""
    if parsed.command == "check":
        return await cmd_check(client, config)
    elif parsed.command == "overview":
        return await cmd_overview(client, config, parsed.limit)
    elif parsed.command == "accounts":
        return await cmd_accounts(client, parsed.account_type)
    elif parsed.command == "transactions":
        return await cmd_transactions(
            client, parsed.limit, parsed.start, parsed.end, parsed.type_filter
        )
    elif parsed.command == "budgets":
        return await cmd_budgets(client)
    elif parsed.command == "categories":
        return await cmd_categories(client)
    elif parsed.command == "import-categories":
        return await cmd_import_categories(
            client,
            parsed.directory,
            parsed.file_choice,
            parsed.assume_yes,
            parsed.dry_run,
        )
    raise ValueError(f"Unknown command: {parsed.command}")


async def _run(parsed: argparse.Namespace, config: Config) -> int:
    async with FireflyClient.from_config(config, verbose=parsed.verbose) as client:
        try:
            return await run_command(parsed, config, client)
        except FireflyError as e:
            logger.debug("Command %s failed", parsed.command, exc_info=True)
            print(f"❌ Error: {e}")
            return EXIT_FAILURE


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(verbose=parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return EXIT_FAILURE

    if parsed.command == "init-config":
        return cmd_init_config(parsed.config, parsed.force)

    # Load config
    try:
        config = load_config(parsed.config)
    except ConfigValidationError as e:
        print("❌ Invalid configuration:")
        for error in e.errors:
            print(f"   - {error}")
        print("\n💡 Tip: run 'firefly-tools init-config' and edit config.yaml,")
        print("   or set FIREFLY_BASE_URL and FIREFLY_API_TOKEN")
        return EXIT_FAILURE
    except (OSError, yaml.YAMLError) as e:
        print(f"❌ Failed to load config: {e}")
        return EXIT_FAILURE

    setup_logging(config.logging, parsed.verbose)

    return asyncio.run(_run(parsed, config))


if __name__ == "__main__":
    sys.exit(main())
