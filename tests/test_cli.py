"""Tests for CLI commands.

Parser wiring is checked directly; command handlers run against a mocked
Firefly server.
"""

import json
import sys

import pytest

from conftest import (
    DUPLICATE_CATEGORY_ERROR,
    RoutedServer,
    ScriptedServer,
    category_resource,
    refuse,
    respond,
)
from firefly_tools.config import Config, FireflyConfig
from firefly_tools.firefly_client import FireflyClient
from firefly_tools.runner.main import (
    EXIT_FAILURE,
    EXIT_OK,
    EXIT_PARTIAL,
    cmd_import_categories,
    cmd_overview,
    create_cli,
    main,
    run_command,
)

ABOUT = {"data": {"version": "6.1.24", "api_version": "2.1.0"}}


@pytest.fixture(autouse=True)
def isolated_main(monkeypatch):
    """Keep main() away from the real environment and root logging."""
    for name in ("FIREFLY_BASE_URL", "FIREFLY_API_TOKEN", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(
        sys.modules["firefly_tools.runner.main"],
        "setup_logging",
        lambda *args, **kwargs: None,
    )


@pytest.fixture
def config(settings) -> Config:
    return Config(firefly=settings)


@pytest.fixture
def import_dir(tmp_path):
    directory = tmp_path / "categories"
    directory.mkdir()
    (directory / "categories-en.json").write_text(
        json.dumps([{"name": "Groceries"}, {"name": "Groceries"}, {"name": "Fuel"}])
    )
    return directory


class TestCLICommandRegistry:
    """Tests for CLI command registration."""

    def test_all_commands_registered(self):
        parser = create_cli()

        subparsers_action = None
        for action in parser._actions:
            if action.dest == "command":
                subparsers_action = action
                break

        assert subparsers_action is not None
        commands = set(subparsers_action.choices.keys())
        assert commands == {
            "init-config",
            "check",
            "overview",
            "accounts",
            "transactions",
            "budgets",
            "categories",
            "import-categories",
        }

    def test_import_categories_defaults(self):
        args = create_cli().parse_args(["import-categories"])

        assert str(args.directory) == "data/categories"
        assert args.file_choice is None
        assert args.assume_yes is False
        assert args.dry_run is False

    def test_import_categories_all_options(self):
        args = create_cli().parse_args(
            ["import-categories", "--dir", "cats", "--file", "2", "--yes", "--dry-run"]
        )

        assert str(args.directory) == "cats"
        assert args.file_choice == "2"
        assert args.assume_yes is True
        assert args.dry_run is True

    def test_transactions_options(self):
        args = create_cli().parse_args(
            ["transactions", "--limit", "3", "--start", "2024-01-01", "--type", "deposit"]
        )

        assert args.limit == 3
        assert args.start == "2024-01-01"
        assert args.end is None
        assert args.type_filter == "deposit"

    def test_global_options(self):
        args = create_cli().parse_args(["-c", "other.yaml", "-v", "accounts", "--type", "asset"])

        assert str(args.config) == "other.yaml"
        assert args.verbose is True
        assert args.account_type == "asset"


class TestMain:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == EXIT_FAILURE
        assert "usage: firefly-tools" in capsys.readouterr().out

    def test_init_config_writes_template(self, tmp_path, capsys):
        path = tmp_path / "config.yaml"

        assert main(["-c", str(path), "init-config"]) == EXIT_OK
        assert path.exists()
        assert "firefly:" in path.read_text()

    def test_init_config_refuses_overwrite(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("keep me")

        assert main(["-c", str(path), "init-config"]) == EXIT_FAILURE
        assert path.read_text() == "keep me"

        assert main(["-c", str(path), "init-config", "--force"]) == EXIT_OK
        assert path.read_text() != "keep me"

    def test_invalid_config_reports_and_fails(self, tmp_path, capsys):
        assert main(["-c", str(tmp_path / "missing.yaml"), "check"]) == EXIT_FAILURE

        out = capsys.readouterr().out
        assert "Invalid configuration" in out
        assert "base URL is required" in out

    def test_verbose_flag_enables_request_traces(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FIREFLY_BASE_URL", "https://firefly.test")
        monkeypatch.setenv("FIREFLY_API_TOKEN", "test-token-12345")
        server = RoutedServer({("GET", "/api/v1/categories"): respond(200, json={"data": []})})
        built = []
        from_config = FireflyClient.from_config

        def build(config, verbose=False):
            client = from_config(config, transport=server.transport, verbose=verbose)
            built.append(client)
            return client

        monkeypatch.setattr(FireflyClient, "from_config", build)

        assert main(["-c", str(tmp_path / "missing.yaml"), "-v", "categories"]) == EXIT_OK
        assert built[0].engine.debug is True


class TestCommands:
    @pytest.mark.asyncio
    async def test_overview(self, make_client, config, account_payload, transaction_payload, capsys):
        server = RoutedServer(
            {
                ("GET", "/api/v1/about"): respond(200, json=ABOUT),
                ("GET", "/api/v1/accounts"): respond(200, json=account_payload),
                ("GET", "/api/v1/transactions"): respond(200, json=transaction_payload),
            }
        )

        async with make_client(server) as client:
            assert await cmd_overview(client, config, limit=5) == EXIT_OK

        out = capsys.readouterr().out
        assert "Checking (asset): 100.00 USD" in out
        assert "2024-11-18: Food - 8.98 EUR" in out
        assert "4 requests made" in out

    @pytest.mark.asyncio
    async def test_check_unreachable(self, make_client, config, settings, capsys):
        settings.retry_attempts = 0
        server = ScriptedServer(refuse)

        async with make_client(server) as client:
            parsed = create_cli().parse_args(["check"])
            assert await run_command(parsed, config, client) == EXIT_FAILURE

        assert "Failed to connect" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_list_categories(self, make_client, config, capsys):
        payload = {"data": [category_resource("1", "Groceries")["data"]]}
        server = RoutedServer({("GET", "/api/v1/categories"): respond(200, json=payload)})

        async with make_client(server) as client:
            parsed = create_cli().parse_args(["categories"])
            assert await run_command(parsed, config, client) == EXIT_OK

        assert "Groceries" in capsys.readouterr().out


class TestImportCategoriesCommand:
    @pytest.mark.asyncio
    async def test_partial_failure_exit_code(self, make_client, import_dir, capsys):
        """The duplicate is reported, the rest is created, exit code 2."""
        server = ScriptedServer(
            respond(200, json=ABOUT),
            respond(201, json=category_resource("1", "Groceries")),
            respond(422, json=DUPLICATE_CATEGORY_ERROR),
            respond(201, json=category_resource("2", "Fuel")),
        )

        async with make_client(server) as client:
            code = await cmd_import_categories(
                client, import_dir, file_choice=None, assume_yes=True, dry_run=False
            )

        assert code == EXIT_PARTIAL
        out = capsys.readouterr().out
        assert "Created: 2" in out
        assert "Errors:  1" in out
        assert "Groceries" in out
        assert len(server.requests) == 4

    @pytest.mark.asyncio
    async def test_all_created(self, make_client, tmp_path):
        (tmp_path / "only.json").write_text(json.dumps([{"name": "Rent"}]))
        server = ScriptedServer(
            respond(200, json=ABOUT),
            respond(201, json=category_resource("1", "Rent")),
        )

        async with make_client(server) as client:
            code = await cmd_import_categories(
                client, tmp_path, file_choice=None, assume_yes=True, dry_run=False
            )

        assert code == EXIT_OK

    @pytest.mark.asyncio
    async def test_connection_failure_aborts(self, make_client, settings, import_dir):
        settings.retry_attempts = 0
        server = ScriptedServer(refuse)

        async with make_client(server) as client:
            code = await cmd_import_categories(
                client, import_dir, file_choice=None, assume_yes=True, dry_run=False
            )

        assert code == EXIT_FAILURE
        assert len(server.requests) == 1

    @pytest.mark.asyncio
    async def test_declined_confirmation(self, make_client, import_dir):
        server = ScriptedServer(respond(200, json=ABOUT))

        async with make_client(server) as client:
            code = await cmd_import_categories(
                client,
                import_dir,
                file_choice=None,
                assume_yes=False,
                dry_run=False,
                prompt=lambda text: "n",
            )

        assert code == EXIT_OK
        assert [r.url.path for r in server.requests] == ["/api/v1/about"]

    @pytest.mark.asyncio
    async def test_dry_run_makes_no_requests(self, make_client, import_dir):
        server = ScriptedServer(respond(500))

        async with make_client(server) as client:
            code = await cmd_import_categories(
                client, import_dir, file_choice="categories-en", assume_yes=False, dry_run=True
            )

        assert code == EXIT_OK
        assert server.requests == []

    @pytest.mark.asyncio
    async def test_missing_directory(self, make_client, tmp_path, capsys):
        server = ScriptedServer(respond(200, json=ABOUT))

        async with make_client(server) as client:
            code = await cmd_import_categories(
                client, tmp_path / "nope", file_choice=None, assume_yes=True, dry_run=False
            )

        assert code == EXIT_FAILURE
        assert "Categories directory not found" in capsys.readouterr().out


class TestConfigFixtureSanity:
    def test_settings_fixture_is_valid(self, config):
        assert config.validate() == []
        assert isinstance(config.firefly, FireflyConfig)
