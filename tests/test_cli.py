"""Tests for the specgen command line."""

import json
from unittest.mock import patch

import pytest

from conftest import FakeImageProcessor, FakeTextProvider
from specgen.cli import build_parser, main
from specgen.infra.config import StoreConfig
from specgen.store.database import SpecGenStore


@pytest.fixture(autouse=True)
def cli_env(monkeypatch):
    """Console-only logging and no developer .env file."""
    monkeypatch.setenv("LOG_DIR", "")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    with patch("specgen.infra.config.load_dotenv"):
        yield


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "cli.db"


class TestParser:
    """Tests for argument parsing."""

    def test_generate_arguments(self):
        args = build_parser().parse_args([
            "generate", "--type", "combined", "--params", '{"a": {"b": "c"}}', "--year", "2150"
        ])
        assert args.command == "generate"
        assert args.type == "combined"
        assert args.year == 2150

    def test_invalid_type(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["generate", "--type", "audio"])


class TestCommands:
    """Tests for CLI commands."""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_migrate(self, db_path, capsys):
        assert main(["--db", str(db_path), "migrate"]) == 0
        assert "001, 002" in capsys.readouterr().out

        assert main(["--db", str(db_path), "migrate"]) == 0
        assert "up to date" in capsys.readouterr().out

    def test_status(self, db_path, capsys):
        assert main(["--db", str(db_path), "status"]) == 0

        status = json.loads(capsys.readouterr().out)
        assert status["schema_version"] == "003"
        assert status["tables"]["settings"] == 4

    def test_seed(self, db_path, tmp_path, capsys):
        seed_file = tmp_path / "seed.json"
        seed_file.write_text(json.dumps({
            "categories": [{"id": "fantasy", "name": "Fantasy"}],
            "parameters": [{"id": "magic", "name": "Magic", "type": "text", "categoryId": "fantasy"}],
        }), encoding="utf-8")

        assert main(["--db", str(db_path), "seed", str(seed_file)]) == 0
        assert "Imported 1 categories, 1 parameters" in capsys.readouterr().out
        assert SpecGenStore(StoreConfig(db_path=db_path)).get_parameter("magic").name == "Magic"

    def test_generate_fiction(self, db_path, monkeypatch, capsys):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")

        with patch("specgen.generation.orchestrator.get_provider", return_value=FakeTextProvider()), \
                patch("specgen.generation.orchestrator.get_image_processor", return_value=FakeImageProcessor()):
            code = main([
                "--db", str(db_path),
                "generate", "--type", "fiction",
                "--params", '{"science-fiction": {"technology-level": "Advanced"}}',
                "--year", "2150",
            ])

        assert code == 0
        assert "Title: The Last Signal" in capsys.readouterr().out
        assert SpecGenStore(StoreConfig(db_path=db_path)).count_content() == 1

    def test_generate_missing_credential(self, db_path, capsys):
        with patch("specgen.generation.orchestrator.get_image_processor", return_value=FakeImageProcessor()):
            code = main(["--db", str(db_path), "generate", "--type", "fiction"])

        assert code == 1
        assert "ANTHROPIC_API_KEY" in capsys.readouterr().err

    def test_generate_invalid_params(self, db_path, capsys):
        code = main(["--db", str(db_path), "generate", "--params", "{not json"])

        assert code == 2
        assert "Invalid --params JSON" in capsys.readouterr().err
