"""CLI command tests using Click's CliRunner

Every command runs against mock providers and a per-test artifact
directory; no real API calls.
"""

import json

import pytest
from click.testing import CliRunner

from cli import main
from cli.secrets import normalize_key_name, required_keys
from cli.theme import THEMES, set_theme
from core.config import Settings


# ============================================================
# Fixtures
# ============================================================

@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Process-wide settings pointing at a temporary artifact directory"""
    settings = Settings(_env_file=None, artifact_dir=str(tmp_path), provider_mode="mock")
    monkeypatch.setattr("core.config._settings", settings)
    return settings


def produce(runner, *extra):
    return runner.invoke(main, [
        "produce",
        "--title", "Wet Streets",
        "--brief", "A detective investigates a murder in a rainy city",
        "--genre", "noir",
        "--minutes", "0.5",
        "--movie-id", "movie_cli",
        "--mock",
        *extra,
    ])


# ============================================================
# Main CLI Group
# ============================================================

class TestMainGroup:

    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Continuity Studio" in result.output
        for command in ("produce", "status", "cache", "providers", "secrets"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_unknown_command(self, runner):
        result = runner.invoke(main, ["nonexistent"])
        assert result.exit_code != 0


# ============================================================
# Produce
# ============================================================

class TestProduce:

    def test_requires_title_and_brief(self, runner):
        result = runner.invoke(main, ["produce", "--title", "x"])
        assert result.exit_code != 0
        assert "--brief" in result.output

    def test_mock_run_json(self, runner):
        result = produce(runner, "--json")

        assert result.exit_code == 0, result.output
        assert '"status": "completed"' in result.output
        assert '"movie_id": "movie_cli"' in result.output
        assert "mock-cdn.example.com/movies/movie_cli.mp4" in result.output

    def test_mock_run_table(self, runner):
        result = produce(runner)

        assert result.exit_code == 0, result.output
        assert "Wet Streets" in result.output
        assert "3/3 completed" in result.output

    def test_unknown_theme_falls_back(self, runner):
        result = produce(runner, "--theme", "plaid")
        assert result.exit_code == 0
        assert "Unknown theme" in result.output


# ============================================================
# Status / Cache
# ============================================================

class TestStatus:

    def test_unknown_movie(self, runner):
        result = runner.invoke(main, ["status", "nope"])
        assert result.exit_code != 0
        assert "Unknown movie" in result.output

    def test_movie_record_after_run(self, runner):
        produce(runner, "--json")

        result = runner.invoke(main, ["status", "movie_cli", "--json"])

        assert result.exit_code == 0
        record = json.loads(result.output)
        assert record["status"] == "completed"
        assert record["progress"] == 100
        assert set(record["scenes"]) == {"1", "2", "3"}

    def test_list_movies(self, runner):
        produce(runner, "--json")

        result = runner.invoke(main, ["status"])

        assert result.exit_code == 0
        assert "movie_cli" in result.output


class TestCache:

    def test_empty_cache(self, runner):
        result = runner.invoke(main, ["cache", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output) == []

    def test_entries_after_run(self, runner):
        produce(runner, "--json")

        result = runner.invoke(main, ["cache", "--json"])

        entries = json.loads(result.output)
        slugs = {e["location_slug"] for e in entries}
        assert "rain-soaked-downtown-street" in slugs
        assert all(e["time_of_day"] == "night" for e in entries)

    def test_location_filter(self, runner):
        produce(runner, "--json")

        result = runner.invoke(main, ["cache", "--json", "--location", "office"])

        entries = json.loads(result.output)
        assert [e["location_slug"] for e in entries] == ["detective-s-office"]


# ============================================================
# Providers / Secrets
# ============================================================

class TestProviders:

    def test_list_json(self, runner):
        result = runner.invoke(main, ["providers", "list", "--json"])

        assert result.exit_code == 0
        providers = json.loads(result.output)
        assert {p["category"] for p in providers} >= {"video", "image", "voice", "render"}
        assert all(p["status"] == "implemented" for p in providers)

    def test_check_unknown(self, runner):
        result = runner.invoke(main, ["providers", "check", "nope"])
        assert result.exit_code != 0
        assert "not found" in result.output


class TestSecrets:

    @pytest.mark.parametrize("given,expected", [
        ("runway", "RUNWAY_API_KEY"),
        ("ELEVENLABS_API_KEY", "ELEVENLABS_API_KEY"),
        ("custom_key", "CUSTOM_KEY"),
    ])
    def test_normalize_key_name(self, given, expected):
        assert normalize_key_name(given) == expected


class TestAgents:

    def test_list_json_in_pipeline_order(self, runner):
        result = runner.invoke(main, ["agents", "list", "--json"])

        assert result.exit_code == 0
        names = [a["name"] for a in json.loads(result.output)]
        assert names == [
            "planner", "screenwriter", "reference_resolver",
            "scene_video_generator", "dialogue_audio_generator", "assembler",
        ]

    def test_schema(self, runner):
        result = runner.invoke(main, ["agents", "schema", "assembler"])
        assert result.exit_code == 0
        assert "AssemblyResult" in result.output

    def test_schema_unknown(self, runner):
        result = runner.invoke(main, ["agents", "schema", "nope"])
        assert result.exit_code != 0


class TestTheme:

    def test_status_styles(self):
        t = THEMES["default"]
        assert t.for_status("completed") == t.success
        assert t.for_status("failed_real_assembly") == t.degraded
        assert t.for_status("failed") == t.error
        assert t.for_status(None) == t.error

    def test_source_styles(self):
        t = THEMES["neon"]
        assert t.for_source("previous_frame") == "bright_magenta"
        assert t.for_source("library") == "bright_green"
        assert t.for_source(None) == t.dimmed
        assert t.for_source("for_status") == t.dimmed

    def test_unknown_theme(self):
        with pytest.raises(ValueError):
            set_theme("plaid")


class TestSecretsCheck:

    @pytest.fixture(autouse=True)
    def no_keychain(self, monkeypatch):
        monkeypatch.setattr("core.config.get_api_key", lambda *args, **kwargs: None)

    def test_required_keys(self):
        assert "sync_api_key" not in required_keys(False)
        assert required_keys(True)[4] == "sync_api_key"

    def test_missing_keys(self, runner):
        result = runner.invoke(main, ["secrets", "check"])
        assert result.exit_code != 0
        assert "RUNWAY_API_KEY" in result.output

    def test_all_keys_present(self, runner, monkeypatch, isolated_settings):
        keyed = isolated_settings.model_copy(update={name: "k" for name in required_keys(True)})
        monkeypatch.setattr("core.config._settings", keyed)

        result = runner.invoke(main, ["secrets", "check", "--lipsync"])

        assert result.exit_code == 0, result.output
        assert "Ready for a live run" in result.output
