"""Tests for the slideflux CLI."""

import json
import subprocess
import sys

import pytest

import slideflux.__main__ as cli


@pytest.fixture(autouse=True)
def no_dotenv(monkeypatch):
    """Keep a developer .env out of CLI tests."""
    monkeypatch.setattr(cli, "load_dotenv", lambda: None)


@pytest.fixture
def content_file(tmp_path, sample_content):
    path = tmp_path / "slide.json"
    path.write_text(sample_content.model_dump_json(by_alias=True), encoding="utf-8")
    return path


class TestMain:
    """Tests for command dispatch."""

    @pytest.mark.unit
    def test_no_command(self, capsys):
        """No command prints help and fails."""
        assert cli.main([]) == 1
        assert "Usage: python -m slideflux" in capsys.readouterr().out

    @pytest.mark.unit
    def test_help(self, capsys):
        """--help prints help and succeeds."""
        assert cli.main(["--help"]) == 0
        assert "generate" in capsys.readouterr().out

    @pytest.mark.unit
    def test_unknown_command(self):
        """Unknown commands fail."""
        assert cli.main(["render"]) == 1

    @pytest.mark.integration
    def test_module_entry_point(self):
        """python -m slideflux runs as a module."""
        result = subprocess.run(
            [sys.executable, "-m", "slideflux", "--help"],
            capture_output=True,
            text=True,
            timeout=30,
        )
        assert result.returncode == 0
        assert "Usage: python -m slideflux" in result.stdout


class TestArchetypesCommand:
    """Tests for the archetypes command."""

    @pytest.mark.unit
    def test_lists_all(self, capsys):
        """Every archetype is listed."""
        assert cli.main(["archetypes"]) == 0
        out = capsys.readouterr().out
        assert "kpi_dashboard" in out
        assert "agenda_divider" in out
        assert len(out.strip().splitlines()) == 18


class TestEnvCommand:
    """Tests for the env command."""

    @pytest.mark.unit
    def test_masks_api_key(self, clean_flux_env, valid_keys, capsys):
        """The API key is never printed in full."""
        key = valid_keys["fal"]
        clean_flux_env.setenv("FLUX_PROVIDER", "fal")
        clean_flux_env.setenv("FLUX_API_KEY", key)

        assert cli.main(["env"]) == 0
        out = capsys.readouterr().out
        assert key not in out
        assert key[-4:] in out
        assert "FLUX_PROVIDER" in out
        assert "SLIDEFLUX_MAX_WORKERS" in out

    @pytest.mark.unit
    def test_category_filter(self, clean_flux_env, capsys):
        """--category limits the listing."""
        assert cli.main(["env", "--category", "runtime"]) == 0
        out = capsys.readouterr().out
        assert "SLIDEFLUX_LOG_LEVEL" in out
        assert "FLUX_API_KEY" not in out


class TestConfigCommand:
    """Tests for the config command."""

    @pytest.mark.unit
    def test_check_unconfigured(self, clean_flux_env, capsys):
        """Missing key is reported as invalid."""
        assert cli.main(["config", "check"]) == 1
        out = capsys.readouterr().out
        assert "FLUX_API_KEY environment variable is required" in out
        assert "Status: invalid" in out

    @pytest.mark.unit
    def test_check_valid(self, clean_flux_env, valid_keys, capsys):
        """A valid configuration passes and masks the key."""
        clean_flux_env.setenv("FLUX_PROVIDER", "bfl")
        clean_flux_env.setenv("FLUX_API_KEY", valid_keys["bfl"])

        assert cli.main(["config"]) == 0
        out = capsys.readouterr().out
        assert "Provider: bfl" in out
        assert "Status: valid" in out
        assert valid_keys["bfl"] not in out

    @pytest.mark.unit
    def test_help(self, capsys):
        """config help lists every provider."""
        assert cli.main(["config", "help"]) == 0
        out = capsys.readouterr().out
        assert "FLUX_PROVIDER=replicate" in out
        assert "FLUX_PROVIDER=bfl" in out


class TestGenerateCommand:
    """Tests for the generate command."""

    @pytest.mark.unit
    def test_requires_content_or_title(self):
        """Without content or title there is nothing to generate."""
        assert cli.main(["generate", "-a", "kpi_dashboard"]) == 1

    @pytest.mark.unit
    def test_dry_run_content(self, content_file, capsys):
        """--dry-run prints the enhanced prompt without generating."""
        code = cli.main(
            ["generate", "-c", str(content_file), "-a", "executive_summary", "--style", "bcg", "--dry-run"]
        )
        assert code == 0
        out = capsys.readouterr().out
        assert "Q3 Revenue Up 23%" in out
        assert "REQUIRED TEXT ELEMENTS" in out
        assert "Guidance: 8.0, steps: 30" in out

    @pytest.mark.unit
    def test_dry_run_quick(self, capsys):
        """A title alone builds the quick prompt."""
        code = cli.main(["generate", "-t", "Market entry options", "-a", "two_by_two_matrix", "--dry-run"])
        assert code == 0
        assert "Guidance: 7.0, steps: 25" in capsys.readouterr().out

    @pytest.mark.unit
    def test_invalid_content_file(self, tmp_path):
        """Malformed content fails cleanly."""
        path = tmp_path / "bad.json"
        path.write_text('{"complexityScore": 9}', encoding="utf-8")
        assert cli.main(["generate", "-c", str(path), "-a", "kpi_dashboard"]) == 1

    @pytest.mark.unit
    def test_missing_content_file(self, tmp_path):
        """A missing file fails cleanly."""
        assert cli.main(["generate", "-c", str(tmp_path / "nope.json"), "-a", "kpi_dashboard"]) == 1

    @pytest.mark.unit
    def test_unconfigured_generate(self, clean_flux_env, content_file, capsys):
        """Generation without a key reports the configuration error as JSON."""
        code = cli.main(["generate", "-c", str(content_file), "-a", "kpi_dashboard"])
        assert code == 1
        summary = json.loads(capsys.readouterr().out)
        assert summary["success"] is False
        assert summary["error_code"] == "config_invalid"
        assert summary["error"].startswith("Image generation is not configured")

    @pytest.mark.unit
    def test_unknown_archetype_rejected(self):
        """argparse rejects unknown archetypes."""
        with pytest.raises(SystemExit):
            cli.main(["generate", "-t", "x", "-a", "pie_chart"])
