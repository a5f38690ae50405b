"""Tests for the environment variable registry."""

import pytest

from .lib import (
    EnvConfig,
    EnvVar,
    get_environment,
    get_environment_info,
    list_environment_variables,
    mask_secret,
)

# =============================================================================
# Lookup
# =============================================================================


class TestGetEnvironment:
    """Precedence and parsing in get_environment."""

    @pytest.mark.unit
    def test_returns_default_when_not_set(self, monkeypatch):
        """Unset variable yields its declared default."""
        monkeypatch.delenv("SLIDEFLUX_MAX_WORKERS", raising=False)
        assert get_environment(EnvVar.SLIDEFLUX_MAX_WORKERS) == 3

    @pytest.mark.unit
    def test_override_takes_priority(self, monkeypatch):
        """Caller override beats the environment."""
        monkeypatch.setenv("FLUX_PROVIDER", "replicate")
        assert get_environment(EnvVar.FLUX_PROVIDER, override="bfl") == "bfl"

    @pytest.mark.unit
    def test_env_var_overrides_default(self, monkeypatch):
        """Environment beats the declared default."""
        monkeypatch.setenv("SLIDEFLUX_LOG_LEVEL", "DEBUG")
        assert get_environment(EnvVar.SLIDEFLUX_LOG_LEVEL) == "DEBUG"

    @pytest.mark.unit
    def test_int_type_conversion(self, monkeypatch):
        """Int variables are parsed from their string value."""
        monkeypatch.setenv("SLIDEFLUX_MAX_WORKERS", "8")
        result = get_environment(EnvVar.SLIDEFLUX_MAX_WORKERS)
        assert result == 8
        assert isinstance(result, int)

    @pytest.mark.unit
    def test_invalid_int_returns_default(self, monkeypatch):
        """Unparseable int falls back to the default."""
        monkeypatch.setenv("SLIDEFLUX_MAX_WORKERS", "many")
        assert get_environment(EnvVar.SLIDEFLUX_MAX_WORKERS) == 3

    @pytest.mark.unit
    def test_none_default_for_api_key(self, monkeypatch):
        """API key defaults to None when not set."""
        monkeypatch.delenv("FLUX_API_KEY", raising=False)
        assert get_environment(EnvVar.FLUX_API_KEY) is None

    @pytest.mark.unit
    def test_blank_string_counts_as_unset(self, monkeypatch):
        """Whitespace-only values fall back to the default."""
        monkeypatch.setenv("FLUX_MODEL", "   ")
        assert get_environment(EnvVar.FLUX_MODEL) is None


class TestGetEnvironmentInfo:
    """Variable declarations."""

    @pytest.mark.unit
    def test_returns_env_config(self):
        """Declaration carries name, default, type and category."""
        info = get_environment_info(EnvVar.FLUX_PROVIDER)
        assert isinstance(info, EnvConfig)
        assert info.name == "FLUX_PROVIDER"
        assert info.default is None
        assert info.var_type is str
        assert info.category == "provider"

    @pytest.mark.unit
    def test_api_key_is_secret(self):
        """Only the API key is flagged as secret."""
        secrets = [var for var in EnvVar if var.value.secret]
        assert secrets == [EnvVar.FLUX_API_KEY]


class TestListEnvironmentVariables:
    """Listing and category filtering."""

    @pytest.mark.unit
    def test_list_all(self):
        """No category returns every variable."""
        assert len(list_environment_variables()) == len(EnvVar)

    @pytest.mark.unit
    def test_filter_by_category(self):
        """Category filter returns only matching variables."""
        provider_vars = list_environment_variables("provider")
        assert EnvVar.FLUX_API_KEY in provider_vars
        assert EnvVar.SLIDEFLUX_LOG_LEVEL not in provider_vars

    @pytest.mark.unit
    def test_unknown_category_empty(self):
        """Unknown category yields an empty list."""
        assert list_environment_variables("nonexistent") == []


class TestMaskSecret:
    """Tests for secret masking."""

    @pytest.mark.unit
    def test_keeps_last_four(self):
        """Long secrets keep only the trailing characters."""
        masked = mask_secret("r8_abcdefghijklmnopqrstuvwxyz")
        assert masked.endswith("wxyz")
        assert "abcdef" not in masked

    @pytest.mark.unit
    def test_short_secret_fully_masked(self):
        """Short secrets are masked completely."""
        assert mask_secret("abc") == "***"

    @pytest.mark.unit
    def test_unset(self):
        """Empty values render as <unset>."""
        assert mask_secret(None) == "<unset>"
        assert mask_secret("") == "<unset>"
