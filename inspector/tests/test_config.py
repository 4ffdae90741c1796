import pytest
from pydantic import ValidationError

from inspector.app.config import InspectorSettings


def test_defaults():
    settings = InspectorSettings(_env_file=None)

    assert settings.rules_path is None
    assert settings.ads_txt_scheme == "https"
    assert settings.fetch_retry_attempts == 3
    assert settings.strict_ads_txt_parsing is False


def test_environment_prefix(monkeypatch):
    monkeypatch.setenv("INSPECTOR_ADS_TXT_SCHEME", "HTTP")
    monkeypatch.setenv("INSPECTOR_STRICT_ADS_TXT_PARSING", "true")

    settings = InspectorSettings(_env_file=None)

    assert settings.ads_txt_scheme == "http"
    assert settings.strict_ads_txt_parsing is True


def test_unsupported_scheme_is_rejected():
    with pytest.raises(ValidationError):
        InspectorSettings(_env_file=None, ads_txt_scheme="ftp")


def test_missing_rules_path_is_rejected(tmp_path):
    with pytest.raises(ValidationError):
        InspectorSettings(_env_file=None, rules_path=tmp_path / "nope.json")


def test_settings_are_immutable():
    settings = InspectorSettings(_env_file=None)

    with pytest.raises(ValidationError):
        settings.fetch_retry_attempts = 5
