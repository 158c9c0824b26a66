from __future__ import annotations

import pytest

from buildwatch.config import IntegrationSettings, expand_variables, load_settings


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    for name in ("BUILDWATCH_SETTINGS_PATH", "BUILDWATCH_PROJECT_URL", "BUILDWATCH_API_TOKEN", "BUILDWATCH_DEFINITION_FILTER"):
        monkeypatch.delenv(name, raising=False)


def test_read_from_accepts_snake_and_camel_case():
    snake = IntegrationSettings.read_from({"project_url": " https://ci.example/a ", "api_token": "t", "build_definition_filter": "ci"})
    camel = IntegrationSettings.read_from({"ProjectUrl": "https://ci.example/a", "ApiToken": "t", "BuildDefinitionFilter": "ci"})

    assert snake == camel
    assert snake.project_url == "https://ci.example/a"


def test_read_from_ignores_non_string_values():
    settings = IntegrationSettings.read_from({"project_url": 42, "api_token": None})

    assert settings.project_url == ""
    assert settings.is_valid() is False


def test_is_valid_requires_url_and_token():
    assert IntegrationSettings(project_url="https://ci.example", api_token="t").is_valid()
    assert not IntegrationSettings(project_url="https://ci.example", api_token=" ").is_valid()
    assert not IntegrationSettings(project_url="", api_token="t").is_valid()


def test_token_is_hidden_from_repr():
    assert "s3cret" not in repr(IntegrationSettings(project_url="https://ci.example", api_token="s3cret"))


def test_load_settings_from_explicit_file(tmp_path, monkeypatch):
    path = tmp_path / "settings.toml"
    path.write_text('[azure_devops]\nproject_url = "https://ci.example/org/proj"\napi_token = "abc"\nbuild_definition_filter = "*"\n', encoding="utf-8")
    monkeypatch.setenv("BUILDWATCH_DEFINITION_FILTER", "release-*")

    bundle = load_settings(path)

    assert bundle.source_path == path
    assert bundle.settings.project_url == "https://ci.example/org/proj"
    assert bundle.settings.api_token == "abc"
    assert bundle.settings.build_definition_filter == "release-*"


def test_load_settings_uses_env_path(tmp_path, monkeypatch):
    path = tmp_path / "custom.toml"
    path.write_text('[azure_devops]\nproject_url = "https://ci.example/x"\napi_token = "t"\n', encoding="utf-8")
    monkeypatch.setenv("BUILDWATCH_SETTINGS_PATH", str(path))

    bundle = load_settings()

    assert bundle.source_path == path
    assert bundle.settings.project_url == "https://ci.example/x"


def test_load_settings_falls_back_to_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("BUILDWATCH_SETTINGS_PATH", str(tmp_path / "missing.toml"))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BUILDWATCH_PROJECT_URL", "https://ci.example/env")
    monkeypatch.setenv("BUILDWATCH_API_TOKEN", "env-token")

    bundle = load_settings()

    assert bundle.source_path is None
    assert bundle.settings.project_url == "https://ci.example/env"
    assert bundle.settings.is_valid()


def test_load_settings_strict_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "missing.toml", strict=True)


def test_expand_variables():
    variables = {"ORG": "contoso", "PROJECT": "web"}

    assert expand_variables("https://dev.azure.com/${ORG}/$PROJECT", variables) == "https://dev.azure.com/contoso/web"
    assert expand_variables("https://dev.azure.com/$UNKNOWN", variables) == "https://dev.azure.com/$UNKNOWN"
