import logging

from ado_bridge.core.config import Settings


def test_settings_load_from_env(monkeypatch):
    """Test that settings load correctly from environment variables."""
    monkeypatch.setenv("AZURE_DEVOPS_HOST", "ado.internal.example")
    monkeypatch.setenv("HTTP_TIMEOUT", "7.5")
    monkeypatch.setenv("SESSION_TTL_SECONDS", "3600")
    monkeypatch.setenv("WORK_ITEM_TYPES", '["Bug", "Task"]')
    monkeypatch.setenv("PORT", "9000")

    # We pass _env_file=None to ignore the .env file and rely on monkeypatch
    settings = Settings(_env_file=None)

    assert settings.AZURE_DEVOPS_HOST == "ado.internal.example"
    assert settings.HTTP_TIMEOUT == 7.5
    assert settings.SESSION_TTL_SECONDS == 3600
    assert settings.WORK_ITEM_TYPES == ["Bug", "Task"]
    assert settings.PORT == 9000


def test_settings_defaults(monkeypatch):
    """Test default values for optional settings."""
    for name in ("AZURE_DEVOPS_HOST", "SESSION_TTL_SECONDS", "WORK_ITEM_TYPES", "PORT"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.AZURE_DEVOPS_HOST == "dev.azure.com"
    assert settings.AZURE_DEVOPS_API_VERSION == "6.0"
    assert settings.SESSION_TTL_SECONDS is None
    assert settings.PORT == 8080
    assert settings.WORK_ITEM_TYPES == [
        "Product Backlog Item",
        "User Story",
        "Bug",
        "Epic",
        "Feature",
    ]


def test_get_log_level():
    assert Settings(_env_file=None, LOG_LEVEL="debug").get_log_level() == logging.DEBUG
    assert Settings(_env_file=None, LOG_LEVEL="bogus").get_log_level() == logging.INFO
