"""Tests for environment settings."""

import pytest

from storefront import config
from storefront.config import Settings

ENV_VARS = (
    'DISCORD_TOKEN', 'DATABASE_PATH', 'STOCK_MESSAGES_PATH', 'AUTHORIZED_USERS',
    'PURCHASE_HISTORY_CHANNEL', 'PURCHASE_COOLDOWN', 'BUTTON_COOLDOWN',
    'STOCK_REFRESH_INTERVAL', 'STORE_NAME',
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the tests
    monkeypatch.setattr(config, 'load_dotenv', lambda: False)


def test_defaults():
    settings = Settings.from_env()

    assert settings.token is None
    assert settings.database_path == 'shop.db'
    assert settings.stock_messages_path == 'stock_messages.json'
    assert settings.authorized_users == frozenset()
    assert settings.purchase_history_channel is None
    assert settings.purchase_cooldown == 10
    assert settings.button_cooldown == 5
    assert settings.stock_refresh_interval == 60
    assert settings.store_name == 'Magaddon Store'


def test_values_from_environment(monkeypatch):
    monkeypatch.setenv('DISCORD_TOKEN', 'token')
    monkeypatch.setenv('AUTHORIZED_USERS', '111, 222,,333')
    monkeypatch.setenv('PURCHASE_HISTORY_CHANNEL', '999')
    monkeypatch.setenv('STOCK_REFRESH_INTERVAL', '30')
    monkeypatch.setenv('STORE_NAME', 'Test Store')

    settings = Settings.from_env()

    assert settings.token == 'token'
    assert settings.authorized_users == frozenset({111, 222, 333})
    assert settings.purchase_history_channel == 999
    assert settings.stock_refresh_interval == 30.0
    assert settings.store_name == 'Test Store'
    assert settings.is_authorized('222')
    assert not settings.is_authorized(444)


@pytest.mark.parametrize("name, value", [
    ('AUTHORIZED_USERS', '111,abc'),
    ('PURCHASE_HISTORY_CHANNEL', 'general'),
    ('PURCHASE_COOLDOWN', 'soon'),
    ('STOCK_REFRESH_INTERVAL', '0'),
])
def test_malformed_values_raise(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        Settings.from_env()
