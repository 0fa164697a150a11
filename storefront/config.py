import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

DEFAULT_PURCHASE_COOLDOWN = 10
DEFAULT_BUTTON_COOLDOWN = 5
DEFAULT_STOCK_REFRESH_INTERVAL = 60


def _int_env(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _float_env(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return float(default)
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _id_list_env(name):
    raw = os.getenv(name, '')
    ids = set()
    for part in raw.split(','):
        part = part.strip()
        if not part:
            continue
        try:
            ids.add(int(part))
        except ValueError:
            raise ValueError(f"{name} must be a comma-separated list of ids, got {part!r}") from None
    return frozenset(ids)


@dataclass(frozen=True)
class Settings:
    token: Optional[str] = None
    database_path: str = 'shop.db'
    stock_messages_path: str = 'stock_messages.json'
    authorized_users: frozenset = field(default_factory=frozenset)
    purchase_history_channel: Optional[int] = None
    purchase_cooldown: float = float(DEFAULT_PURCHASE_COOLDOWN)
    button_cooldown: float = float(DEFAULT_BUTTON_COOLDOWN)
    stock_refresh_interval: float = float(DEFAULT_STOCK_REFRESH_INTERVAL)
    store_name: str = 'Magaddon Store'

    @classmethod
    def from_env(cls):
        # Load environment variables
        load_dotenv()
        history_channel = _int_env('PURCHASE_HISTORY_CHANNEL', None)
        return cls(
            token=os.getenv('DISCORD_TOKEN'),
            database_path=os.getenv('DATABASE_PATH', 'shop.db'),
            stock_messages_path=os.getenv('STOCK_MESSAGES_PATH', 'stock_messages.json'),
            authorized_users=_id_list_env('AUTHORIZED_USERS'),
            purchase_history_channel=history_channel,
            purchase_cooldown=_float_env('PURCHASE_COOLDOWN', DEFAULT_PURCHASE_COOLDOWN),
            button_cooldown=_float_env('BUTTON_COOLDOWN', DEFAULT_BUTTON_COOLDOWN),
            stock_refresh_interval=_float_env('STOCK_REFRESH_INTERVAL', DEFAULT_STOCK_REFRESH_INTERVAL),
            store_name=os.getenv('STORE_NAME', 'Magaddon Store'),
        )

    def is_authorized(self, user_id):
        return int(user_id) in self.authorized_users
