import logging

import discord
from discord.ext import commands

from .commands import register_commands
from .cooldowns import CooldownTracker
from .db import Database
from .inventory import InventoryAllocator
from .ledger import BalanceLedger
from .purchase import PurchaseService
from .refresher import DisplayStore, StockDisplayRefresher
from .store import Store
from .ui import StockView, render_stock_message

_log = logging.getLogger(__name__)


class ShopBot(commands.Bot):
    """Application root: owns the store, the purchase core and all in-process state."""

    def __init__(self, settings):
        intents = discord.Intents.default()
        super().__init__(command_prefix='!', intents=intents)
        self.settings = settings
        self.db = Database(settings.database_path)
        self.store = Store(self.db)
        self.allocator = InventoryAllocator(self.db)
        self.ledger = BalanceLedger(self.db)
        self.purchases = PurchaseService(self.store, self.allocator, self.ledger, store_name=settings.store_name)
        self.purchase_cooldowns = CooldownTracker(settings.purchase_cooldown)
        self.button_cooldowns = CooldownTracker(settings.button_cooldown)
        self.stock_displays = StockDisplayRefresher(
            self.store.list_products_with_stock,
            render_stock_message,
            DisplayStore(settings.stock_messages_path),
            interval=settings.stock_refresh_interval,
        )
        # user id -> payload lines from an /addstock attachment awaiting a product choice
        self.pending_stock_files = {}
        self._displays_restored = False
        register_commands(self)

    async def setup_hook(self):
        await self.db.connect()
        await self.allocator.release_stale_reservations()
        self.add_view(StockView())
        try:
            synced = await self.tree.sync()
            _log.info("Successfully synced %d commands", len(synced))
        except discord.HTTPException as e:
            _log.error("Error syncing commands: %s", e)

    async def on_ready(self):
        guild = self.guilds[0] if self.guilds else None
        await self.change_presence(
            status=discord.Status.dnd,
            activity=discord.Activity(type=discord.ActivityType.watching, name=guild.name if guild else 'the shop'),
        )
        if not self._displays_restored:
            self._displays_restored = True
            await self.stock_displays.restore(self)
        _log.info("%s is ready! 🚀", self.user)

    async def close(self):
        self.stock_displays.close()
        await super().close()
        await self.db.close()
