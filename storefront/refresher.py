"""Live stock display: one self-refreshing message per channel.

The channel -> message association is written to a JSON document so the
displays can be picked up again after a restart.
"""

import asyncio
import json
import logging
import os

import discord
from discord.ext import tasks

_log = logging.getLogger(__name__)

UNKNOWN_CHANNEL = 10003
UNKNOWN_MESSAGE = 10008
EMPTY_TEXT = 'No products in stock.'


class DisplayStore:
    """The persisted ``{channel_id: {channel_id, message_id}}`` document."""

    def __init__(self, path='stock_messages.json'):
        self.path = path

    def load(self):
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            _log.warning("Could not read %s, starting with no displays: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            _log.warning("Ignoring malformed display map in %s", self.path)
            return {}
        return data

    def save(self, data):
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, 'w') as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)

    def put(self, channel_id, message_id):
        data = self.load()
        data[str(channel_id)] = {'channel_id': str(channel_id), 'message_id': str(message_id)}
        self.save(data)

    def remove(self, channel_id):
        data = self.load()
        if data.pop(str(channel_id), None) is not None:
            self.save(data)

    def clear(self):
        self.save({})


class _Display:
    def __init__(self, channel_id, message, loop):
        self.channel_id = channel_id
        self.message = message
        self.loop = loop


class StockDisplayRefresher:
    """Keeps at most one refresh timer per channel.

    ``fetch_catalog`` returns the live product snapshot and ``render`` turns
    a non-empty snapshot into keyword arguments for ``Message.edit``.
    """

    def __init__(self, fetch_catalog, render, display_store, interval=60.0):
        self.fetch_catalog = fetch_catalog
        self.render = render
        self.display_store = display_store
        self.interval = float(interval)
        self._displays = {}

    def is_active(self, channel_id):
        return channel_id in self._displays

    @property
    def active_channels(self):
        return sorted(self._displays)

    def message_for(self, channel_id):
        display = self._displays.get(channel_id)
        return display.message if display else None

    def start(self, channel, message):
        self._cancel(channel.id)
        self.display_store.put(channel.id, message.id)

        loop = tasks.loop(seconds=self.interval)(self._tick)

        async def wait_first_interval():
            await asyncio.sleep(self.interval)

        loop.before_loop(wait_first_interval)
        self._displays[channel.id] = _Display(channel.id, message, loop)
        loop.start(channel.id)
        _log.info("Stock display active in channel %s (message %s)", channel.id, message.id)

    def stop(self, channel_id):
        """Stop refreshing a channel and forget its persisted message."""
        self._cancel(channel_id)
        self.display_store.remove(channel_id)

    def close(self):
        """Cancel every timer, keeping the persisted map for the next start."""
        for channel_id in list(self._displays):
            self._cancel(channel_id)

    def _cancel(self, channel_id):
        display = self._displays.pop(channel_id, None)
        if display is not None:
            display.loop.cancel()

    async def _tick(self, channel_id):
        await self.refresh(channel_id)

    async def refresh(self, channel_id):
        """Re-render the display for one channel. Returns True if the message was edited."""
        display = self._displays.get(channel_id)
        if display is None:
            return False
        try:
            listings = await self.fetch_catalog()
            if not listings:
                await display.message.edit(content=EMPTY_TEXT, embed=None, view=None)
            else:
                await display.message.edit(**self.render(listings))
        except discord.NotFound as e:
            if e.code in (UNKNOWN_MESSAGE, UNKNOWN_CHANNEL):
                self._heal(display)
            else:
                _log.warning("Stock display refresh failed in channel %s: %s", channel_id, e)
            return False
        except Exception as e:
            _log.warning("Stock display refresh failed in channel %s: %s", channel_id, e)
            return False
        return True

    def _heal(self, display):
        # A newer display may already own this channel
        if self._displays.get(display.channel_id) is display:
            del self._displays[display.channel_id]
            self.display_store.remove(display.channel_id)
        display.loop.stop()
        _log.warning("Stock message not found for channel %s, removed entry and stopped auto-update.",
                     display.channel_id)

    async def restore(self, client):
        """Resume every persisted display; entries that cannot be resolved are dropped."""
        restored = 0
        for key, entry in self.display_store.load().items():
            try:
                channel_id = int(entry['channel_id'])
                message_id = int(entry['message_id'])
                channel = client.get_channel(channel_id) or await client.fetch_channel(channel_id)
                if not isinstance(channel, discord.abc.Messageable):
                    raise TypeError(f"channel {channel_id} is not text based")
                message = await channel.fetch_message(message_id)
            except Exception as e:
                _log.warning("Dropping stock display for channel %s: %s", key, e)
                self.display_store.remove(key)
                continue
            self.start(channel, message)
            restored += 1
        if restored:
            _log.info("Restored %d stock displays", restored)
        return restored
