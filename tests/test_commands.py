"""Tests for the /stock command body."""

from unittest.mock import AsyncMock, Mock

import discord
import pytest

from storefront.commands import show_stock
from storefront.models import Product, ProductStock

LISTINGS = [ProductStock(Product(id=1, name='Netflix', code='NFX', description='Premium', price=100), 3)]


def make_bot(listings=LISTINGS, current_message=None):
    bot = Mock()
    bot.store.list_products_with_stock = AsyncMock(return_value=listings)
    bot.stock_displays.message_for = Mock(return_value=current_message)
    return bot


def make_interaction(channel):
    interaction = Mock()
    interaction.channel = channel
    interaction.response.defer = AsyncMock()
    interaction.edit_original_response = AsyncMock()
    interaction.delete_original_response = AsyncMock()
    return interaction


def make_channel(send_error=None):
    channel = Mock()
    channel.id = 111
    channel.send = AsyncMock(return_value=Mock(id=9001), side_effect=send_error)
    return channel


def reply_text(interaction):
    return interaction.edit_original_response.await_args.kwargs['content']


@pytest.mark.asyncio
async def test_stock_posts_and_starts_display():
    bot, channel = make_bot(), make_channel()
    interaction = make_interaction(channel)

    await show_stock(bot, interaction)

    channel.send.assert_awaited_once()
    bot.stock_displays.start.assert_called_once_with(channel, channel.send.return_value)
    interaction.delete_original_response.assert_awaited_once()


@pytest.mark.asyncio
async def test_stock_reuses_current_message():
    message = Mock()
    message.edit = AsyncMock()
    bot, channel = make_bot(current_message=message), make_channel()

    await show_stock(bot, make_interaction(channel))

    message.edit.assert_awaited_once()
    channel.send.assert_not_awaited()
    bot.stock_displays.start.assert_called_once_with(channel, message)


@pytest.mark.asyncio
async def test_stock_replaces_deleted_message():
    message = Mock()
    message.edit = AsyncMock(side_effect=discord.NotFound(Mock(status=404, reason='Not Found'),
                                                          {'code': 10008, 'message': 'Unknown Message'}))
    bot, channel = make_bot(current_message=message), make_channel()

    await show_stock(bot, make_interaction(channel))

    channel.send.assert_awaited_once()
    bot.stock_displays.start.assert_called_once_with(channel, channel.send.return_value)


@pytest.mark.asyncio
async def test_stock_reports_missing_send_permission():
    forbidden = discord.Forbidden(Mock(status=403, reason='Forbidden'), {'code': 50013, 'message': 'Missing Permissions'})
    bot, channel = make_bot(), make_channel(send_error=forbidden)
    interaction = make_interaction(channel)

    await show_stock(bot, interaction)

    assert 'Failed to post the stock list' in reply_text(interaction)
    bot.stock_displays.start.assert_not_called()
    interaction.delete_original_response.assert_not_awaited()


@pytest.mark.asyncio
async def test_stock_without_channel():
    bot = make_bot()
    interaction = make_interaction(None)

    await show_stock(bot, interaction)

    assert 'text channel' in reply_text(interaction)
    bot.stock_displays.start.assert_not_called()


@pytest.mark.asyncio
async def test_stock_with_empty_catalog():
    bot, channel = make_bot(listings=[]), make_channel()
    interaction = make_interaction(channel)

    await show_stock(bot, interaction)

    assert reply_text(interaction) == 'No products in stock.'
    channel.send.assert_not_awaited()
