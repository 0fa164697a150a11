import logging
from typing import Optional

import discord
from discord import app_commands

from .errors import AccountNotFound, OrderNotFound
from .formatting import WORLDLOCK, format_price
from .ids import account_id_for
from .store import parse_payloads
from .ui import (
    ALERT,
    AddStockView,
    ProductActionView,
    SetDepoModal,
    create_embed,
    is_admin,
    is_privileged,
    render_stock_message,
    reply_access_denied,
)

_log = logging.getLogger(__name__)


async def post_stock_display(bot, channel, listings):
    """Edit the channel's current stock message, or send a new one if there is none."""
    message = bot.stock_displays.message_for(channel.id)
    if message is not None:
        try:
            await message.edit(**render_stock_message(listings))
            return message
        except discord.NotFound:
            pass
    return await channel.send(**render_stock_message(listings))


async def show_stock(bot, interaction: discord.Interaction):
    """Post or refresh the live stock display in the invoking channel."""
    await interaction.response.defer(ephemeral=True)
    try:
        listings = await bot.store.list_products_with_stock()
    except Exception:
        _log.exception("Failed to fetch product stock")
        await interaction.edit_original_response(content='Failed to fetch product stock.')
        return
    if not listings:
        await interaction.edit_original_response(content='No products in stock.')
        return

    channel = interaction.channel
    if channel is None:
        await interaction.edit_original_response(content='This command can only be used in a text channel.')
        return
    try:
        message = await post_stock_display(bot, channel, listings)
    except discord.HTTPException as e:
        _log.warning("Could not post stock display in channel %s: %s", channel.id, e)
        await interaction.edit_original_response(
            content='Failed to post the stock list. Check my permissions in this channel.'
        )
        return
    bot.stock_displays.start(channel, message)
    await interaction.delete_original_response()


def register_commands(bot):
    """Attach the slash commands to ``bot.tree``."""

    @bot.tree.command(name="stock", description="Show the live product stock list 🏪")
    async def stock(interaction: discord.Interaction):
        if not is_privileged(interaction):
            await reply_access_denied(interaction)
            return
        await show_stock(bot, interaction)

    @bot.tree.command(name="addbalance", description="Add world locks to a user [Admin Only] 💰")
    @app_commands.describe(user="User to add balance to", amount="Amount to add")
    async def addbalance(interaction: discord.Interaction, user: discord.User, amount: int):
        if not is_privileged(interaction):
            await interaction.response.send_message("You do not have permission to use this command.", ephemeral=True)
            return
        if amount <= 0:
            await interaction.response.send_message("Amount must be greater than 0.", ephemeral=True)
            return
        try:
            balance = await bot.ledger.credit_deposit(account_id_for(user.id), amount)
        except AccountNotFound:
            await interaction.response.send_message("User not found in database.", ephemeral=True)
            return
        except Exception:
            _log.exception("Failed to add balance for user %s", user.id)
            await interaction.response.send_message("Failed to add balance.", ephemeral=True)
            return
        await interaction.response.send_message(
            f"Added {amount} WL to user {user}. New balance: {balance.balance} WL.", ephemeral=True
        )
        embed = create_embed(
            "Balance Added",
            f"• Successfully added **{amount}** {WORLDLOCK} to **{user.display_name}**.\n"
            f"• New Balance: **{balance.balance}** {WORLDLOCK}",
        )
        await interaction.channel.send(embed=embed)

    @bot.tree.command(name="addstock", description="Add stock to a product [Admin Only] 📦")
    @app_commands.describe(file="Text file with account details (one per line)")
    async def addstock(interaction: discord.Interaction, file: Optional[discord.Attachment] = None):
        if not is_privileged(interaction):
            await reply_access_denied(interaction)
            return
        listings = await bot.store.list_products_with_stock()
        if not listings:
            await interaction.response.send_message(
                f"{ALERT} No products found. Please create products first.", ephemeral=True
            )
            return

        embed = create_embed("Add Stock", "Select a product from the menu below to add stock.")
        embed.add_field(name="Available Products", value=f"{len(listings)} products found", inline=True)
        if file is not None:
            if not file.filename.endswith('.txt'):
                await interaction.response.send_message(f"{ALERT} Please upload a .txt file only.", ephemeral=True)
                return
            try:
                content = await file.read()
                payloads = parse_payloads(content.decode('utf-8'))
            except (discord.HTTPException, UnicodeDecodeError) as e:
                _log.warning("Failed to read stock file %s: %s", file.filename, e)
                await interaction.response.send_message(
                    f"{ALERT} Failed to read the uploaded file. Please try again.", ephemeral=True
                )
                return
            if not payloads:
                await interaction.response.send_message(
                    f"{ALERT} No account details found in the file. Please add some content to the file.",
                    ephemeral=True,
                )
                return
            bot.pending_stock_files[interaction.user.id] = payloads
            embed.add_field(
                name="📁 File Uploaded",
                value=f"**File:** {file.filename}\n**Account Lines:** {len(payloads)}",
                inline=False,
            )
        else:
            bot.pending_stock_files.pop(interaction.user.id, None)
            embed.add_field(name="Account Format", value="Any text format (one per line)", inline=False)
        await interaction.response.send_message(embed=embed, view=AddStockView(listings), ephemeral=True)

    @bot.tree.command(name="manageproduct", description="Manage products (Create, Read, Update, Delete)")
    async def manageproduct(interaction: discord.Interaction):
        if not is_admin(interaction.user):
            await reply_access_denied(interaction)
            return
        embed = create_embed("Product Management", "Select an action to manage products")
        embed.add_field(name="Create Product", value="Add a new product to the store", inline=True)
        embed.add_field(name="View Product", value="View details of an existing product", inline=True)
        embed.add_field(name="Update Product", value="Modify an existing product", inline=True)
        embed.add_field(name="Delete Product", value="Remove a product from the store", inline=True)
        await interaction.response.send_message(embed=embed, view=ProductActionView(), ephemeral=True)

    @bot.tree.command(name="setdepo", description="Set depo world, owner, and bot name [Admin Only]")
    async def setdepo(interaction: discord.Interaction):
        if not is_admin(interaction.user):
            await reply_access_denied(interaction)
            return
        await interaction.response.send_modal(SetDepoModal())

    @bot.tree.command(name="depo", description="Show the current world name for deposit 🌍")
    async def depo(interaction: discord.Interaction):
        try:
            info = await bot.store.get_deposit_info()
        except Exception:
            _log.exception("Failed to fetch the world name")
            await interaction.response.send_message("Failed to fetch the world name.", ephemeral=True)
            return
        if not info.world_name:
            await interaction.response.send_message("No world name is set for deposit.", ephemeral=True)
            return
        embed = create_embed("Deposit World", "Please deposit to the following world:")
        embed.add_field(name="World Name", value=f"```{info.world_name}```", inline=False)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @bot.tree.command(name="getusers", description="List registered users [Admin Only] 👥")
    async def getusers(interaction: discord.Interaction):
        if not is_privileged(interaction):
            await reply_access_denied(interaction)
            return
        accounts = await bot.store.list_accounts()
        if not accounts:
            await interaction.response.send_message("No users found.", ephemeral=True)
            return
        embed = create_embed("User List")
        for account in accounts[:10]:
            embed.add_field(
                name=account.username,
                value=f"ID: {account.id}\nGrowID: {account.alias or 'N/A'}",
                inline=False,
            )
        footer = f"Showing 10 of {len(accounts)} users" if len(accounts) > 10 else f"Total users: {len(accounts)}"
        embed.set_footer(text=footer)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @bot.tree.command(name="getuser", description="Show a registered user [Admin Only] 👤")
    @app_commands.describe(user="User to look up")
    async def getuser(interaction: discord.Interaction, user: discord.User):
        if not is_privileged(interaction):
            await reply_access_denied(interaction)
            return
        account = await bot.store.find_account(account_id_for(user.id))
        if account is None:
            await interaction.response.send_message("User not found.", ephemeral=True)
            return
        embed = create_embed("User Information", color=discord.Color.dark_red())
        embed.add_field(name="ID", value=account.id, inline=False)
        embed.add_field(name="Username", value=account.username, inline=True)
        embed.add_field(name="GrowID", value=account.alias or 'N/A', inline=True)
        embed.add_field(name="Email", value=account.email or 'N/A', inline=True)
        embed.add_field(name="Balance", value=format_price(account.balance), inline=True)
        embed.add_field(name="Total Spent", value=format_price(account.total_spent), inline=True)
        embed.add_field(name="Role", value=account.role, inline=True)
        orders = await bot.store.list_orders_for_account(account.id, limit=5)
        if orders:
            embed.add_field(
                name="Recent Orders",
                value='\n'.join(f"`{o.order_number}` {o.quantity}x #{o.product_id} ({o.status})" for o in orders),
                inline=False,
            )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @bot.tree.command(name="shopstats", description="Show shop statistics [Admin Only] 📊")
    async def shopstats(interaction: discord.Interaction):
        if not is_privileged(interaction):
            await reply_access_denied(interaction)
            return
        stats = await bot.store.shop_stats()
        embed = create_embed("Shop Statistics")
        embed.add_field(name="Products", value=str(stats.total_products), inline=True)
        embed.add_field(name="Active Listings", value=str(stats.active_listings), inline=True)
        embed.add_field(name="Orders", value=str(stats.order_count), inline=True)
        embed.add_field(name="Total Revenue", value=format_price(stats.total_revenue), inline=True)
        embed.add_field(name="Revenue Today", value=format_price(stats.revenue_today), inline=True)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @bot.tree.command(name="order", description="Look up an order by number [Admin Only] 🧾")
    @app_commands.describe(number="Order number, e.g. ORD-1700000000000-ab12cd34ef")
    async def order(interaction: discord.Interaction, number: str):
        if not is_privileged(interaction):
            await reply_access_denied(interaction)
            return
        try:
            found = await bot.store.get_order(number.strip())
        except OrderNotFound:
            await interaction.response.send_message(f"{ALERT} Order not found.", ephemeral=True)
            return
        embed = create_embed(f"Order {found.order_number}")
        embed.add_field(name="Account", value=found.account_id, inline=False)
        embed.add_field(name="Product", value=str(found.product_id), inline=True)
        embed.add_field(name="Quantity", value=str(found.quantity), inline=True)
        embed.add_field(name="Total", value=format_price(found.total_amount), inline=True)
        embed.add_field(name="Status", value=found.status, inline=True)
        embed.add_field(name="Created", value=discord.utils.format_dt(found.created_at), inline=True)
        units = await bot.store.units_for_order(found)
        sold = sum(1 for unit in units if unit.is_sold)
        embed.add_field(name="Units", value=f"{len(units)} delivered, {sold} marked sold", inline=True)
        if found.notes:
            embed.add_field(name="Notes", value=found.notes[:1024], inline=False)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @bot.tree.command(name="help", description="Show available commands 📚")
    async def help(interaction: discord.Interaction):
        embed = create_embed("Available Commands 📚", "Here are all the available commands:")
        commands = {
            "depo": "Show the current world name for deposit 🌍",
            "help": "Show this help message 📚",
        }
        if is_admin(interaction.user):
            commands.update({
                "stock": "Post the live stock list 🏪",
                "addbalance": "Credit a confirmed deposit 💰",
                "addstock": "Add items to a product's inventory 📦",
                "manageproduct": "Create, view, update or delete products 🛠️",
                "setdepo": "Set deposit world, owner and bot names 🌍",
                "getusers": "List registered users 👥",
                "getuser": "Show one registered user 👤",
                "shopstats": "Show shop statistics 📊",
                "order": "Look up an order by number 🧾",
            })
        for cmd, desc in commands.items():
            embed.add_field(name=f"/{cmd}", value=desc, inline=False)
        await interaction.response.send_message(embed=embed, ephemeral=True)
