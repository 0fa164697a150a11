import logging

import discord

from .delivery import DirectMessageDelivery, PurchaseLogAnnouncer, REDARROW
from .errors import (
    AccountNotFound,
    DeliveryFailed,
    InsufficientBalance,
    InsufficientStock,
    InvalidInput,
    InvalidQuantity,
    NotFound,
    ProductNotFound,
    ShopError,
)
from .formatting import WORLDLOCK, format_number, format_price, spend_badge
from .ids import account_id_for
from .store import parse_payloads

_log = logging.getLogger(__name__)

ACROWN = '<:owner:1240203671548203049>'
CHAR = '<:char:1239164095396319252>'
MCWORLD = '<:mcworld:1240203040317767739>'
DONATION = '<:donation:1240203351552397352>'
ALERT = '⚠️'
CHECK = '✅'
BULLET = '•'
SEPARATOR = '--------------------------------------------'
STOCK_IMAGE_URL = 'https://media.discordapp.net/attachments/1225818847672537139/1251395315697979393/standard.gif'

HOW_TO_BUY = (
    f"{ALERT} **HOW TO BUY** {ALERT}\n"
    f"{BULLET} Click Button **Set GrowID**\n"
    f"{BULLET} Click Button **My Info** To Check Your Information\n"
    f"{BULLET} Click Button **Deposit** To See World Deposit\n"
    f"{BULLET} Click Button **Buy** For Buying The Items"
)


def create_embed(title, description=None, color=discord.Color.red(), footer=None):
    embed = discord.Embed(title=title, description=description, color=color)
    if footer:
        embed.set_footer(text=footer)
    return embed


def _clip(text, limit=100):
    text = str(text)
    return text if len(text) <= limit else text[:limit - 1] + '…'


def is_admin(member):
    return isinstance(member, discord.Member) and member.guild_permissions.administrator


def is_privileged(interaction: discord.Interaction):
    return is_admin(interaction.user) and interaction.client.settings.is_authorized(interaction.user.id)


async def reply_access_denied(interaction: discord.Interaction):
    embed = create_embed('🚫 Access Denied', 'You do not have permission to use this command.')
    await interaction.response.send_message(embed=embed, ephemeral=True)


async def send_ephemeral(interaction: discord.Interaction, content=None, **kwargs):
    if interaction.response.is_done():
        await interaction.followup.send(content, ephemeral=True, **kwargs)
    else:
        await interaction.response.send_message(content, ephemeral=True, **kwargs)


def purchase_error_message(error):
    if isinstance(error, InvalidQuantity):
        return f"{ALERT} Invalid quantity. Please enter a number between 1 and 99999."
    if isinstance(error, ProductNotFound):
        return f"{ALERT} Product not found. Please try selecting a different product."
    if isinstance(error, AccountNotFound):
        return f"{ALERT} User account not found. Please set your GrowID first."
    if isinstance(error, InsufficientBalance):
        return (f"{ALERT} You don't have enough World Locks for this purchase. "
                f"You need {format_price(error.shortfall)} more.")
    if isinstance(error, InsufficientStock):
        return (f"{ALERT} Not enough stock available. Only {error.available} available. "
                f"Please try a smaller quantity or check back later.")
    if isinstance(error, DeliveryFailed):
        return (f"{ALERT} Failed to send you a DM. Please make sure your DMs are open and try again. "
                f"No World Locks were deducted.")
    return f"{ALERT} An error occurred while processing your purchase. Please try again or contact support."


def purchase_success_message(result):
    if result.settled:
        text = (f"{CHECK} Purchase successful! You bought **{result.quantity}x {result.product.name.upper()}** "
                f"for {format_price(result.total_price)}. Check your DMs for your items.")
    else:
        text = (f"{CHECK} Your **{result.quantity}x {result.product.name.upper()}** has been sent to your DMs. "
                f"Your balance has not been charged yet; staff will settle this order.")
    if result.degraded:
        text += (f"\n{ALERT} We could not finish recording the order "
                 f"(`{result.order_number}`). Staff have been notified. Details: {result.detail}")
    return text


def render_stock_message(listings, now=None):
    """Keyword arguments for sending or editing the live stock display."""
    last_update = discord.utils.format_dt(now or discord.utils.utcnow(), 'R')
    lines = []
    for listing in listings:
        product = listing.product
        lines.append(
            f"{ACROWN} **{product.name.upper()}** {ACROWN}\n"
            f"{BULLET} Code: `{product.code or product.id}`\n"
            f"{BULLET} Stock: **{listing.stock}**\n"
            f"{BULLET} Price: **{format_price(product.price)}**\n"
            f"{BULLET} Description: {product.description or 'No description'}\n"
            f"{SEPARATOR}"
        )
    embed = discord.Embed(
        title='PRODUCT LIST',
        description=f"Last Update: {last_update}\n{SEPARATOR}\n" + '\n'.join(lines) + '\n' + HOW_TO_BUY,
        color=discord.Color.red(),
    )
    embed.set_image(url=STOCK_IMAGE_URL)
    return {'content': None, 'embed': embed, 'view': StockView()}


def registration_embed(interaction: discord.Interaction, next_step):
    embed = create_embed('❌ Registration Required', "It looks like you haven't registered yet. Let's get you started!")
    embed.add_field(
        name='🔧 What to do next:',
        value='\n'.join([
            '• Click the button below to set your GrowID',
            '• Make sure your GrowID is correct',
            f'• {next_step}',
        ]),
        inline=False,
    )
    embed.set_footer(text='Need help? Contact our support team', icon_url=interaction.client.user.display_avatar.url)
    embed.timestamp = discord.utils.utcnow()
    return embed


class SetGrowIdView(discord.ui.View):
    def __init__(self):
        super().__init__(timeout=300)

    @discord.ui.button(label='Set GrowID', style=discord.ButtonStyle.secondary, emoji=CHAR)
    async def set_growid(self, interaction: discord.Interaction, button: discord.ui.Button):
        await open_growid_modal(interaction)


async def open_growid_modal(interaction: discord.Interaction):
    account = await interaction.client.store.find_account(account_id_for(interaction.user.id))
    await interaction.response.send_modal(SetGrowIdModal(ask_email=account is None))


class SetGrowIdModal(discord.ui.Modal):
    def __init__(self, ask_email=True):
        super().__init__(title='Set GrowID')
        self.growid = discord.ui.TextInput(label='GrowID', style=discord.TextStyle.short, required=True, max_length=64)
        self.add_item(self.growid)
        self.email = None
        if ask_email:
            self.email = discord.ui.TextInput(
                label='Email (optional, for website login)',
                style=discord.TextStyle.short,
                required=False,
                max_length=254,
            )
            self.add_item(self.email)

    async def on_submit(self, interaction: discord.Interaction):
        bot = interaction.client
        growid = self.growid.value.strip()
        email = self.email.value.strip() if self.email is not None else None
        try:
            account, created = await bot.store.register_account(
                account_id_for(interaction.user.id), interaction.user.name, growid, email
            )
        except InvalidInput:
            await interaction.response.send_message(f"{ALERT} GrowID must not be empty.", ephemeral=True)
            return
        except Exception:
            _log.exception("Error setting GrowID for user %s", interaction.user.id)
            await interaction.response.send_message(
                f"{ALERT} Failed to set GrowID. Please try again or contact support.", ephemeral=True
            )
            return
        description = f"{REDARROW} Your GrowID has been set to **{account.alias}**"
        if email:
            description += f"\n{REDARROW} Email: **{email}**"
        title = f"{CHECK} Registration Complete" if created else f"{CHECK} GrowID Updated"
        embed = create_embed(title, description, footer=f"{bot.settings.store_name} • Registration")
        embed.timestamp = discord.utils.utcnow()
        await interaction.response.send_message(embed=embed, ephemeral=True)


class StockView(discord.ui.View):
    """Buttons under the stock display. Persistent across restarts."""

    def __init__(self):
        super().__init__(timeout=None)

    async def interaction_check(self, interaction: discord.Interaction):
        cooldowns = interaction.client.button_cooldowns
        button_id = (interaction.data or {}).get('custom_id', 'unknown')
        if not cooldowns.try_acquire(interaction.user.id, button_id):
            seconds = cooldowns.remaining_seconds(interaction.user.id, button_id)
            await interaction.response.send_message(
                f"{ALERT} Please wait **{seconds} seconds** before using this button again.", ephemeral=True
            )
            return False
        return True

    @discord.ui.button(label='Buy', style=discord.ButtonStyle.secondary, emoji='🛒', custom_id='buy')
    async def buy(self, interaction: discord.Interaction, button: discord.ui.Button):
        bot = interaction.client
        try:
            account = await bot.store.find_account(account_id_for(interaction.user.id))
            if account is None:
                await interaction.response.send_message(
                    embed=registration_embed(interaction, 'Then you can access product purchases'),
                    view=SetGrowIdView(),
                    ephemeral=True,
                )
                return
            listings = await bot.store.list_products_with_stock()
            if not listings:
                await interaction.response.send_message('No products available.', ephemeral=True)
                return
            await interaction.response.send_message(
                'Select a product to buy:', view=BuyProductView(listings), ephemeral=True
            )
        except Exception:
            _log.exception("Error in buy button handler")
            await send_ephemeral(
                interaction, 'An error occurred while starting your purchase. Please try again or contact support.'
            )

    @discord.ui.button(label='Set GrowID', style=discord.ButtonStyle.secondary, emoji=CHAR, custom_id='set_growid')
    async def set_growid(self, interaction: discord.Interaction, button: discord.ui.Button):
        await open_growid_modal(interaction)

    @discord.ui.button(label='My Info', style=discord.ButtonStyle.secondary, emoji='ℹ️', custom_id='my_info')
    async def my_info(self, interaction: discord.Interaction, button: discord.ui.Button):
        bot = interaction.client
        try:
            account = await bot.store.find_account(account_id_for(interaction.user.id))
        except Exception:
            _log.exception("User info fetch error")
            await send_ephemeral(interaction, f"{ALERT} We encountered an issue while fetching your information.")
            return
        if account is None:
            await interaction.response.send_message(
                embed=registration_embed(interaction, 'Start enjoying our services!'),
                view=SetGrowIdView(),
                ephemeral=True,
            )
            return
        await interaction.response.send_message(embed=account_embed(interaction, account), ephemeral=True)

    @discord.ui.button(label='Deposit', style=discord.ButtonStyle.secondary, emoji=MCWORLD, custom_id='deposit')
    async def deposit(self, interaction: discord.Interaction, button: discord.ui.Button):
        bot = interaction.client
        try:
            account = await bot.store.find_account(account_id_for(interaction.user.id))
            if account is None:
                await interaction.response.send_message(
                    embed=registration_embed(interaction, 'Then you can access deposit information'),
                    view=SetGrowIdView(),
                    ephemeral=True,
                )
                return
            info = await bot.store.get_deposit_info()
        except Exception:
            _log.exception("Deposit info fetch error")
            await send_ephemeral(interaction, f"{ALERT} We encountered an issue while fetching deposit information.")
            return
        await interaction.response.send_message(embed=deposit_embed(interaction, info), ephemeral=True)


def account_embed(interaction: discord.Interaction, account):
    store_name = interaction.client.settings.store_name
    embed = discord.Embed(title=f"{interaction.user.display_name}'s Information", color=discord.Color.red())
    embed.set_thumbnail(url=interaction.user.display_avatar.url)
    embed.add_field(name=f"{CHAR} GrowID", value=f"```yaml\n{account.alias or 'Not Set'}\n```", inline=True)
    embed.add_field(name=f"{WORLDLOCK} World Locks", value=f"```css\n{format_number(account.balance)} WL\n```", inline=True)
    embed.add_field(name='🛒 Total Spent', value=f"```css\n{format_number(account.total_spent)} WL\n```", inline=True)
    embed.add_field(
        name='🟢 Account Stats',
        value='\n'.join([
            f"• **Status:** {spend_badge(account.total_spent)}",
            f"• **Account Type:** {account.role.capitalize()}",
            f"• **Member Since:** {discord.utils.format_dt(account.created_at, 'R')}",
        ]),
        inline=False,
    )
    embed.set_footer(text=f"{store_name} • Your trusted marketplace")
    embed.timestamp = discord.utils.utcnow()
    return embed


def deposit_embed(interaction: discord.Interaction, info):
    store_name = interaction.client.settings.store_name
    world = info.world_name or 'Not set'
    embed = discord.Embed(
        title=f"{interaction.user.display_name}'s Deposit Instructions",
        description=(
            f"• **Depo World**: `{world}` {DONATION}\n"
            f"• **Owner Name**: `{info.owner_name or 'Not set'}` {ACROWN}\n"
            f"• **Bot Name**: `{info.bot_name or 'Not set'}` {CHAR}"
        ),
        color=discord.Color.red(),
    )
    embed.add_field(
        name='🛒 Deposit Instructions',
        value='\n'.join([
            f"• **Step 1:** Visit the world `{world}`",
            '• **Step 2:** Place your World Locks to donation box',
            '• **Step 3:** Take a screenshot as proof',
            '• **Step 4:** Wait for automatic processing',
        ]),
        inline=False,
    )
    embed.add_field(
        name=f"{ALERT} Important Notes",
        value='\n'.join([
            '• **Always screenshot** your deposit for proof',
            '• Processing time: Usually within **5-10 minutes**',
            "• Contact support if your deposit isn't processed",
            "• Only deposit World Locks, other items won't be credited",
        ]),
        inline=False,
    )
    embed.set_footer(text=f"{store_name} • Your trusted marketplace")
    embed.timestamp = discord.utils.utcnow()
    return embed


def product_options(listings, with_price=True):
    options = []
    for listing in listings[:25]:
        label = f"{listing.name} ({listing.stock} in stock)"
        if with_price:
            label += f" - {listing.price} WL"
        options.append(discord.SelectOption(
            label=_clip(label),
            value=str(listing.id),
            description=_clip(f"Code: {listing.code}"),
        ))
    return options


class BuyProductView(discord.ui.View):
    def __init__(self, listings):
        super().__init__(timeout=180)
        self.add_item(BuyProductSelect(listings))


class BuyProductSelect(discord.ui.Select):
    def __init__(self, listings):
        super().__init__(placeholder='Select a product to buy', min_values=1, max_values=1,
                         options=product_options(listings))

    async def callback(self, interaction: discord.Interaction):
        try:
            listing = await interaction.client.store.get_product_with_stock(int(self.values[0]))
        except NotFound:
            await interaction.response.send_message('Product not found.', ephemeral=True)
            return
        except Exception:
            _log.exception("Error in buy product select")
            await interaction.response.send_message(
                'An error occurred while processing your product selection.', ephemeral=True
            )
            return
        await interaction.response.send_modal(BuyQuantityModal(listing))


class BuyQuantityModal(discord.ui.Modal):
    def __init__(self, listing):
        super().__init__(title=_clip(f"Buy: {listing.name}", 45))
        self.product_id = listing.id
        self.quantity = discord.ui.TextInput(
            label=_clip(f"How many would you like to buy? Stock: {listing.stock}", 45),
            style=discord.TextStyle.short,
            min_length=1,
            max_length=6,
            default='1',
            required=True,
        )
        self.add_item(self.quantity)

    async def on_submit(self, interaction: discord.Interaction):
        bot = interaction.client
        user_id = interaction.user.id
        cooldowns = bot.purchase_cooldowns
        if not cooldowns.try_acquire(user_id, 'purchase'):
            seconds = cooldowns.remaining_seconds(user_id, 'purchase')
            await interaction.response.send_message(
                f"{ALERT} Please wait **{seconds} seconds** before making another purchase.", ephemeral=True
            )
            return

        # Delivery and settlement can outlive the initial response window
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            result = await bot.purchases.purchase(
                account_id_for(user_id),
                self.product_id,
                self.quantity.value,
                DirectMessageDelivery(interaction.user),
            )
        except ShopError as e:
            await interaction.followup.send(purchase_error_message(e), ephemeral=True)
            return
        except Exception as e:
            _log.exception("Error processing purchase for user %s product %s", user_id, self.product_id)
            await interaction.followup.send(purchase_error_message(e), ephemeral=True)
            return

        await interaction.followup.send(purchase_success_message(result), ephemeral=True)
        await bot.purchases.announce(result, make_announcer(bot, interaction))


class ProductActionView(discord.ui.View):
    def __init__(self):
        super().__init__(timeout=300)
        self.add_item(ProductActionSelect())


class ProductActionSelect(discord.ui.Select):
    def __init__(self):
        options = [
            discord.SelectOption(label='Create Product', value='create', description='Add a new product to the store', emoji='➕'),
            discord.SelectOption(label='View Product', value='read', description='View details of an existing product', emoji='👁️'),
            discord.SelectOption(label='Update Product', value='update', description='Modify an existing product', emoji='📝'),
            discord.SelectOption(label='Delete Product', value='delete', description='Remove a product from the store', emoji='🗑️'),
        ]
        super().__init__(placeholder='Select an action', min_values=1, max_values=1, options=options)

    async def callback(self, interaction: discord.Interaction):
        if not is_admin(interaction.user):
            await reply_access_denied(interaction)
            return
        action = self.values[0]
        if action == 'create':
            await interaction.response.send_modal(ProductModal())
            return
        listings = await interaction.client.store.list_products_with_stock()
        if not listings:
            await interaction.response.send_message('No products available.', ephemeral=True)
            return
        prompts = {
            'read': 'Select a product to view:',
            'update': 'Select a product to update:',
            'delete': f"{ALERT} **Warning**: This action cannot be undone. Select a product to delete:",
        }
        await interaction.response.send_message(
            prompts[action], view=ProductPickView(listings, action), ephemeral=True
        )


class ProductPickView(discord.ui.View):
    def __init__(self, listings, action):
        super().__init__(timeout=300)
        self.add_item(ProductPickSelect(listings, action))


class ProductPickSelect(discord.ui.Select):
    def __init__(self, listings, action):
        self.action = action
        placeholders = {'read': 'Select a product to view', 'update': 'Select a product to update',
                        'delete': 'Select a product to delete'}
        super().__init__(placeholder=placeholders[action], min_values=1, max_values=1,
                         options=product_options(listings, with_price=False))

    async def callback(self, interaction: discord.Interaction):
        if not is_admin(interaction.user):
            await reply_access_denied(interaction)
            return
        store = interaction.client.store
        product_id = int(self.values[0])
        try:
            if self.action == 'read':
                listing = await store.get_product_with_stock(product_id)
                await interaction.response.send_message(embed=product_embed(listing), ephemeral=True)
            elif self.action == 'update':
                product = await store.get_product(product_id)
                await interaction.response.send_modal(ProductModal(product))
            else:
                deleted = await store.delete_product(product_id)
                await interaction.response.send_message(
                    f"Product '{deleted.name}' (Stock: {deleted.stock}) has been deleted successfully!", ephemeral=True
                )
        except Exception:
            _log.exception("Error handling product %s for action %s", product_id, self.action)
            await send_ephemeral(interaction, 'Failed to process the product. Please try again or contact support.')


def product_embed(listing):
    product = listing.product
    embed = create_embed('Product Details')
    embed.add_field(name='Name', value=product.name, inline=True)
    embed.add_field(name='Code', value=product.code, inline=True)
    embed.add_field(name='Price', value=format_price(product.price), inline=True)
    embed.add_field(name='Stock', value=str(listing.stock), inline=True)
    embed.add_field(name='Description', value=product.description or 'No description', inline=False)
    if product.image:
        embed.set_thumbnail(url=product.image)
    return embed


class ProductModal(discord.ui.Modal):
    """Create a product, or update ``product`` when one is given."""

    def __init__(self, product=None):
        super().__init__(title='Update Product' if product else 'Create New Product')
        self.product = product
        self.name = discord.ui.TextInput(label='Product Name', required=True, max_length=100,
                                         default=product.name if product else None)
        self.code = discord.ui.TextInput(label='Product Code', required=True, max_length=50,
                                         default=product.code if product else None)
        self.description = discord.ui.TextInput(label='Product Description', style=discord.TextStyle.paragraph,
                                                required=True, max_length=1000,
                                                default=product.description if product else None)
        self.price = discord.ui.TextInput(label='Price (in World Locks)', required=True, max_length=12,
                                          default=str(product.price) if product else None)
        for item in (self.name, self.code, self.description, self.price):
            self.add_item(item)

    async def on_submit(self, interaction: discord.Interaction):
        if not is_admin(interaction.user):
            await reply_access_denied(interaction)
            return
        store = interaction.client.store
        fields = {
            'name': self.name.value.strip(),
            'code': self.code.value.strip(),
            'description': self.description.value.strip(),
            'price': self.price.value,
        }
        try:
            if self.product is None:
                product = await store.create_product(**fields)
                title, text = f"{CHECK} Product Created", 'A new product has been added successfully!'
            else:
                product = await store.update_product(self.product.id, **fields)
                title, text = f"{CHECK} Product Updated", 'Product has been updated successfully!'
        except InvalidInput:
            await interaction.response.send_message(
                f"{ALERT} Invalid price. Please enter a valid number.", ephemeral=True
            )
            return
        except Exception:
            _log.exception("Error saving product")
            await interaction.response.send_message(
                f"{ALERT} Failed to save product. Please try again or contact support.", ephemeral=True
            )
            return
        embed = create_embed(title, f"{REDARROW} {text}",
                             footer=f"{interaction.client.settings.store_name} • Product Management")
        embed.add_field(name='Name', value=product.name.upper(), inline=True)
        embed.add_field(name='Code', value=product.code.upper(), inline=True)
        embed.add_field(name='Price', value=format_price(product.price), inline=True)
        embed.add_field(name='Description', value=product.description or 'No description', inline=False)
        if product.image:
            embed.set_thumbnail(url=product.image)
        await interaction.response.send_message(embed=embed, ephemeral=True)


class AddStockView(discord.ui.View):
    def __init__(self, listings):
        super().__init__(timeout=300)
        self.add_item(AddStockSelect(listings))


class AddStockSelect(discord.ui.Select):
    def __init__(self, listings):
        options = [
            discord.SelectOption(
                label=_clip(f"{listing.name} ({listing.code})"),
                value=str(listing.id),
                description=_clip(f"Price: {listing.price} WL | Current Stock: {listing.stock}"),
            )
            for listing in listings[:25]
        ]
        super().__init__(placeholder='Select a product to add stock to', min_values=1, max_values=1, options=options)

    async def callback(self, interaction: discord.Interaction):
        if not is_privileged(interaction):
            await reply_access_denied(interaction)
            return
        bot = interaction.client
        product_id = int(self.values[0])
        payloads = bot.pending_stock_files.pop(interaction.user.id, None)
        if payloads is None:
            try:
                product = await bot.store.get_product(product_id)
            except NotFound:
                await interaction.response.send_message(f"{ALERT} Product not found.", ephemeral=True)
                return
            await interaction.response.send_modal(AddStockModal(product))
            return
        await add_stock(interaction, product_id, payloads)


class AddStockModal(discord.ui.Modal):
    def __init__(self, product):
        super().__init__(title=_clip(f"Add Stock: {product.name}", 45))
        self.product_id = product.id
        self.account_details = discord.ui.TextInput(
            label='Account details (one per line)',
            style=discord.TextStyle.paragraph,
            required=True,
            max_length=4000,
        )
        self.add_item(self.account_details)

    async def on_submit(self, interaction: discord.Interaction):
        if not is_privileged(interaction):
            await reply_access_denied(interaction)
            return
        await add_stock(interaction, self.product_id, parse_payloads(self.account_details.value))


async def add_stock(interaction: discord.Interaction, product_id, payloads):
    store = interaction.client.store
    try:
        added, total = await store.add_inventory(product_id, payloads)
        product = await store.get_product(product_id)
    except InvalidInput:
        await send_ephemeral(interaction, f"{ALERT} No account details found. Please add some content.")
        return
    except ProductNotFound:
        await send_ephemeral(interaction, f"{ALERT} Product not found.")
        return
    except Exception:
        _log.exception("Error adding stock to product %s", product_id)
        await send_ephemeral(interaction, f"{ALERT} An error occurred while adding stock. Please try again or contact support.")
        return
    embed = create_embed(f"{CHECK} Stock Updated", f"{REDARROW} Stock added to **{product.name.upper()}**")
    embed.add_field(name='Added Items', value=str(added), inline=True)
    embed.add_field(name='Total Stock', value=str(total), inline=True)
    await send_ephemeral(interaction, embed=embed)


class SetDepoModal(discord.ui.Modal, title='Set Depo Information'):
    world = discord.ui.TextInput(label='Depo World Name', required=True, max_length=64)
    owner = discord.ui.TextInput(label='Owner Name', required=True, max_length=64)
    bot_name = discord.ui.TextInput(label='Bot Name', required=True, max_length=64)

    async def on_submit(self, interaction: discord.Interaction):
        if not is_admin(interaction.user):
            await reply_access_denied(interaction)
            return
        try:
            info = await interaction.client.store.set_deposit_info(
                self.world.value.strip(), self.owner.value.strip(), self.bot_name.value.strip()
            )
        except Exception:
            _log.exception("Failed to update depo info")
            await interaction.response.send_message(f"{ALERT} Failed to update depo info.", ephemeral=True)
            return
        embed = create_embed(
            f"{CHECK} Depo Info Updated!",
            f"**World:** {info.world_name}\n**Owner:** {info.owner_name}\n**Bot:** {info.bot_name}",
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)


def make_announcer(bot, interaction: discord.Interaction):
    channel_id = bot.settings.purchase_history_channel
    channel = bot.get_channel(channel_id) if channel_id else None
    icon_url = interaction.guild.icon.url if interaction.guild and interaction.guild.icon else None
    return PurchaseLogAnnouncer(channel, interaction.user.id, bot.settings.store_name, icon_url)
