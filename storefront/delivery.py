import io
import logging

import discord

from .formatting import format_price

_log = logging.getLogger(__name__)

REDARROW = '<a:redarrow:1240203493218717807>'
BANNER_URL = 'https://media.discordapp.net/attachments/1225818847672537139/1398511989965193226/magaddon-store-banner.gif'


class DirectMessageDelivery:
    """Hands purchased payloads to the buyer as a DM text attachment."""

    def __init__(self, user):
        self.user = user

    async def __call__(self, package):
        buffer = io.BytesIO(package.content.encode('utf-8'))
        file = discord.File(fp=buffer, filename=package.filename)
        await self.user.send(
            content=f"{REDARROW} Thank you for your purchase! Here are your items for {package.product.name}:",
            file=file,
        )


class PurchaseLogAnnouncer:
    """Posts purchase receipts to the operations channel."""

    def __init__(self, channel, buyer_id, store_name, icon_url=None):
        self.channel = channel
        self.buyer_id = buyer_id
        self.store_name = store_name
        self.icon_url = icon_url

    def build_embed(self, result):
        embed = discord.Embed(
            title=f"#Order Number: {result.order_number}",
            description=(
                f"{REDARROW} Buyer: <@{self.buyer_id}>\n"
                f"{REDARROW} Product: **{result.quantity} {result.product.name.upper()}**\n"
                f"{REDARROW} Total Price: **{format_price(result.total_price)}**\n\n"
                f"**Thanks For Purchasing Our Product.**"
            ),
            color=discord.Color.red(),
            timestamp=discord.utils.utcnow(),
        )
        embed.set_image(url=BANNER_URL)
        embed.set_footer(text=f"{self.store_name} • Your trusted marketplace", icon_url=self.icon_url)
        return embed

    async def __call__(self, result):
        if self.channel is None:
            _log.debug("No purchase history channel configured, skipping receipt %s", result.order_number)
            return
        await self.channel.send(embed=self.build_embed(result))
