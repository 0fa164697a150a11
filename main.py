import sys

from storefront.bot import ShopBot
from storefront.config import Settings


def main():
    # Load environment variables
    settings = Settings.from_env()
    if not settings.token:
        sys.exit("DISCORD_TOKEN is not set. Add it to your environment or .env file.")

    bot = ShopBot(settings)
    bot.run(settings.token)


if __name__ == '__main__':
    main()
