BLUE_GEM_LOCK = 10000
DIAMOND_LOCK = 100

WORLDLOCK = '<:wl:1237744867254472704>'
DIAMONDLOCK = '<:dl:1237744865459314718>'
BGL = '<:bgl:1237744863441850479>'


def split_tiers(amount):
    """Split an amount of world locks into (blue gem, diamond, world) locks."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise ValueError(f"amount must be a non-negative integer, got {amount!r}")
    return amount // BLUE_GEM_LOCK, (amount % BLUE_GEM_LOCK) // DIAMOND_LOCK, amount % DIAMOND_LOCK


def format_price(amount, wl=WORLDLOCK, dl=DIAMONDLOCK, bgl=BGL):
    if amount == 0:
        return f"0 {wl}"
    blue, diamond, world = split_tiers(amount)
    parts = []
    if blue:
        parts.append(f"{blue} {bgl}")
    if diamond:
        parts.append(f"{diamond} {dl}")
    if world:
        parts.append(f"{world} {wl}")
    return ' '.join(parts)


def format_number(amount):
    return f"{amount or 0:,}"


def spend_badge(total_spent):
    if total_spent >= 10000:
        return '👑 VIP Customer'
    if total_spent >= 5000:
        return '💎 Premium User'
    if total_spent >= 1000:
        return '⭐ Valued Customer'
    return '🌱 New Customer'
