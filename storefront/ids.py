import random
import string
import time
import uuid

# Discord user ids map onto account ids through this namespace so the same
# user always lands on the same account without a lookup table.
DISCORD_NAMESPACE = uuid.UUID('6ba7b810-9dad-11d1-80b4-00c04fd430c8')


def account_id_for(discord_id):
    return str(uuid.uuid5(DISCORD_NAMESPACE, str(discord_id)))


def generate_order_number(now=None):
    millis = int((time.time() if now is None else now) * 1000)
    suffix = uuid.uuid4().hex[:10]
    return f"ORD-{millis}-{suffix}"


def generate_reservation_token():
    return ''.join(random.choices(string.ascii_uppercase + string.digits, k=16))
