import math
import time


class CooldownTracker:
    """Per-user, per-action rate limit held in process memory.

    Not shared between bot instances; it only dampens repeated clicks.
    """

    def __init__(self, seconds, clock=time.monotonic):
        self.seconds = float(seconds)
        self.clock = clock
        self._last_used = {}

    def remaining(self, user_id, action='default'):
        last = self._last_used.get((user_id, action))
        if last is None:
            return 0.0
        remaining = self.seconds - (self.clock() - last)
        if remaining <= 0:
            del self._last_used[(user_id, action)]
            return 0.0
        return remaining

    def remaining_seconds(self, user_id, action='default'):
        return math.ceil(self.remaining(user_id, action))

    def is_active(self, user_id, action='default'):
        return self.remaining(user_id, action) > 0

    def hit(self, user_id, action='default'):
        self._last_used[(user_id, action)] = self.clock()

    def try_acquire(self, user_id, action='default'):
        """Start the cooldown and return True, or return False if one is running."""
        if self.is_active(user_id, action):
            return False
        self.hit(user_id, action)
        return True
