"""Deterministic xorshift32 random source.

Every piece of randomness in the engine (hazard placement, dice, sentry
targeting, galaxy generation) is drawn from an explicit ``XorShift32`` passed
in by the caller, so a seed fully reproduces a board or an encounter.
"""

_MASK = 0xFFFFFFFF


class XorShift32:
    def __init__(self, seed=1):
        self.seed(seed)

    def seed(self, seed):
        state = int(seed) & _MASK
        self._state = state or 1

    def next_u32(self):
        s = self._state
        s ^= (s << 13) & _MASK
        # right shift is arithmetic on the signed 32-bit state
        signed = s - 0x100000000 if s & 0x80000000 else s
        s ^= (signed >> 17) & _MASK
        s ^= (s << 5) & _MASK
        self._state = s
        return s

    def random(self):
        """Return a float in [0, 1)."""
        return self.next_u32() / 4294967296

    __call__ = random

    def below(self, n):
        """Return an int in [0, n). Returns 0 when n <= 1."""
        if n <= 1:
            self.next_u32()
            return 0
        return min(int(self.random() * n), n - 1)

    def randint(self, lo, hi):
        """Return an int in [lo, hi], inclusive on both ends."""
        if hi < lo:
            lo, hi = hi, lo
        return lo + self.below(hi - lo + 1)

    def d6(self):
        return 1 + self.below(6)

    def shuffle(self, items):
        """Fisher-Yates shuffle in place."""
        for i in range(len(items) - 1, 0, -1):
            j = self.below(i + 1)
            items[i], items[j] = items[j], items[i]

    def getstate(self):
        return self._state

    def setstate(self, state):
        self._state = (int(state) & _MASK) or 1
