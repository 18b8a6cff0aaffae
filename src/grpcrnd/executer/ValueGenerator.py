import random
import string
import struct
from grpcrnd.constants import MAX_STRING_LENGTH, MAX_BYTES_LENGTH

INT32_MIN, INT32_MAX = -(1 << 31), (1 << 31) - 1
INT64_MIN, INT64_MAX = -(1 << 63), (1 << 63) - 1
UINT32_MAX = (1 << 32) - 1
UINT64_MAX = (1 << 64) - 1

TEXT_ALPHABET = string.ascii_letters + string.digits


class ValueGenerator:
    """Produces one pseudo-random value per call for a protobuf scalar kind.

    The randomness source is injected so callers can hand in a seeded
    ``random.Random``; by default every generator owns an unseeded one.
    """

    def __init__(self, rng=None, max_string_length=MAX_STRING_LENGTH, max_bytes_length=MAX_BYTES_LENGTH):
        self.rng = rng if rng is not None else random.Random()
        self.max_string_length = max_string_length
        self.max_bytes_length = max_bytes_length

    def bool(self) -> bool:
        return self.rng.random() < 0.5

    def int32(self) -> int:
        return self.rng.randint(INT32_MIN, INT32_MAX)

    def int64(self) -> int:
        return self.rng.randint(INT64_MIN, INT64_MAX)

    def uint32(self) -> int:
        return self.rng.randint(0, UINT32_MAX)

    def uint64(self) -> int:
        return self.rng.randint(0, UINT64_MAX)

    def float(self) -> float:
        # round-trip through a 4 byte float so the value survives float32 storage
        value = self.rng.uniform(-1.0, 1.0) * 10 ** self.rng.randint(0, 6)
        return struct.unpack('<f', struct.pack('<f', value))[0]

    def double(self):
        return self.rng.uniform(-1.0, 1.0) * 10 ** self.rng.randint(0, 12)

    def bytes(self):
        length = self.rng.randint(0, self.max_bytes_length)
        return bytes(self.rng.getrandbits(8) for _ in range(length))

    def string(self) -> str:
        length = self.rng.randint(1, self.max_string_length)
        return ''.join(self.rng.choice(TEXT_ALPHABET) for _ in range(length))

    def pick_enum(self, count: int) -> int:
        """Returns an index in [0, count)."""
        if count <= 0:
            raise ValueError(f"Cannot pick from an enum with {count} values")
        return self.rng.randrange(count)
