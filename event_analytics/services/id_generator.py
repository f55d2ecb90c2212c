import threading
import time

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
TIMESTAMP_WIDTH = 9  # base36 milliseconds, good until year 5188
COUNTER_WIDTH = 4


def to_base36(number: int, width: int) -> str:
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(ALPHABET[rem])
    return "".join(reversed(digits)).rjust(width, "0")


class MonotonicIdGenerator:
    """
    Fixed-width base36 ids that sort lexicographically in generation order.

    The millisecond clock is never allowed to go backwards; ids created within
    the same millisecond are told apart by a counter suffix.
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._last_ms = -1
        self._counter = 0

    def __call__(self) -> str:
        with self._lock:
            now_ms = int(self._clock() * 1000)
            if now_ms <= self._last_ms:
                self._counter += 1
                if self._counter >= 36 ** COUNTER_WIDTH:
                    self._last_ms += 1
                    self._counter = 0
            else:
                self._last_ms = now_ms
                self._counter = 0
            return to_base36(self._last_ms, TIMESTAMP_WIDTH) + to_base36(self._counter, COUNTER_WIDTH)


generate_id = MonotonicIdGenerator()
