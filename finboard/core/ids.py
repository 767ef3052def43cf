import threading
import time


class IdGenerator:
    """
    Issues integer identifiers derived from the millisecond clock.

    The clock value is scaled by 1000 and every id is forced above the previous
    one, so ids stay unique and increasing even when thousands are requested
    within the same millisecond.
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            candidate = int(self._clock() * 1000) * 1000
            self._last = max(candidate, self._last + 1)
            return self._last


id_generator = IdGenerator()
