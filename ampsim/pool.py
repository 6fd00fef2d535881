# ampsim/pool.py
"""
Recycling of amplitude / mask arrays between pipeline steps.

Buffer size doubles with every qubit, so instead of allocating a fresh array
for each kernel output the engine hands finished arrays back here and the next
step reuses them. An array must only be released once nothing can read the
buffer that wrapped it.
"""
import logging
from collections import defaultdict

import numpy as np

log = logging.getLogger(__name__)


class BufferPool:
    def __init__(self, allocate, max_spare: int = 2):
        # allocate(size, dtype) -> array; comes from the backend module
        self._allocate = allocate
        self.max_spare = max_spare
        self._free = defaultdict(list)
        self.allocations = 0
        self.reuses = 0

    @staticmethod
    def _key(size, dtype):
        return int(size), np.dtype(dtype).str

    def acquire(self, size: int, dtype):
        free = self._free[self._key(size, dtype)]
        if free:
            self.reuses += 1
            return free.pop()
        self.allocations += 1
        log.debug("allocating %d-element %s buffer", size, np.dtype(dtype))
        return self._allocate(size, dtype)

    def release(self, arr):
        free = self._free[self._key(arr.shape[0], arr.dtype)]
        if len(free) >= self.max_spare:
            return
        if isinstance(arr, np.ndarray):
            # buffers are frozen once published; the pool owns the array again
            arr.flags.writeable = True
        free.append(arr)

    def spare(self) -> int:
        return sum(len(v) for v in self._free.values())

    def clear(self):
        self._free.clear()
