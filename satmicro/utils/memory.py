import gc
import os
import threading
import time
from statistics import mean

import psutil


class MemoryTracker:
    """
    Samples the memory of the current process while a solver runs.

    Used as a context manager around one solve; on exit `min_usage`, `avg_usage` and
    `max_usage` hold the usage above the baseline measured on entry, in KB. A sampler thread
    polls psutil every `sample_interval` seconds until the block ends. The process is pinned to
    core 0 inside the block and gets its previous CPU affinity back on exit.
    """

    def __init__(self, sample_interval=0.001):
        self.process = psutil.Process(os.getpid())
        self.interval = sample_interval
        self.baseline = 0.0
        self.samples = []
        self.min_usage = self.avg_usage = self.max_usage = 0.0
        self._affinity = None
        self._stop = threading.Event()
        self._thread = None

    def usage(self):
        """Current unique set size in KB, resident set size where USS is unavailable."""
        try:
            return self.process.memory_full_info().uss / 1024
        except (AttributeError, psutil.AccessDenied):
            return self.process.memory_info().rss / 1024

    def __enter__(self):
        gc.collect()
        if os.name == "nt":
            # trim the working set to drop caches
            import ctypes
            ctypes.windll.kernel32.SetProcessWorkingSetSize(-1, -1)
            time.sleep(0.05)
        # pin to core 0 to reduce scheduling jitter, where the platform allows it
        try:
            self._affinity = self.process.cpu_affinity()
            self.process.cpu_affinity([0])
        except (AttributeError, psutil.Error, OSError):
            self._affinity = None
        self.baseline = self.usage()
        self.samples = []
        self._stop.clear()
        self._thread = threading.Thread(target=self._sample, daemon=True)
        self._thread.start()
        return self

    def _sample(self):
        while True:
            self.samples.append(max(0.0, self.usage() - self.baseline))
            if self._stop.wait(self.interval):
                break

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
        if self._affinity is not None:
            try:
                self.process.cpu_affinity(self._affinity)
            except (psutil.Error, OSError):
                pass
            self._affinity = None
        samples = self.samples or [0.0]
        self.min_usage = min(samples)
        self.avg_usage = mean(samples)
        self.max_usage = max(samples)
