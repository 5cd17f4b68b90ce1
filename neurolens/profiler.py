# neurolens/profiler.py
"""Wall-clock timing of a convolution call and RGBA buffer sizes, for the CLI reports."""
import time
import numpy as np

def time_calls(fn, warmup=2, reps=10):
    """Per-call wall time in ms for `reps` calls, after `warmup` untimed ones."""
    for _ in range(warmup):
        fn()
    ms = np.empty(reps, dtype=np.float64)
    for i in range(reps):
        t0 = time.perf_counter()
        fn()
        ms[i] = (time.perf_counter() - t0) * 1000.0
    return ms

def latency_ms(fn, warmup=2, reps=10):
    ms = time_calls(fn, warmup, reps)
    p50, p90 = np.percentile(ms, [50, 90])
    return {"mean": float(ms.mean()), "p50": float(p50), "p90": float(p90), "max": float(ms.max())}

def image_size_bytes(image):
    # RGBA, 1 byte per channel
    h, w = np.asarray(image).shape[:2]
    return h * w * 4

def fmt_size(n):
    # preview buffers stay well under a few MB
    return f"{n} B" if n < 1024 else f"{n / 1024:.2f} KB"
