# neurolens/session.py
"""Application-side state around the two numeric components.

VisualizerState is the immutable snapshot a UI would hold (kernel, options,
pooling mode, hovered patch, explanation text); every edit returns a new one.
PreviewWorker recomputes the full-image preview off the caller's thread with
debouncing, and only ever publishes the result of the newest request.
"""
import threading
from dataclasses import dataclass, field, replace
import numpy as np
from .conv_engine import ProcessingOptions, convolve
from .errors import ExternalServiceUnavailable
from .images import center_patch
from .kernels import PRESET_KERNELS, as_kernel, as_patch, find_preset
from .patch_pipeline import check_pooling, forward

DEFAULT_OPTIONS = ProcessingOptions(use_grayscale=True, use_relu=True, normalize=False)
DEBOUNCE_S = 0.05

CUSTOM_KERNEL_TEXT = "Custom kernel configuration."
EXPLAIN_FALLBACK = "AI explanation unavailable. Please check your API key."
SUGGEST_FALLBACK = "Failed to generate kernel. Please try a different description."


@dataclass(frozen=True, eq=False)
class VisualizerState:
    kernel: np.ndarray = field(default_factory=lambda: PRESET_KERNELS[0].matrix.copy())
    options: ProcessingOptions = DEFAULT_OPTIONS
    pooling_mode: str = "max"
    patch: np.ndarray = field(default_factory=lambda: np.zeros((4, 4)))
    explanation: str = PRESET_KERNELS[0].description

    def with_preset(self, name):
        p = find_preset(name)
        return replace(self, kernel=p.matrix.copy(), explanation=p.description)

    def with_kernel(self, kernel):
        return replace(self, kernel=as_kernel(kernel), explanation=CUSTOM_KERNEL_TEXT)

    def with_options(self, **changes):
        return replace(self, options=replace(self.options, **changes))

    def with_pooling(self, mode):
        return replace(self, pooling_mode=check_pooling(mode))

    def with_patch(self, patch):
        return replace(self, patch=as_patch(patch))

    def with_explanation(self, text):
        return replace(self, explanation=text)

    def forward(self):
        return forward(self.patch, self.kernel, self.options.use_relu, self.pooling_mode)


def explain_kernel(state, assistant):
    try:
        text = assistant.explain(state.kernel)
    except ExternalServiceUnavailable:
        text = EXPLAIN_FALLBACK
    return state.with_explanation(text)


def suggest_kernel(state, description, assistant):
    if not description or not description.strip():
        return state
    try:
        s = assistant.suggest(description)
    except ExternalServiceUnavailable:
        return state.with_explanation(SUGGEST_FALLBACK)
    return replace(state, kernel=s.kernel, explanation=s.explanation)


@dataclass(frozen=True, eq=False)
class Preview:
    request_id: int
    image: np.ndarray   # convolved RGBA
    patch: np.ndarray   # 4x4 centre patch of the source image


class PreviewWorker:
    def __init__(self, on_result=None, debounce_s=DEBOUNCE_S, compute=convolve):
        self.on_result = on_result
        self.debounce_s = debounce_s
        self.compute = compute
        self.latest = None
        self._failed = None  # (request id, exception) of the last failed compute
        self._lock = threading.RLock()  # on_result may call request()
        self._published = threading.Condition(self._lock)
        self._counter = 0
        self._timer = None

    def request(self, image, state):
        """Schedule a recompute; returns the request id. Supersedes any pending or running request."""
        with self._lock:
            self._counter += 1
            rid = self._counter
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_s, self._run, args=(rid, image, state))
            self._timer.daemon = True
            self._timer.start()
        return rid

    def _run(self, rid, image, state):
        with self._lock:
            if rid != self._counter:
                return
        try:
            out = self.compute(image, state.kernel, state.options)
            preview = Preview(rid, out, center_patch(image))
        except Exception as e:
            with self._lock:
                if rid == self._counter:
                    self._failed = (rid, e)
                    self._published.notify_all()
            return
        with self._lock:
            if rid != self._counter:  # stale, a newer request was issued meanwhile
                return
            self.latest = preview
            self._published.notify_all()
            if self.on_result is not None:
                self.on_result(preview)

    def _settled(self):
        if self._failed is not None and self._failed[0] == self._counter:
            return True
        return self.latest is not None and self.latest.request_id == self._counter

    def wait(self, timeout=None):
        """Block until the newest request is published; returns it, or None on timeout.

        If computing the newest request raised, the exception is re-raised here.
        Failures of superseded requests are dropped.
        """
        with self._lock:
            if not self._published.wait_for(self._settled, timeout=timeout):
                return None
            if self._failed is not None and self._failed[0] == self._counter:
                raise self._failed[1]
            return self.latest

    def close(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
