"""
Tests for session: immutable visualizer state, collaborator fallbacks and the
debounced preview worker (only the newest request may be published).
"""
import threading

import numpy as np
import pytest

from neurolens.assistant import KernelAssistant, KernelSuggestion, OfflineAssistant
from neurolens.conv_engine import convolve
from neurolens.errors import ConfigurationError, ExternalServiceUnavailable
from neurolens.images import half_split
from neurolens.kernels import IDENTITY_KERNEL, PRESET_KERNELS
from neurolens.session import (
    CUSTOM_KERNEL_TEXT, DEFAULT_OPTIONS, EXPLAIN_FALLBACK, SUGGEST_FALLBACK,
    PreviewWorker, VisualizerState, explain_kernel, suggest_kernel,
)


class EchoAssistant(KernelAssistant):
    def explain(self, kernel):
        return f"kernel sum {np.sum(kernel):g}"

    def suggest(self, description):
        return KernelSuggestion(IDENTITY_KERNEL, f"identity for {description}")


class TestVisualizerState:

    def test_defaults(self):
        s = VisualizerState()
        np.testing.assert_array_equal(s.kernel, PRESET_KERNELS[0].matrix)
        assert s.options == DEFAULT_OPTIONS
        assert s.options.use_grayscale and s.options.use_relu and not s.options.normalize
        assert s.pooling_mode == "max"
        assert s.explanation == PRESET_KERNELS[0].description

    def test_transitions_return_new_state(self):
        s = VisualizerState()
        t = s.with_kernel(IDENTITY_KERNEL)
        assert t is not s
        assert t.explanation == CUSTOM_KERNEL_TEXT
        np.testing.assert_array_equal(s.kernel, PRESET_KERNELS[0].matrix)

        u = t.with_preset("Box Blur")
        assert u.explanation == PRESET_KERNELS[4].description

        v = u.with_options(normalize=True)
        assert v.options.normalize and not u.options.normalize

    def test_preset_kernel_is_a_copy(self):
        s = VisualizerState().with_preset("Sharpen")
        s.kernel[0, 0] = 99
        assert PRESET_KERNELS[3].matrix[0, 0] == 0

    def test_validation(self):
        s = VisualizerState()
        with pytest.raises(ConfigurationError):
            s.with_pooling("median")
        with pytest.raises(ConfigurationError):
            s.with_patch(np.zeros((3, 3)))
        with pytest.raises(ConfigurationError):
            s.with_kernel(np.zeros((4, 4)))

    def test_forward_uses_state(self):
        s = VisualizerState().with_preset("Box Blur").with_patch(np.full((4, 4), 128)).with_pooling("average")
        r = s.forward()
        assert r.pooled_value == pytest.approx(128.0)


class TestCollaborator:

    def test_explain(self):
        s = explain_kernel(VisualizerState().with_kernel(IDENTITY_KERNEL), EchoAssistant())
        assert s.explanation == "kernel sum 1"

    def test_explain_unavailable_falls_back(self):
        s = VisualizerState()
        t = explain_kernel(s, OfflineAssistant())
        assert t.explanation == EXPLAIN_FALLBACK
        np.testing.assert_array_equal(t.kernel, s.kernel)

    def test_suggest(self):
        s = suggest_kernel(VisualizerState(), "do nothing", EchoAssistant())
        np.testing.assert_array_equal(s.kernel, IDENTITY_KERNEL)
        assert s.explanation == "identity for do nothing"

    def test_suggest_unavailable_keeps_kernel(self):
        s = VisualizerState()
        t = suggest_kernel(s, "edges", OfflineAssistant())
        assert t.explanation == SUGGEST_FALLBACK
        np.testing.assert_array_equal(t.kernel, s.kernel)

    def test_blank_description_is_ignored(self):
        s = VisualizerState()
        assert suggest_kernel(s, "   ", EchoAssistant()) is s

    def test_offline_assistant_raises(self):
        with pytest.raises(ExternalServiceUnavailable):
            OfflineAssistant().explain(IDENTITY_KERNEL)


class TestPreviewWorker:

    def test_result_matches_direct_call(self):
        img = half_split(16, 16)
        state = VisualizerState()
        w = PreviewWorker(debounce_s=0.0)
        rid = w.request(img, state)
        p = w.wait(timeout=5)
        assert p is not None and p.request_id == rid
        np.testing.assert_array_equal(p.image, convolve(img, state.kernel, state.options))
        assert p.patch.shape == (4, 4)
        w.close()

    def test_rapid_requests_are_debounced(self):
        calls = []
        def compute(image, kernel, options):
            calls.append(kernel.copy())
            return convolve(image, kernel, options)

        img = half_split(8, 8)
        w = PreviewWorker(debounce_s=0.2, compute=compute)
        state = VisualizerState()
        for name in ("Sharpen", "Emboss", "Box Blur"):
            state = state.with_preset(name)
            rid = w.request(img, state)
        p = w.wait(timeout=5)
        assert p.request_id == rid == 3
        assert len(calls) == 1
        np.testing.assert_array_equal(calls[0], PRESET_KERNELS[4].matrix)
        w.close()

    def test_stale_result_is_discarded(self):
        started, release = threading.Event(), threading.Event()
        published = []

        def slow_compute(image, kernel, options):
            if not started.is_set():
                started.set()
                release.wait(5)
            return convolve(image, kernel, options)

        img = half_split(8, 8)
        w = PreviewWorker(on_result=published.append, debounce_s=0.0, compute=slow_compute)
        w.request(img, VisualizerState().with_preset("Sharpen"))
        first = w._timer
        assert started.wait(5)
        second = VisualizerState().with_kernel(IDENTITY_KERNEL)
        rid = w.request(img, second)
        p = w.wait(timeout=5)
        release.set()
        assert p.request_id == rid
        np.testing.assert_array_equal(p.image[..., :3], img[..., :3])
        # the first computation finishes afterwards but is never published
        first.join(5)
        assert [q.request_id for q in published] == [rid]
        assert w.latest.request_id == rid
        w.close()

    def test_compute_error_reaches_wait(self):
        published = []
        w = PreviewWorker(on_result=published.append, debounce_s=0.0)
        w.request(np.zeros((4, 4, 3), np.uint8), VisualizerState())
        with pytest.raises(ConfigurationError):
            w.wait(timeout=5)
        assert published == [] and w.latest is None
        # a later good request clears the failure
        rid = w.request(half_split(8, 8), VisualizerState())
        assert w.wait(timeout=5).request_id == rid
        w.close()

    def test_error_of_superseded_request_is_dropped(self):
        started, release = threading.Event(), threading.Event()

        def flaky_compute(image, kernel, options):
            if not started.is_set():
                started.set()
                release.wait(5)
                raise RuntimeError("boom")
            return convolve(image, kernel, options)

        img = half_split(8, 8)
        w = PreviewWorker(debounce_s=0.0, compute=flaky_compute)
        w.request(img, VisualizerState())
        first = w._timer
        assert started.wait(5)
        rid = w.request(img, VisualizerState())
        assert w.wait(timeout=5).request_id == rid
        release.set()
        first.join(5)
        assert w.wait(timeout=5).request_id == rid
        w.close()

    def test_wait_times_out_without_requests(self):
        assert PreviewWorker().wait(timeout=0.01) is None
