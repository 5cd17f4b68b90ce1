# neurolens/patch_pipeline.py
"""Forward pass of a single 4x4 receptive field.

conv 3x3 (valid, 2x2 out) -> activation -> pooling -> flatten (4) -> dense (4x4) -> softmax (%)

The dense weights and the flatten formulas are fixed, illustrative constants:
nothing here is trained.
"""
import math
from dataclasses import dataclass
import numpy as np
from .errors import ConfigurationError
from .kernels import as_kernel, as_patch

# rows = flatten input index, cols = output class
DENSE_WEIGHTS = np.array([[ 0.8, -0.5,  0.2,  0.1],
                          [-0.4,  0.9, -0.1, -0.3],
                          [ 0.5, -0.2,  0.8,  0.2],
                          [ 0.1,  0.3,  0.1,  0.9]], dtype=np.float64)
DENSE_BIASES = np.array([10, -5, 0, 5], dtype=np.float64)
DENSE_WEIGHTS.setflags(write=False); DENSE_BIASES.setflags(write=False)

CLASS_NAMES = ["Vertical", "Horizontal", "Noise", "Diagonal"]
POOLING_MODES = ("max", "average")
SOFTMAX_TEMPERATURE = 100.0

@dataclass(frozen=True)
class ForwardResult:
    raw_feature_map: np.ndarray   # (2,2) before activation
    feature_map: np.ndarray       # (2,2) activated
    pooled_value: float
    flatten_vector: np.ndarray    # (4,)
    logits: np.ndarray            # (4,)
    probabilities: np.ndarray     # (4,) percent, sums to 100

# ----- stages -----
def conv_valid(patch, kernel):
    H, W = patch.shape; KH, KW = kernel.shape
    Ho, Wo = H - KH + 1, W - KW + 1
    y = np.zeros((Ho, Wo), np.float64)
    for i in range(Ho):
        for j in range(Wo):
            y[i, j] = np.sum(patch[i:i+KH, j:j+KW] * kernel)
    return y

def activate(raw, use_relu=True):
    # signed passthrough when ReLU is off (the full-image engine uses |v| instead)
    return np.maximum(raw, 0) if use_relu else raw.copy()

def check_pooling(mode):
    if mode not in POOLING_MODES:
        raise ConfigurationError(f"pooling mode {mode}")
    return mode

def pool(fmap, mode="max"):
    check_pooling(mode)
    if mode == "max": return float(np.max(fmap))
    return float(np.sum(fmap) / fmap.size)

def flatten(p):
    # stand-ins for "other channels"; fmod keeps the sign of p like a truncated remainder
    return np.array([p, abs(255 - p), math.fmod(p * 1.5, 255), p / 2], dtype=np.float64)

def dense(x, W=DENSE_WEIGHTS, b=DENSE_BIASES):
    return b + x @ W

def softmax_percent(logits, temperature=SOFTMAX_TEMPERATURE):
    x = (logits - np.max(logits)) / temperature; e = np.exp(x)
    return e / np.sum(e) * 100

# ----- pipeline -----
def forward(patch, kernel, use_relu=True, pooling_mode="max"):
    check_pooling(pooling_mode)
    x = as_patch(patch); k = as_kernel(kernel)
    raw = conv_valid(x, k)
    fmap = activate(raw, use_relu)
    p = pool(fmap, pooling_mode)
    flat = flatten(p)
    logits = dense(flat)
    probs = softmax_percent(logits)
    return ForwardResult(raw, fmap, p, flat, logits, probs)

def predicted_class(result):
    c = int(np.argmax(result.probabilities))
    return c, CLASS_NAMES[c]

@dataclass(frozen=True)
class PositionBreakdown:
    index: int
    receptive_field: np.ndarray  # (3,3) slice of the patch
    products: np.ndarray         # (3,3) receptive_field * kernel
    linear_sum: float            # Z
    activated: float             # A

def explain_position(patch, kernel, index, use_relu=True):
    """Show how feature-map cell `index` (0..3, row-major) is built from the patch."""
    if index not in (0, 1, 2, 3):
        raise ConfigurationError(f"feature map index {index}")
    x = as_patch(patch); k = as_kernel(kernel)
    r, c = divmod(index, 2)
    field = x[r:r+3, c:c+3].copy()
    prod = field * k
    z = float(np.sum(prod))
    a = max(0.0, z) if use_relu else z
    return PositionBreakdown(index, field, prod, z, a)
