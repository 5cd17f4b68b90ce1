# neurolens/kernels.py
import numpy as np
from .errors import ConfigurationError

# ----- coercion -----
def _as_matrix(values, size, what):
    try:
        m = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{what} must be numeric: {e}") from e
    if m.shape != (size, size):
        raise ConfigurationError(f"{what} must be {size}x{size}, got shape {m.shape}")
    if not np.all(np.isfinite(m)):
        raise ConfigurationError(f"{what} has non-finite values")
    return m

def as_kernel(values):
    return _as_matrix(values, 3, "kernel")

def as_patch(values):
    return _as_matrix(values, 4, "patch")

def format_kernel(kernel):
    # same layout the prompts and console use: "a, b, c" per row
    return "\n".join(", ".join(f"{v:g}" for v in row) for row in as_kernel(kernel))

# ----- library -----
IDENTITY_KERNEL = np.array([[0, 0, 0],
                            [0, 1, 0],
                            [0, 0, 0]], dtype=np.float64)

class PresetKernel:
    def __init__(self, name, matrix, description):
        self.name = name
        self.matrix = as_kernel(matrix)
        self.description = description
    def __repr__(self):
        return f"PresetKernel({self.name!r})"

PRESET_KERNELS = [
    PresetKernel("Edge Detection (Sobel Horizontal)",
                 [[-1, -2, -1], [0, 0, 0], [1, 2, 1]],
                 "Detects horizontal edges by calculating the gradient in the Y direction."),
    PresetKernel("Edge Detection (Sobel Vertical)",
                 [[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]],
                 "Detects vertical edges by calculating the gradient in the X direction."),
    PresetKernel("Edge Detection (Laplacian)",
                 [[0, 1, 0], [1, -4, 1], [0, 1, 0]],
                 "Detects edges in all directions by approximating the second derivative."),
    PresetKernel("Sharpen",
                 [[0, -1, 0], [-1, 5, -1], [0, -1, 0]],
                 "Enhances the differences between adjacent pixels."),
    PresetKernel("Box Blur",
                 [[1/9, 1/9, 1/9], [1/9, 1/9, 1/9], [1/9, 1/9, 1/9]],
                 "Averages neighboring pixels to reduce noise and detail."),
    PresetKernel("Emboss",
                 [[-2, -1, 0], [-1, 1, 1], [0, 1, 2]],
                 "Creates a 3D shadow effect."),
]

def find_preset(name):
    for p in PRESET_KERNELS:
        if p.name == name: return p
    # CLI shorthand: "sobel vertical", "blur", ...
    key = name.strip().lower()
    hits = [p for p in PRESET_KERNELS if key and all(w in p.name.lower() for w in key.split())]
    if len(hits) == 1:
        return hits[0]
    if not hits:
        raise ConfigurationError(f"preset {name}")
    raise ConfigurationError(f"preset {name} is ambiguous: {[p.name for p in hits]}")
