# neurolens/conv_engine.py
from dataclasses import dataclass
import numpy as np
from .errors import ConfigurationError
from .kernels import as_kernel

@dataclass(frozen=True)
class ProcessingOptions:
    use_grayscale: bool = True
    use_relu: bool = True     # False -> |v|, not a passthrough
    normalize: bool = False   # joint RGB min/max rescale to 0..255

def saturate_u8(x):
    # clamped byte store: clip, round half to even
    return np.clip(np.rint(x), 0, 255).astype(np.uint8)

def conv3x3_same(x, kernel):
    # x: (H,W,C) ; zero padding of 1, output (H,W,C) float64, no weight-sum normalisation
    H, W = x.shape[:2]
    xpad = np.pad(x.astype(np.float64), ((1,1),(1,1),(0,0)), mode='constant', constant_values=0)
    y = np.zeros(x.shape, np.float64)
    for ky in range(3):
        for kx in range(3):
            y += kernel[ky, kx] * xpad[ky:ky+H, kx:kx+W]
    return y

def normalize_joint(out):
    # out: (H,W,4) uint8 ; min/max over R,G,B of every pixel together
    rgb = out[..., :3]
    if rgb.size == 0:
        return out
    lo, hi = int(rgb.min()), int(rgb.max())
    if hi <= lo:  # flat output, leave as is
        return out
    res = out.copy()
    res[..., :3] = saturate_u8((rgb.astype(np.float64) - lo) / (hi - lo) * 255)
    return res

def convolve(image, kernel, options=ProcessingOptions()):
    """Apply a 3x3 kernel to an RGBA buffer (H,W,4) uint8; returns a new buffer of the same shape.

    Per channel: raw zero-padded convolution, then ReLU (or absolute value),
    optional 3-way grayscale average, alpha forced to 255 and an optional
    global min/max stretch of the stored 8-bit result.
    """
    img = np.asarray(image)
    if img.ndim != 3 or img.shape[2] != 4:
        raise ConfigurationError(f"image must be (H, W, 4) RGBA, got shape {img.shape}")
    k = as_kernel(kernel)

    y = conv3x3_same(img[..., :3], k)
    y = np.maximum(y, 0) if options.use_relu else np.abs(y)
    if options.use_grayscale:
        y = np.repeat(y.mean(axis=2, keepdims=True), 3, axis=2)

    out = np.empty(img.shape, np.uint8)
    out[..., :3] = saturate_u8(y)
    out[..., 3] = 255
    if options.normalize:
        out = normalize_joint(out)
    return out
