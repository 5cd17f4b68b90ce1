# neurolens/images.py
import numpy as np
from .errors import ConfigurationError

PATCH = 4

# ----- buffers -----
def from_rgba_bytes(data, width, height):
    # flat RGBA, 4 bytes/pixel, row-major -> (H,W,4) uint8
    arr = np.frombuffer(bytes(data), dtype=np.uint8)
    if arr.size != width * height * 4:
        raise ConfigurationError(f"expected {width}x{height}x4 bytes, got {arr.size}")
    return arr.reshape(height, width, 4).copy()

def to_rgba_bytes(image):
    img = np.asarray(image, dtype=np.uint8)
    return np.ascontiguousarray(img).tobytes()

def rgba(gray):
    """(H,W) luminance in [0,255] -> opaque (H,W,4) uint8."""
    g = np.clip(np.asarray(gray, dtype=np.float64), 0, 255).astype(np.uint8)
    out = np.empty(g.shape + (4,), np.uint8)
    out[..., :3] = g[..., None]; out[..., 3] = 255
    return out

# ----- synthetic sources -----
def solid(width, height, value=128):
    return rgba(np.full((height, width), value))

def half_split(width, height, axis=0, low=0, high=255):
    # axis=0: top half low, bottom half high (horizontal edge); axis=1: left/right
    g = np.full((height, width), low)
    if axis == 0: g[height // 2:, :] = high
    else:         g[:, width // 2:] = high
    return rgba(g)

def gradient(width, height):
    g = np.tile(np.linspace(0, 255, max(width, 1))[:width], (height, 1))
    return rgba(np.round(g))

def checkerboard(width, height, cell=8):
    yy, xx = np.mgrid[0:height, 0:width]
    return rgba(((yy // cell + xx // cell) % 2) * 255)

# ----- patches -----
def extract_patch(image, x, y):
    """4x4 grayscale patch with top-left at (x-1, y-1).

    Luminance is round((R+G+B)/3), halves rounded up. Pixels outside the image read as 0.
    """
    img = np.asarray(image)
    H, W = img.shape[:2]
    patch = np.zeros((PATCH, PATCH), np.int64)
    x0, y0 = x - 1, y - 1
    for i in range(PATCH):
        for j in range(PATCH):
            py, px = y0 + i, x0 + j
            if 0 <= py < H and 0 <= px < W:
                r, g, b = (int(v) for v in img[py, px, :3])
                patch[i, j] = int(np.floor((r + g + b) / 3 + 0.5))
    return patch

def center_patch(image):
    H, W = np.asarray(image).shape[:2]
    return extract_patch(image, W // 2, H // 2)
