# neurolens/figures.py
import os
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
from .patch_pipeline import CLASS_NAMES

def ensure_dir(path):
    if path: os.makedirs(path, exist_ok=True)

def plot_feature_map(M, title, path, cmap="viridis"):
    """Heatmap of a small matrix (patch, kernel or feature map) with every value written in its cell."""
    ensure_dir(os.path.dirname(path))
    M = np.asarray(M, dtype=np.float64)
    m = np.max(np.abs(M)) if M.size else 1.0
    plt.figure(figsize=(1.0 + 0.8*M.shape[1], 0.8 + 0.8*M.shape[0]))
    im = plt.imshow(M, interpolation="nearest", cmap=cmap,
                    vmin=-m if M.min() < 0 else 0, vmax=m or 1.0)
    for (i, j), v in np.ndenumerate(M):
        plt.text(j, i, f"{v:.4g}", ha="center", va="center", fontsize=8, color="w")
    plt.title(title, fontsize=9)
    plt.xticks([]); plt.yticks([])
    plt.colorbar(im, fraction=0.046, pad=0.04)
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close()

def plot_probabilities(probs, path, title="Softmax (%)"):
    ensure_dir(os.path.dirname(path))
    x = np.arange(len(probs))
    plt.figure(figsize=(5.2, 3.2))
    bars = plt.bar(x, probs, width=0.6)
    bars[int(np.argmax(probs))].set_color("tab:orange")
    plt.xticks(x, CLASS_NAMES[:len(probs)])
    plt.ylabel("Probability (%)")
    plt.ylim(0, 100)
    plt.title(title)
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close()

def save_image(image, path):
    ensure_dir(os.path.dirname(path))
    plt.imsave(path, np.asarray(image, dtype=np.uint8))

def plot_side_by_side(src, out, title, path):
    ensure_dir(os.path.dirname(path))
    fig, axes = plt.subplots(1, 2, figsize=(8, 4))
    for ax, img, name in zip(axes, (src, out), ("Input", "Feature map")):
        ax.imshow(np.asarray(img, dtype=np.uint8), interpolation="nearest")
        ax.set_title(name); ax.axis("off")
    fig.suptitle(title)
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)
