# run_forward.py
import argparse
import numpy as np
from neurolens.images import center_patch, checkerboard, gradient, half_split
from neurolens.kernels import find_preset, format_kernel
from neurolens.patch_pipeline import CLASS_NAMES, POOLING_MODES, explain_position, forward, predicted_class

def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Walk one 4x4 receptive field through conv → pool → dense → softmax.")
    ap.add_argument("--kernel", default="Sobel Horizontal")
    ap.add_argument("--pooling", default="max", choices=POOLING_MODES)
    ap.add_argument("--no-relu", action="store_true")
    ap.add_argument("--source", default="edge", choices=["edge", "vedge", "gradient", "checker", "flat"])
    ap.add_argument("--size", type=int, default=16)
    ap.add_argument("--position", type=int, default=0, help="feature-map cell to break down (0..3)")
    return ap.parse_args(argv)

def source_patch(name, n):
    if name == "flat": return np.full((4, 4), 128)
    img = {"edge": lambda: half_split(n, n, axis=0),
           "vedge": lambda: half_split(n, n, axis=1),
           "gradient": lambda: gradient(n, n),
           "checker": lambda: checkerboard(n, n, cell=2)}[name]()
    return center_patch(img)

def main(argv=None):
    a = parse_args(argv)
    preset = find_preset(a.kernel)
    patch = source_patch(a.source, a.size)
    use_relu = not a.no_relu
    np.set_printoptions(precision=3, suppress=True)

    print(f"[KERN] {preset.name}\n{format_kernel(preset.matrix)}")
    print(f"[PTCH] {a.source}\n{patch}")

    b = explain_position(patch, preset.matrix, a.position, use_relu)
    print(f"[POS{a.position}] receptive field\n{b.receptive_field}")
    print(f"       Z = {b.linear_sum:.1f}   A = {b.activated:.1f}")

    r = forward(patch, preset.matrix, use_relu, a.pooling)
    print(f"[CONV] raw\n{r.raw_feature_map}\n[ACT ] {'relu' if use_relu else 'identity'}\n{r.feature_map}")
    print(f"[POOL] {a.pooling} = {r.pooled_value:.3f}")
    print(f"[FLAT] {r.flatten_vector}")
    print(f"[FC  ] logits {r.logits}")
    for name, p in zip(CLASS_NAMES, r.probabilities):
        print(f"       {name:<10} {p:6.2f}%")
    c, name = predicted_class(r)
    print(f"[PRED] class {c} ({name})")

if __name__=="__main__": main()
