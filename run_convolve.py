# run_convolve.py
import argparse, os, csv
from neurolens.conv_engine import ProcessingOptions, convolve
from neurolens.images import checkerboard, gradient, half_split
from neurolens.kernels import PRESET_KERNELS, find_preset, format_kernel
from neurolens.profiler import latency_ms, image_size_bytes, fmt_size

SOURCES = {
    "edge": lambda n: half_split(n, n, axis=0),
    "vedge": lambda n: half_split(n, n, axis=1),
    "gradient": lambda n: gradient(n, n),
    "checker": lambda n: checkerboard(n, n, cell=max(n // 8, 1)),
}

def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Convolve a synthetic image with every preset (or one) and time it.")
    ap.add_argument("--kernel", default=None, help="preset name or words from it, e.g. 'sobel vertical'")
    ap.add_argument("--source", default="edge", choices=sorted(SOURCES))
    ap.add_argument("--size", type=int, default=400)
    ap.add_argument("--no-relu", action="store_true")
    ap.add_argument("--no-grayscale", action="store_true")
    ap.add_argument("--normalize", action="store_true")
    ap.add_argument("--out", default="results/tablas/convolve.csv")
    return ap.parse_args(argv)

def main(argv=None):
    a = parse_args(argv)
    opts = ProcessingOptions(use_grayscale=not a.no_grayscale, use_relu=not a.no_relu, normalize=a.normalize)
    img = SOURCES[a.source](a.size)
    presets = [find_preset(a.kernel)] if a.kernel else PRESET_KERNELS
    print(f"[IMG ] {a.source} {img.shape[1]}x{img.shape[0]}  size={fmt_size(image_size_bytes(img))}  {opts}")

    rows = []
    for p in presets:
        out = convolve(img, p.matrix, opts)
        lat = latency_ms(lambda: convolve(img, p.matrix, opts), warmup=1, reps=5)
        rgb = out[..., :3]
        print(f"[CONV] {p.name}")
        print("       " + format_kernel(p.matrix).replace("\n", " | "))
        print(f"       min={int(rgb.min())} max={int(rgb.max())} mean={rgb.mean():.1f}  "
              f"lat mean={lat['mean']:.1f}ms p90={lat['p90']:.1f}ms")
        rows.append([p.name, int(rgb.min()), int(rgb.max()), f"{rgb.mean():.2f}",
                     f"{lat['mean']:.2f}", f"{lat['p50']:.2f}", f"{lat['p90']:.2f}"])

    os.makedirs(os.path.dirname(a.out) or ".", exist_ok=True)
    with open(a.out, "w", newline="") as f:
        w = csv.writer(f)
        w.writerow(["kernel","min","max","mean","lat_mean_ms","lat_p50_ms","lat_p90_ms"])
        w.writerows(rows)
    print(f"OK → {a.out}")

if __name__=="__main__": main()
