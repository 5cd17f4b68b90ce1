# make_figures.py
from neurolens.conv_engine import ProcessingOptions, convolve
from neurolens.figures import plot_feature_map, plot_probabilities, plot_side_by_side, save_image
from neurolens.images import center_patch, half_split, checkerboard
from neurolens.kernels import PRESET_KERNELS
from neurolens.patch_pipeline import forward

OUT = "results/figuras"

def slug(name):
    return "".join(c if c.isalnum() else "_" for c in name.lower()).strip("_")

def main(out=OUT):
    # 1) Source images
    edge = half_split(128, 128, axis=0)
    board = checkerboard(128, 128, cell=16)
    save_image(edge, f"{out}/source_edge.png")
    save_image(board, f"{out}/source_checker.png")

    # 2) Full feature maps, ReLU vs |v|, every preset
    written = []
    for p in PRESET_KERNELS:
        for relu in (True, False):
            opts = ProcessingOptions(use_grayscale=True, use_relu=relu, normalize=True)
            fmap = convolve(board, p.matrix, opts)
            path = f"{out}/{slug(p.name)}_{'relu' if relu else 'abs'}.png"
            plot_side_by_side(board, fmap, f"{p.name} ({'ReLU' if relu else '|v|'})", path)
            written.append(path)

    # 3) Receptive field walk-through on the edge centre
    patch = center_patch(edge)
    k = PRESET_KERNELS[0].matrix
    r = forward(patch, k, use_relu=True, pooling_mode="max")
    plot_feature_map(patch, "Input patch (4x4)", f"{out}/patch.png", cmap="gray")
    plot_feature_map(k, PRESET_KERNELS[0].name, f"{out}/kernel.png", cmap="bwr")
    plot_feature_map(r.raw_feature_map, "Z (raw 2x2)", f"{out}/feature_raw.png", cmap="bwr")
    plot_feature_map(r.feature_map, "A (ReLU 2x2)", f"{out}/feature_relu.png")
    plot_probabilities(r.probabilities, f"{out}/probabilities.png")
    written += [f"{out}/{n}.png" for n in ("patch", "kernel", "feature_raw", "feature_relu", "probabilities")]

    print("Done:")
    for path in written:
        print(f" - {path}")
    return written

if __name__ == "__main__":
    main()
