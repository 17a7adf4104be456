import matplotlib
import matplotlib.pyplot as plt
import numpy as np

LUT_SIZE = 256


def _build_inferno_lut():
    """256 x 3 uint8 RGB table sampled from matplotlib's inferno colormap."""
    rgba = matplotlib.colormaps["inferno"](np.linspace(0.0, 1.0, LUT_SIZE))
    lut = (rgba[:, :3] * 255).astype(np.uint8)
    lut.flags.writeable = False
    return lut


# Built once at import, read-only afterwards
INFERNO_LUT = _build_inferno_lut()


def field_to_rgb(field, min_temp, max_temp):
    """
    Maps a (ny, nx) temperature field to an (ny, nx, 3) uint8 image via INFERNO_LUT.

    Values are normalized to [min_temp, max_temp] and clamped. A range below
    1e-5 K maps every cell to the coldest color.
    """
    temp_range = max_temp - min_temp
    inv_range = 1.0 / temp_range if temp_range > 1e-5 else 0.0

    t = (np.asarray(field, dtype=np.float64) - min_temp) * inv_range
    t = np.clip(np.nan_to_num(t, nan=0.0), 0.0, 1.0)
    lut_idx = (t * (LUT_SIZE - 1)).astype(np.intp)
    return INFERNO_LUT[lut_idx]


def plot_energy_history(time_array, delta_energy, fig=None, ax=None, show=True, save_path="energy_history.png"):
    """
    Plots the change in total thermal energy over simulated time.

    time_array: simulated time samples [s]
    delta_energy: E - E0 at each sample [J]
    fig: (Optional) matplotlib figure object
    ax: (Optional) matplotlib axes object
    show: (Optional) Whether to save to `save_path` and call plt.show()
    """
    if fig is None or ax is None:
        fig, ax = plt.subplots(figsize=(10, 6))
    else:
        ax.clear()

    ax.plot(time_array, delta_energy, color="tab:orange", linewidth=2)

    ax.set_title("Thermal Energy Change", fontsize=14)
    ax.set_xlabel("Time [s]", fontsize=12)
    ax.set_ylabel("ΔE [J]", fontsize=12)
    ax.grid(True, linestyle='--', alpha=0.7)

    if show and fig is not None:
        if save_path:
            fig.savefig(save_path)
        plt.show()

    return ax


def plot_heatmap(field, sim_config, fig=None, ax=None, clear_fig=False):
    """
    Draws a (ny, nx) temperature field over the plate's physical extent in mm,
    with y pointing up. Returns the AxesImage for later `update_heatmap` calls.
    """
    if fig is None or ax is None:
        fig, ax = plt.subplots(figsize=(8, 6))

    if clear_fig:
        fig.clear()
        ax = fig.add_subplot(111)

    extent = [0.0, sim_config.Lx * 1000.0, 0.0, sim_config.Ly * 1000.0]
    im = ax.imshow(field, cmap="inferno", origin="lower", extent=extent, interpolation="nearest")
    fig.colorbar(im, ax=ax, label="Temperature [K]")
    ax.set_title(f"{sim_config.base_material} plate, {sim_config.Nx}x{sim_config.Ny}")
    ax.set_xlabel("X [mm]")
    ax.set_ylabel("Y [mm]")
    return im


def update_heatmap(im, field, stats):
    """Swaps in a new field and rescales the colors to the range reported in `stats`."""
    im.set_array(field)
    # A flat field would give a zero-width color range
    vmax = max(stats.max_temp, stats.min_temp + 1e-5)
    im.set_clim(vmin=stats.min_temp, vmax=vmax)
    im.axes.set_title(f"t = {stats.time:.2f} s   max {stats.max_temp:.1f} K")
