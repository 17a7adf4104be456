import logging
import math

import numpy as np

import config

logger = logging.getLogger(__name__)


def region_indices(x_start, x_end, y_start, y_end, dx, dy, nx, ny, upper=math.floor):
    """
    Converts a physical rectangle [m] to an inclusive index range clipped to the grid.

    The lower bounds always use floor; `upper` picks the rounding of the upper
    bounds. Returns None when the rectangle lies entirely outside the grid.
    """
    i_start = max(0, math.floor(x_start / dx))
    i_end = min(nx - 1, upper(x_end / dx))
    j_start = max(0, math.floor(y_start / dy))
    j_end = min(ny - 1, upper(y_end / dy))

    if i_start > i_end or j_start > j_end:
        return None
    return i_start, i_end, j_start, j_end


def resolve_base_material(name):
    """Returns the base material, falling back to the default preset for unknown names."""
    mat = config.material(name)
    if mat is None:
        logger.warning("Unknown base material %r, falling back to %s.", name, config.BASE_MATERIAL)
        mat = config.material(config.BASE_MATERIAL)
    return mat


def rasterize_materials(sim_config):
    """
    Builds the conductivity and volumetric heat capacity fields.

    The plate is filled with the base material, then every inclusion is painted
    over it in list order, so overlapping cells end up with the material of the
    last inclusion covering them. Inclusions naming an unknown material are
    skipped and reported in the returned list as (position, id) pairs.
    """
    nx, ny = sim_config.Nx, sim_config.Ny
    dx, dy = sim_config.dx, sim_config.dy

    base = resolve_base_material(sim_config.base_material)
    k = np.full((ny, nx), base.k, dtype=np.float64)
    rho_cp = np.full((ny, nx), base.rho_cp, dtype=np.float64)

    skipped = []
    for pos, region in enumerate(sim_config.inclusions):
        mat = config.material(region.material_name)
        if mat is None:
            logger.warning("Skipping inclusion %d (%s): unknown material %r.",
                           pos, region.id, region.material_name)
            skipped.append((pos, region.id))
            continue

        bounds = region_indices(region.x, region.x + region.width,
                                region.y, region.y + region.height,
                                dx, dy, nx, ny)
        if bounds is None:
            continue
        i_start, i_end, j_start, j_end = bounds
        k[j_start:j_end + 1, i_start:i_end + 1] = mat.k
        rho_cp[j_start:j_end + 1, i_start:i_end + 1] = mat.rho_cp

    return k, rho_cp, skipped


def rasterize_heat_source(sim_config):
    """
    Generates the static volumetric source map q_source [W/m^3].

    The upper bounds are rounded up so the painted square is never smaller
    than requested. Whether the map is applied is decided per step.
    """
    nx, ny = sim_config.Nx, sim_config.Ny
    q_source = np.zeros((ny, nx), dtype=np.float64)

    hs = sim_config.heat_source
    if not hs.active:
        return q_source

    half = hs.size / 2.0
    bounds = region_indices(hs.x - half, hs.x + half, hs.y - half, hs.y + half,
                            sim_config.dx, sim_config.dy, nx, ny, upper=math.ceil)
    if bounds is None:
        return q_source

    i_start, i_end, j_start, j_end = bounds
    q_source[j_start:j_end + 1, i_start:i_end + 1] = hs.power
    logger.debug("Heat source covers %d cells.", (i_end - i_start + 1) * (j_end - j_start + 1))
    return q_source
