import logging
from typing import NamedTuple

import numpy as np

import config
from boundary import apply_boundary
from rasterizer import rasterize_heat_source, rasterize_materials

logger = logging.getLogger(__name__)


class SimulationStats(NamedTuple):
    time: float
    min_temp: float
    max_temp: float
    avg_temp: float
    total_energy: float
    delta_energy: float
    step_count: int


def stable_time_step(K, rho_cp, dx, dy):
    """
    Largest stable explicit timestep for the material field, derated by CFL_SAFETY.

    dt = 0.9 * 0.5 / (alpha_max * (1/dx^2 + 1/dy^2)), alpha = k / (rho * cp).
    A non-positive or non-finite result is replaced by DT_FALLBACK.
    """
    with np.errstate(divide='ignore', invalid='ignore'):
        alpha_max = np.max(K / rho_cp)
        dt = config.CFL_SAFETY * 0.5 / (alpha_max * (1.0 / dx**2 + 1.0 / dy**2))

    if not np.isfinite(dt) or dt <= 0:
        logger.warning("Invalid timestep %r calculated, using fallback %g s.", dt, config.DT_FALLBACK)
        return config.DT_FALLBACK
    return float(dt)


class PlateSolver:
    """
    Explicit FTCS solver for transient conduction on a composite plate.

    Built once from an immutable SimulationConfig. Fields are (ny, nx) arrays
    in C order, so `field[j, i]` is flat index `j * nx + i` of the row-major
    buffer returned by `temperature`.
    """

    def __init__(self, sim_config):
        self.config = sim_config
        self.nx = sim_config.Nx
        self.ny = sim_config.Ny
        self.dx = sim_config.dx
        self.dy = sim_config.dy

        self.time = 0.0
        self.step_count = 0
        self.unstable = False

        # Initialize both buffers with ambient temperature
        T_amb = sim_config.ambient_temp
        self.u = np.full((self.ny, self.nx), T_amb, dtype=np.float64)
        self.u_new = np.full((self.ny, self.nx), T_amb, dtype=np.float64)

        self.K, self.rho_cp, self.skipped_inclusions = rasterize_materials(sim_config)
        self.q_source = rasterize_heat_source(sim_config)

        self.dt = stable_time_step(self.K, self.rho_cp, self.dx, self.dy)
        logger.debug("Solver %dx%d ready, dt = %.3e s", self.nx, self.ny, self.dt)

        # Precompute interface conductivities for interior nodes (1:-1, 1:-1)
        K = self.K
        self.K_xp = 0.5 * (K[1:-1, 1:-1] + K[1:-1, 2:])
        self.K_xm = 0.5 * (K[1:-1, 1:-1] + K[1:-1, :-2])
        self.K_yp = 0.5 * (K[1:-1, 1:-1] + K[2:, 1:-1])
        self.K_ym = 0.5 * (K[1:-1, 1:-1] + K[:-2, 1:-1])
        self.coeff = self.dt / self.rho_cp[1:-1, 1:-1]

        self.E0 = self.calc_energy()
        self.E = self.E0

    def index(self, i, j):
        """Flat row-major index of column i, row j."""
        return j * self.nx + i

    @property
    def field(self):
        """Read-only (ny, nx) view of the current temperature field [K]."""
        view = self.u.view()
        view.flags.writeable = False
        return view

    @property
    def temperature(self):
        """Read-only flat row-major view of the current temperature field [K]."""
        view = self.u.reshape(-1)
        view.flags.writeable = False
        return view

    @property
    def source_active(self):
        return self.time < self.config.heat_source.duration

    def step(self):
        """Advances the field by one dt. Does nothing once the run is unstable."""
        if self.unstable:
            return

        u = self.u
        u_new = self.u_new
        dx2 = self.dx**2
        dy2 = self.dy**2

        # 1. Interior Nodes: div(K grad u) with face-averaged K
        u_int = u[1:-1, 1:-1]
        diff_x = (self.K_xp * (u[1:-1, 2:] - u_int) - self.K_xm * (u_int - u[1:-1, :-2])) / dx2
        diff_y = (self.K_yp * (u[2:, 1:-1] - u_int) - self.K_ym * (u_int - u[:-2, 1:-1])) / dy2

        # 2. Heat source, switched off for good once its duration has elapsed
        if self.source_active:
            q_vol = self.q_source[1:-1, 1:-1]
        else:
            q_vol = 0.0

        u_new[1:-1, 1:-1] = u_int + self.coeff * (diff_x + diff_y + q_vol)

        # 3. Boundary Edges
        cfg = self.config
        apply_boundary(cfg.boundary_condition, u, u_new, self.K, cfg.convection_coeff,
                       self.dx, self.dy, cfg.ambient_temp)

        # 4. Swap buffers
        self.u, self.u_new = u_new, u
        self.time += self.dt
        self.step_count += 1

        self._check_stability()

    def _check_stability(self):
        flat = self.u.reshape(-1)
        center = flat[flat.size // 2]
        if not np.isfinite(center) or not np.isfinite(flat[0]):
            self.unstable = True
            logger.error("Simulation became unstable at t = %.4f s (step %d).", self.time, self.step_count)

    def calc_energy(self):
        """Total thermal energy E = sum(rho_cp * T) * dx * dy * thickness [J]."""
        dV = self.dx * self.dy * config.ENERGY_THICKNESS
        return float(np.sum(self.rho_cp * self.u) * dV)

    def get_stats(self):
        """Summary of the current field. Repeated calls without a step agree exactly."""
        u = self.u
        total_energy = self.calc_energy()
        self.E = total_energy

        return SimulationStats(
            time=self.time,
            min_temp=float(np.min(u)),
            max_temp=float(np.max(u)),
            avg_temp=float(np.mean(u)),
            total_energy=total_energy,
            delta_energy=total_energy - self.E0,
            step_count=self.step_count,
        )
