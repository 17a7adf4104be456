# config.py
# Constants, Material Presets and Configuration Snapshot for 2D Plate Heat Conduction
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# --- Numerical Constants ---
CFL_SAFETY = 0.9        # Derating of the von Neumann bound
DT_FALLBACK = 1e-5      # Used when the CFL timestep is degenerate [s]
ENERGY_THICKNESS = 1.0  # Out-of-plane thickness for energy bookkeeping [m]

# --- Material Presets ---
# Thermal conductivity k [W/mK], specific heat cp [J/kgK], density rho [kg/m^3]
MATERIALS = {
    # Metals (high conductivity)
    "Diamond": {"k": 1000.0, "cp": 506.0, "rho": 3500.0, "color": "#b9f2ff", "symbol": "C"},
    "Silver": {"k": 426.77, "cp": 236.0, "rho": 10500.0, "color": "#c0c0c0", "symbol": "Ag"},
    "Copper": {"k": 397.48, "cp": 385.0, "rho": 8940.0, "color": "#b87333", "symbol": "Cu"},
    "Gold": {"k": 317.98, "cp": 128.0, "rho": 19300.0, "color": "#ffd700", "symbol": "Au"},
    "Aluminium": {"k": 225.94, "cp": 921.0, "rho": 2698.0, "color": "#848789", "symbol": "Al"},
    "Bronze": {"k": 54.392, "cp": 377.0, "rho": 8750.0, "color": "#cd7f32", "symbol": "Brz"},
    # Non-metals (low conductivity)
    "Basalt": {"k": 2.55, "cp": 800.0, "rho": 2850.0, "color": "#4a4a4a", "symbol": "Bst"},
    "Water": {"k": 0.6, "cp": 4181.0, "rho": 997.05, "color": "#3498db", "symbol": "H2O"},
    "Fiberglass": {"k": 0.176, "cp": 1130.0, "rho": 1230.0, "color": "#e67e22", "symbol": "FG"},
    "Air": {"k": 0.0025, "cp": 1004.0, "rho": 1.29, "color": "#ecf0f1", "symbol": "Air"},
}

# --- Plate ---
PLATE_LX = 0.1   # Plate width [m]
PLATE_LY = 0.1   # Plate height [m]
GRID_NX = 100    # Grid points in x
GRID_NY = 100    # Grid points in y
BASE_MATERIAL = "Basalt"

# --- Environment ---
T_amb = 293.0   # Ambient (and initial) temperature [K]
h = 50.0        # Convective heat transfer coefficient at the edges [W/(m^2*K)]
BOUNDARY_CONDITION = "robin"

# --- Heat Source (hotspot) ---
SOURCE_X = 0.02         # Center x [m]
SOURCE_Y = 0.05         # Center y [m]
SOURCE_SIZE = 0.005     # Edge length of the square [m]
SOURCE_POWER = 5e7      # Volumetric power density [W/m^3]
SOURCE_DURATION = 10.0  # Time the source stays on [s]

# --- Host Pacing ---
TIME_STEP_MULTIPLIER = 2.0  # Solver steps per frame at 60 FPS and speed 1
SIMULATION_DURATION = 60.0  # Simulated time after which the front-end stops [s]

BoundaryCondition = Literal["dirichlet", "robin"]


class Material(BaseModel):
    """Physical properties of one material, all strictly positive."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    k: float = Field(..., gt=0.0, description="Thermal conductivity [W/(m K)]")
    cp: float = Field(..., gt=0.0, description="Specific heat [J/(kg K)]")
    rho: float = Field(..., gt=0.0, description="Density [kg/m^3]")

    @property
    def rho_cp(self) -> float:
        """Volumetric heat capacity [J/(m^3 K)]."""
        return self.rho * self.cp

    @property
    def alpha(self) -> float:
        """Thermal diffusivity [m^2/s]."""
        return self.k / self.rho_cp


class Region(BaseModel):
    """Rectangular inclusion anchored at its lower-left corner, in meters."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    x: float
    y: float
    width: float = Field(..., ge=0.0)
    height: float = Field(..., ge=0.0)
    material_name: str
    id: Optional[str] = None


class HeatSource(BaseModel):
    """Square hotspot centered at (x, y)."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    x: float = SOURCE_X
    y: float = SOURCE_Y
    size: float = Field(default=SOURCE_SIZE, ge=0.0)
    power: float = Field(default=SOURCE_POWER, description="Volumetric power density [W/m^3]")
    duration: float = Field(default=SOURCE_DURATION, ge=0.0, description="On-time [s]")
    active: bool = True


class SimulationConfig(BaseModel):
    """
    Immutable configuration snapshot consumed by one PlateSolver.

    Lengths are SI meters, temperatures Kelvin. Editing a simulation means
    building a new snapshot (see `with_changes`) and a new solver from it.
    The pacing fields are read by the front-end only; the solver ignores them.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    Lx: float = Field(default=PLATE_LX, gt=0.0, description="Plate width [m]")
    Ly: float = Field(default=PLATE_LY, gt=0.0, description="Plate height [m]")
    Nx: int = Field(default=GRID_NX, ge=2)
    Ny: int = Field(default=GRID_NY, ge=2)

    base_material: str = BASE_MATERIAL
    inclusions: tuple[Region, ...] = ()
    heat_source: HeatSource = Field(default_factory=HeatSource)

    ambient_temp: float = Field(default=T_amb, description="Ambient and initial temperature [K]")
    convection_coeff: float = Field(default=h, ge=0.0, description="h [W/(m^2 K)]")
    boundary_condition: BoundaryCondition = BOUNDARY_CONDITION

    time_step_multiplier: float = Field(default=TIME_STEP_MULTIPLIER, gt=0.0)
    simulation_duration: float = Field(default=SIMULATION_DURATION, gt=0.0)

    @property
    def dx(self) -> float:
        return self.Lx / (self.Nx - 1)

    @property
    def dy(self) -> float:
        return self.Ly / (self.Ny - 1)

    def with_changes(self, **changes) -> "SimulationConfig":
        """Returns a new validated snapshot with the given fields replaced."""
        data = self.model_dump()
        data.update(changes)
        return SimulationConfig.model_validate(data)


def material(name):
    """Looks up a material preset by name. Returns None for unknown names."""
    props = MATERIALS.get(name)
    if props is None:
        return None
    return Material(name=name, k=props["k"], cp=props["cp"], rho=props["rho"])


def default_config():
    """Basalt plate with one Aluminium inclusion and an active hotspot."""
    return SimulationConfig(
        inclusions=(
            Region(x=0.04, y=0.04, width=0.02, height=0.02,
                   material_name="Aluminium", id="default-inc-1"),
        ),
        heat_source=HeatSource(),
    )
