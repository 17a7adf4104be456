import config
import pytest
from pydantic import ValidationError


def test_materials_defined():
    assert hasattr(config, 'MATERIALS')
    for name in ("Basalt", "Aluminium", "Copper", "Air"):
        assert name in config.MATERIALS
    for props in config.MATERIALS.values():
        assert props["k"] > 0 and props["cp"] > 0 and props["rho"] > 0


def test_material_lookup():
    alu = config.material("Aluminium")
    assert alu.k == 225.94
    assert alu.rho_cp == pytest.approx(2698.0 * 921.0)
    assert alu.alpha == pytest.approx(225.94 / (2698.0 * 921.0))
    assert config.material("Unobtainium") is None


def test_default_config():
    cfg = config.default_config()
    assert (cfg.Nx, cfg.Ny) == (100, 100)
    assert cfg.base_material == "Basalt"
    assert cfg.boundary_condition == "robin"
    assert cfg.inclusions[0].material_name == "Aluminium"
    assert cfg.heat_source.duration == 10.0
    assert cfg.dx == pytest.approx(0.1 / 99)
    assert cfg.dy == pytest.approx(0.1 / 99)


def test_config_is_frozen():
    cfg = config.default_config()
    with pytest.raises(ValidationError):
        cfg.Nx = 10


def test_with_changes_returns_new_snapshot():
    cfg = config.default_config()
    changed = cfg.with_changes(Nx=20, boundary_condition="dirichlet")
    assert changed.Nx == 20
    assert changed.boundary_condition == "dirichlet"
    assert changed.inclusions == cfg.inclusions
    assert cfg.Nx == 100


def test_simulation_duration_editable():
    cfg = config.default_config().with_changes(simulation_duration=120.0)
    assert cfg.simulation_duration == 120.0
    assert config.default_config().simulation_duration == config.SIMULATION_DURATION


@pytest.mark.parametrize("changes", [
    {"Nx": 1},
    {"Lx": 0.0},
    {"Ly": -0.1},
    {"boundary_condition": "neumann"},
    {"convection_coeff": -1.0},
    {"simulation_duration": 0.0},
])
def test_invalid_config_rejected(changes):
    with pytest.raises(ValidationError):
        config.default_config().with_changes(**changes)


def test_invalid_material_properties_rejected():
    with pytest.raises(ValidationError):
        config.Material(name="Void", k=0.0, cp=1.0, rho=1.0)
