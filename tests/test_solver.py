import numpy as np
import pytest

import config
from config import HeatSource, Region, SimulationConfig
from solver import PlateSolver, SimulationStats, stable_time_step


def basalt_plate(n=11, length=0.01, **changes):
    """Uniform Basalt plate with dx = dy = length / (n - 1)."""
    params = dict(
        Lx=length, Ly=length, Nx=n, Ny=n,
        base_material="Basalt",
        heat_source=HeatSource(active=False),
        ambient_temp=293.0,
    )
    params.update(changes)
    return SimulationConfig(**params)


def test_index_is_row_major():
    solver = PlateSolver(basalt_plate(n=5).with_changes(Nx=7))
    solver.u = np.arange(5 * 7, dtype=np.float64).reshape(5, 7)
    for j in range(5):
        for i in range(7):
            assert solver.index(i, j) == j * 7 + i
            assert solver.temperature[solver.index(i, j)] == solver.field[j, i]
    assert solver.temperature.shape == (35,)


def test_exposed_field_is_read_only():
    solver = PlateSolver(basalt_plate())
    with pytest.raises(ValueError):
        solver.temperature[0] = 1000.0
    with pytest.raises(ValueError):
        solver.field[0, 0] = 1000.0


def test_initial_state():
    solver = PlateSolver(basalt_plate())
    assert np.all(solver.field == 293.0)
    assert solver.time == 0.0
    assert solver.step_count == 0
    assert not solver.unstable
    stats = solver.get_stats()
    assert stats.delta_energy == 0.0


def test_stable_time_step_formula():
    cfg = config.default_config()
    solver = PlateSolver(cfg)
    alu = config.material("Aluminium")
    expected = 0.9 * 0.5 / (alu.alpha * (1 / cfg.dx**2 + 1 / cfg.dy**2))
    assert solver.dt == pytest.approx(expected)


def test_stable_time_step_fallback():
    K = np.zeros((3, 3))
    rho_cp = np.ones((3, 3))
    assert stable_time_step(K, rho_cp, 0.01, 0.01) == config.DT_FALLBACK
    K = np.full((3, 3), np.nan)
    assert stable_time_step(K, rho_cp, 0.01, 0.01) == config.DT_FALLBACK


def test_step_advances_time_and_counter():
    solver = PlateSolver(basalt_plate())
    for _ in range(3):
        solver.step()
    assert solver.step_count == 3
    assert solver.time == pytest.approx(3 * solver.dt)


def test_dirichlet_decays_to_ambient(edge_mask):
    cfg = basalt_plate(
        boundary_condition="dirichlet",
        heat_source=HeatSource(x=0.005, y=0.005, size=0.002, power=1e7, duration=2.0),
    )
    solver = PlateSolver(cfg)
    mask = edge_mask(cfg.Nx, cfg.Ny)

    while solver.source_active:
        solver.step()
    assert solver.get_stats().max_temp > 293.0

    energies = []
    for _ in range(2000):
        solver.step()
        assert np.all(solver.field[mask] == 293.0)
        energies.append(solver.calc_energy())

    energies = np.array(energies)
    assert np.all(np.diff(energies) <= 1e-9 * energies[0])
    assert np.max(np.abs(solver.field - 293.0)) < 1e-6
    assert solver.get_stats().delta_energy == pytest.approx(0.0, abs=1e-3)


def test_robin_zero_h_is_adiabatic(edge_mask):
    """
    With h = 0 the edges copy their inner neighbour. Energy is conserved only
    while the heat front has not reached the edges; the explicit stencil moves
    it at most one cell per step, and the source sits 19 cells from every edge.
    """
    cfg = basalt_plate(
        n=41, length=0.04,
        boundary_condition="robin", convection_coeff=0.0,
        heat_source=HeatSource(x=0.02, y=0.02, size=0.002, power=5e7, duration=1.0),
    )
    solver = PlateSolver(cfg)
    mask = edge_mask(cfg.Nx, cfg.Ny)

    energies = [solver.calc_energy()]
    while solver.source_active:
        solver.step()
        energies.append(solver.calc_energy())
    assert np.all(np.diff(energies) > 0)
    assert solver.step_count < 10

    e_off = solver.calc_energy()
    while solver.step_count < 15:
        solver.step()
        assert np.allclose(solver.field[mask], 293.0, rtol=0.0, atol=1e-9)
        assert solver.calc_energy() == pytest.approx(e_off, rel=1e-9)


def test_robin_zero_h_gains_energy_at_edges(edge_mask):
    """Once heat reaches the edges, copying the inner neighbour adds energy."""
    cfg = basalt_plate(
        n=11, boundary_condition="robin", convection_coeff=0.0,
        heat_source=HeatSource(x=0.005, y=0.005, size=0.002, power=1e7, duration=1.0),
    )
    solver = PlateSolver(cfg)
    mask = edge_mask(cfg.Nx, cfg.Ny)

    while solver.source_active:
        solver.step()
    e_off = solver.calc_energy()
    for _ in range(200):
        solver.step()

    assert solver.field[mask].max() > 293.0
    assert solver.calc_energy() > e_off


def test_default_configuration_stays_finite():
    solver = PlateSolver(config.default_config())
    for _ in range(1000):
        solver.step()
    assert not solver.unstable
    assert np.all(np.isfinite(solver.temperature))
    assert solver.get_stats().max_temp > config.T_amb


def test_get_stats_idempotent():
    solver = PlateSolver(config.default_config().with_changes(Nx=30, Ny=30))
    for _ in range(25):
        solver.step()
    first = solver.get_stats()
    second = solver.get_stats()
    assert isinstance(first, SimulationStats)
    assert first == second


def test_stats_values():
    solver = PlateSolver(basalt_plate())
    solver.u[5, 5] = 393.0
    stats = solver.get_stats()
    assert stats.min_temp == 293.0
    assert stats.max_temp == 393.0
    assert stats.avg_temp == pytest.approx(293.0 + 100.0 / 121)
    rho_cp = config.material("Basalt").rho_cp
    assert stats.delta_energy == pytest.approx(rho_cp * 100.0 * solver.dx * solver.dy)


def test_source_switches_off_after_duration():
    cfg = basalt_plate(
        n=21, length=0.02,
        convection_coeff=0.0,
        heat_source=HeatSource(x=0.01, y=0.01, size=0.004, power=5e6, duration=10.0),
    )
    solver = PlateSolver(cfg)

    center = []
    while solver.time < 10.0:
        solver.step()
        center.append(solver.field[10, 10])
    assert np.all(np.diff(center) > 0)

    peak = solver.get_stats().max_temp
    assert solver.q_source[10, 10] == 5e6
    for _ in range(50):
        before = solver.get_stats().max_temp
        solver.step()
        assert solver.get_stats().max_temp <= before + 1e-9
    assert solver.get_stats().max_temp < peak


def test_inclusion_order_decides_material():
    big = Region(x=0.0, y=0.0, width=0.006, height=0.006, material_name="Copper")
    small = Region(x=0.003, y=0.003, width=0.004, height=0.004, material_name="Air")
    solver = PlateSolver(basalt_plate(inclusions=(big, small)))
    assert solver.K[4, 4] == config.material("Air").k
    solver = PlateSolver(basalt_plate(inclusions=(small, big)))
    assert solver.K[4, 4] == config.material("Copper").k


def test_skipped_inclusions_reported():
    bogus = Region(x=0.0, y=0.0, width=0.005, height=0.005, material_name="Nope", id="bad")
    solver = PlateSolver(basalt_plate(inclusions=(bogus,)))
    assert solver.skipped_inclusions == [(0, "bad")]
    assert np.all(solver.K == config.material("Basalt").k)


def test_instability_latches():
    solver = PlateSolver(basalt_plate(boundary_condition="dirichlet"))
    solver.u[:, :] = np.nan
    solver.step()
    assert solver.unstable
    time, steps = solver.time, solver.step_count
    snapshot = solver.temperature.copy()

    for _ in range(5):
        solver.step()
    assert solver.unstable
    assert solver.time == time
    assert solver.step_count == steps
    np.testing.assert_array_equal(solver.temperature, snapshot)


def test_heterogeneous_k():
    """Heat spreads further along a copper strip than through the basalt around it."""
    strip = Region(x=0.0, y=0.00475, width=0.01, height=0.0005, material_name="Copper")
    cfg = basalt_plate(
        n=21, inclusions=(strip,), convection_coeff=0.0,
        heat_source=HeatSource(x=0.005, y=0.005, size=0.0005, power=1e9, duration=1e3),
    )
    solver = PlateSolver(cfg)
    assert solver.K[10, 10] == config.material("Copper").k

    for _ in range(200):
        solver.step()

    along_copper = solver.field[10, 16]
    across_basalt = solver.field[16, 10]
    assert along_copper > across_basalt
