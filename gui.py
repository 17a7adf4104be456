import sys
import time
import logging
import numpy as np
from pydantic import ValidationError
from PyQt6.QtWidgets import (QApplication, QMainWindow, QWidget, QVBoxLayout,
                             QHBoxLayout, QPushButton, QFileDialog, QGroupBox,
                             QLabel, QDoubleSpinBox, QSpinBox, QComboBox, QTextEdit,
                             QFrame, QSplitter, QTableWidget, QTableWidgetItem, QTabWidget)
from PyQt6.QtCore import Qt, QTimer
from matplotlib.backends.backend_qtagg import FigureCanvasQTAgg as FigureCanvas
from matplotlib.figure import Figure
import matplotlib.pyplot as plt

from solver import PlateSolver
from pacing import EnergyHistory, StepPacer
from visualization import plot_heatmap, update_heatmap, plot_energy_history, field_to_rgb
import config

FRAME_INTERVAL_MS = 16

INCLUSION_COLUMNS = ["X [mm]", "Y [mm]", "W [mm]", "H [mm]", "Material"]


# --- Logging Handler for GUI ---
class QTextEditHandler(logging.Handler):
    def __init__(self, text_edit):
        super().__init__()
        self.text_edit = text_edit

    def emit(self, record):
        msg = self.format(record)
        self.text_edit.append(msg)


def _spin(low, high, value, decimals=2, step=1.0):
    spin = QDoubleSpinBox()
    spin.setDecimals(decimals)
    spin.setRange(low, high)
    spin.setSingleStep(step)
    spin.setValue(value)
    return spin


def _material_combo(selected):
    combo = QComboBox()
    combo.addItems(list(config.MATERIALS))
    combo.setCurrentText(selected)
    return combo


# --- Main Window ---
class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("Composite Plate Heat Conduction")
        self.resize(1200, 800)

        self.sim_config = config.default_config()
        self.solver = None
        self.pacer = None
        self.history = EnergyHistory()
        self.last_frame = None
        self.im = None

        self.timer = QTimer(self)
        self.timer.setInterval(FRAME_INTERVAL_MS)
        self.timer.timeout.connect(self.on_tick)

        self.init_ui()
        self.setup_logging()
        self.populate_table()
        self.reset_simulation()

    def init_ui(self):
        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QHBoxLayout(central_widget)

        # Splitter for adjustable panels
        splitter = QSplitter(Qt.Orientation.Horizontal)

        # --- Left Panel: Tabs ---
        left_panel = QFrame()
        left_panel.setMinimumWidth(400)
        left_layout = QVBoxLayout(left_panel)

        self.tabs = QTabWidget()

        # Tab 1: Setup
        setup_tab = QWidget()
        setup_layout = QVBoxLayout(setup_tab)

        cfg = self.sim_config
        hs = cfg.heat_source

        # Plate Group
        plate_group = QGroupBox("Plate")
        plate_layout = QVBoxLayout()
        self.combo_base = _material_combo(cfg.base_material)
        self.spin_grid = QSpinBox()
        self.spin_grid.setRange(2, 400)
        self.spin_grid.setValue(cfg.Nx)
        self.combo_bc = QComboBox()
        self.combo_bc.addItems(["robin", "dirichlet"])
        self.combo_bc.setCurrentText(cfg.boundary_condition)
        self.spin_tamb = _spin(1.0, 2000.0, cfg.ambient_temp)
        self.spin_h = _spin(0.0, 10000.0, cfg.convection_coeff)
        self.spin_sim_duration = _spin(1.0, 3600.0, cfg.simulation_duration)
        self._add_row(plate_layout, "Base material:", self.combo_base)
        self._add_row(plate_layout, "Grid points (N x N):", self.spin_grid)
        self._add_row(plate_layout, "Boundary:", self.combo_bc)
        self._add_row(plate_layout, "T_amb [K]:", self.spin_tamb)
        self._add_row(plate_layout, "h [W/m²K]:", self.spin_h)
        self._add_row(plate_layout, "Sim duration [s]:", self.spin_sim_duration)
        plate_group.setLayout(plate_layout)
        setup_layout.addWidget(plate_group)

        # Heat Source Group
        source_group = QGroupBox("Heat Source")
        source_layout = QVBoxLayout()
        self.spin_src_x = _spin(0.0, 1000.0, hs.x * 1000)
        self.spin_src_y = _spin(0.0, 1000.0, hs.y * 1000)
        self.spin_src_size = _spin(0.0, 1000.0, hs.size * 1000)
        self.spin_power = _spin(0.0, 1e10, hs.power / 1e6, decimals=3)
        self.spin_duration = _spin(0.0, 3600.0, hs.duration)
        self._add_row(source_layout, "X [mm]:", self.spin_src_x)
        self._add_row(source_layout, "Y [mm]:", self.spin_src_y)
        self._add_row(source_layout, "Size [mm]:", self.spin_src_size)
        self._add_row(source_layout, "Power [MW/m³]:", self.spin_power)
        self._add_row(source_layout, "Duration [s]:", self.spin_duration)
        source_group.setLayout(source_layout)
        setup_layout.addWidget(source_group)

        for spin in (self.spin_tamb, self.spin_h, self.spin_sim_duration, self.spin_src_x,
                     self.spin_src_y, self.spin_src_size, self.spin_power, self.spin_duration):
            spin.editingFinished.connect(self.on_config_edit)
        self.spin_grid.editingFinished.connect(self.on_config_edit)
        self.combo_base.currentTextChanged.connect(self.on_config_edit)
        self.combo_bc.currentTextChanged.connect(self.on_config_edit)

        # Execution Group
        exec_group = QGroupBox("Execution")
        exec_layout = QVBoxLayout()
        self.spin_speed = _spin(0.1, 20.0, 1.0, step=0.1)
        self.spin_speed.valueChanged.connect(self.on_speed_changed)
        self._add_row(exec_layout, "Speed:", self.spin_speed)
        self.btn_start = QPushButton("Start")
        self.btn_start.clicked.connect(self.start_simulation)
        self.btn_pause = QPushButton("Pause")
        self.btn_pause.setEnabled(False)
        self.btn_pause.clicked.connect(self.pause_simulation)
        self.btn_reset = QPushButton("Reset")
        self.btn_reset.clicked.connect(self.reset_simulation)
        self.btn_snapshot = QPushButton("Save Snapshot")
        self.btn_snapshot.clicked.connect(self.save_snapshot)
        exec_layout.addWidget(self.btn_start)
        exec_layout.addWidget(self.btn_pause)
        exec_layout.addWidget(self.btn_reset)
        exec_layout.addWidget(self.btn_snapshot)
        exec_group.setLayout(exec_layout)
        setup_layout.addWidget(exec_group)
        setup_layout.addStretch()

        self.tabs.addTab(setup_tab, "Setup")

        # Tab 2: Inclusions
        inc_tab = QWidget()
        inc_layout = QVBoxLayout(inc_tab)

        self.table = QTableWidget()
        self.table.setColumnCount(len(INCLUSION_COLUMNS))
        self.table.setHorizontalHeaderLabels(INCLUSION_COLUMNS)
        self.table.cellChanged.connect(self.on_config_edit)
        inc_layout.addWidget(self.table)
        inc_layout.addWidget(QLabel("Later rows override earlier rows where they overlap."))

        btn_inc_layout = QHBoxLayout()
        self.btn_add_row = QPushButton("Add Inclusion")
        self.btn_add_row.clicked.connect(self.add_inclusion_row)
        self.btn_del_row = QPushButton("Delete Selected")
        self.btn_del_row.clicked.connect(self.delete_inclusion_row)
        btn_inc_layout.addWidget(self.btn_add_row)
        btn_inc_layout.addWidget(self.btn_del_row)
        inc_layout.addLayout(btn_inc_layout)

        self.tabs.addTab(inc_tab, "Inclusions")
        left_layout.addWidget(self.tabs)

        # Stats readout
        self.lbl_stats = QLabel()
        self.lbl_stats.setStyleSheet("font-family: Consolas;")
        left_layout.addWidget(self.lbl_stats)

        # Log Console
        left_layout.addWidget(QLabel("Console Output:"))
        self.log_console = QTextEdit()
        self.log_console.setReadOnly(True)
        self.log_console.setStyleSheet("background-color: #1e1e1e; color: #d4d4d4; font-family: Consolas;")
        left_layout.addWidget(self.log_console)

        splitter.addWidget(left_panel)

        # --- Right Panel: Visualization ---
        right_panel = QFrame()
        right_layout = QVBoxLayout(right_panel)

        self.figure = Figure(figsize=(8, 6))
        self.canvas = FigureCanvas(self.figure)
        right_layout.addWidget(self.canvas)

        self.history_figure = Figure(figsize=(8, 3))
        self.history_canvas = FigureCanvas(self.history_figure)
        self.history_ax = self.history_figure.add_subplot(111)
        right_layout.addWidget(self.history_canvas)

        self.ax = self.figure.add_subplot(111)

        splitter.addWidget(right_panel)

        main_layout.addWidget(splitter)

    @staticmethod
    def _add_row(layout, label, widget):
        row = QHBoxLayout()
        row.addWidget(QLabel(label))
        row.addWidget(widget)
        layout.addLayout(row)

    def setup_logging(self):
        self.handler = QTextEditHandler(self.log_console)
        self.handler.setFormatter(logging.Formatter('%(asctime)s - %(message)s', '%H:%M:%S'))
        # Mirror solver and rasterizer warnings into the console as well
        for name in ("plate_gui", "solver", "rasterizer"):
            logging.getLogger(name).addHandler(self.handler)
        self.logger = logging.getLogger("plate_gui")
        self.logger.setLevel(logging.INFO)
        self.logger.info("Plate GUI Initialized.")

    def log(self, message):
        self.logger.info(message)

    # --- Inclusion table ---
    def populate_table(self):
        self.table.blockSignals(True)
        self.table.setRowCount(len(self.sim_config.inclusions))
        for i, region in enumerate(self.sim_config.inclusions):
            self._fill_row(i, region.x * 1000, region.y * 1000,
                           region.width * 1000, region.height * 1000, region.material_name)
        self.table.blockSignals(False)

    def _fill_row(self, row, x_mm, y_mm, w_mm, h_mm, material_name):
        for col, value in enumerate((x_mm, y_mm, w_mm, h_mm)):
            self.table.setItem(row, col, QTableWidgetItem(f"{value:g}"))
        combo = _material_combo(material_name)
        combo.currentTextChanged.connect(self.on_config_edit)
        self.table.setCellWidget(row, 4, combo)

    def read_inclusions(self):
        """Reads the table into a list of inclusion dicts in meters, skipping malformed rows."""
        inclusions = []
        for i in range(self.table.rowCount()):
            try:
                x, y, w, h_mm = (float(self.table.item(i, col).text()) / 1000.0 for col in range(4))
            except (ValueError, AttributeError):
                continue
            combo = self.table.cellWidget(i, 4)
            inclusions.append({
                'x': x, 'y': y, 'width': w, 'height': h_mm,
                'material_name': combo.currentText() if combo else "",
                'id': f"inc-{i}",
            })
        return inclusions

    def add_inclusion_row(self):
        row = self.table.rowCount()
        self.table.blockSignals(True)
        self.table.insertRow(row)
        self._fill_row(row, 0.0, 0.0, 10.0, 10.0, "Copper")
        self.table.blockSignals(False)
        self.on_config_edit()

    def delete_inclusion_row(self):
        current_row = self.table.currentRow()
        if current_row >= 0:
            self.table.removeRow(current_row)
            self.on_config_edit()

    # --- Configuration ---
    def build_config(self):
        n = self.spin_grid.value()
        heat_source = self.sim_config.heat_source.model_copy(update={
            'x': self.spin_src_x.value() / 1000.0,
            'y': self.spin_src_y.value() / 1000.0,
            'size': self.spin_src_size.value() / 1000.0,
            'power': self.spin_power.value() * 1e6,
            'duration': self.spin_duration.value(),
        })
        return self.sim_config.with_changes(
            Nx=n, Ny=n,
            base_material=self.combo_base.currentText(),
            boundary_condition=self.combo_bc.currentText(),
            ambient_temp=self.spin_tamb.value(),
            convection_coeff=self.spin_h.value(),
            simulation_duration=self.spin_sim_duration.value(),
            heat_source=heat_source.model_dump(),
            inclusions=self.read_inclusions(),
        )

    def on_config_edit(self, *args):
        """Any edit discards the running solver and starts over from the new snapshot."""
        try:
            self.sim_config = self.build_config()
        except ValidationError as e:
            self.log(f"Invalid configuration: {e.error_count()} error(s), keeping previous setup.")
            return
        self.reset_simulation()

    def on_speed_changed(self, value):
        if self.pacer is not None:
            self.pacer.speed = value

    # --- Execution ---
    def reset_simulation(self):
        was_running = self.timer.isActive()
        self.timer.stop()

        self.solver = PlateSolver(self.sim_config)
        self.pacer = StepPacer(self.sim_config.time_step_multiplier, self.spin_speed.value())
        self.history.clear()
        self.last_frame = None

        self.log(f"Solver reset: {self.solver.nx}x{self.solver.ny} grid, dt = {self.solver.dt:.3e} s")
        if self.solver.skipped_inclusions:
            self.log(f"Skipped inclusions: {[pos for pos, _ in self.solver.skipped_inclusions]}")

        self.im = plot_heatmap(self.solver.field, self.sim_config, self.figure, self.ax, clear_fig=True)
        # Update self.ax because fig.clear() invalidated it
        self.ax = self.figure.axes[0]
        self.refresh()

        if was_running:
            self.start_simulation()

    def start_simulation(self):
        if self.solver.unstable:
            self.log("Solver is unstable, reset before starting.")
            return
        self.last_frame = time.perf_counter()
        self.pacer.reset()
        self.timer.start()
        self.btn_start.setEnabled(False)
        self.btn_pause.setEnabled(True)

    def pause_simulation(self):
        self.timer.stop()
        self.btn_start.setEnabled(True)
        self.btn_pause.setEnabled(False)

    def on_tick(self):
        now = time.perf_counter()
        elapsed = now - self.last_frame
        self.last_frame = now

        solver = self.solver
        for _ in range(self.pacer.advance(elapsed)):
            if solver.time >= self.sim_config.simulation_duration or solver.unstable:
                break
            solver.step()

        self.history.record(now, solver.get_stats())

        self.refresh()

        if solver.unstable:
            self.pause_simulation()
            self.log("Simulation became unstable and was stopped.")
        elif solver.time >= self.sim_config.simulation_duration:
            self.pause_simulation()
            self.log(f"Reached simulation duration of {self.sim_config.simulation_duration:.1f} s.")

    def refresh(self):
        stats = self.solver.get_stats()
        update_heatmap(self.im, self.solver.field, stats)
        self.canvas.draw_idle()

        plot_energy_history(list(self.history.times), list(self.history.deltas),
                            self.history_figure, self.history_ax, show=False)
        self.history_canvas.draw_idle()

        source = "on" if self.solver.source_active else "off"
        self.lbl_stats.setText(
            f"t = {stats.time:8.2f} s   steps = {stats.step_count}   source {source}\n"
            f"T min/avg/max = {stats.min_temp:.2f} / {stats.avg_temp:.2f} / {stats.max_temp:.2f} K\n"
            f"E = {stats.total_energy:.4e} J   ΔE = {stats.delta_energy:.4e} J"
        )

    def save_snapshot(self):
        path, _ = QFileDialog.getSaveFileName(self, "Save Snapshot", "", "PNG Files (*.png)")
        if path:
            stats = self.solver.get_stats()
            rgb = field_to_rgb(self.solver.field, stats.min_temp, stats.max_temp)
            # Row 0 is the bottom edge of the plate
            plt.imsave(path, np.flipud(rgb))
            self.log(f"Snapshot saved to {path}")


if __name__ == "__main__":
    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    sys.exit(app.exec())
