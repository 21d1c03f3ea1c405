"""Simulation logger for radiation-moment runs."""

import logging
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, List


class SimulationLogger:
    """Logger for radiation-moment simulations with run diagnostics."""

    def __init__(
        self,
        scenario_name: str,
        log_dir: str = "logs",
        verbose: bool = True
    ):
        """
        Initialize simulation logger.

        Args:
            scenario_name: Scenario name (for log filename)
            log_dir: Directory for log files
            verbose: Print warnings and errors to console
        """
        self.scenario_name = scenario_name
        self.log_dir = Path(log_dir)
        self.verbose = verbose

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.log_dir / f"{scenario_name}.log"

        self.logger = self._setup_logger()
        self.warnings: List[str] = []
        self.errors: List[str] = []

    def _setup_logger(self) -> logging.Logger:
        """Configure a file logger under the 'radmoment' hierarchy."""
        logger = logging.getLogger(f"radmoment.{self.scenario_name}")
        logger.setLevel(logging.DEBUG)
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers = []

        handler = logging.FileHandler(self.log_file, mode='w')
        handler.setLevel(logging.DEBUG)

        formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)

        logger.addHandler(handler)
        return logger

    def info(self, msg: str):
        """Log informational message."""
        self.logger.info(msg)

    def warning(self, msg: str):
        """Log warning message."""
        self.logger.warning(msg)
        self.warnings.append(msg)

        if self.verbose:
            print(f"  WARNING: {msg}")

    def error(self, msg: str):
        """Log error message."""
        self.logger.error(msg)
        self.errors.append(msg)

        if self.verbose:
            print(f"  ERROR: {msg}")

    def log_parameters(self, config: Dict[str, Any], system=None):
        """Log all simulation parameters."""
        self.info("=" * 70)
        self.info("1D TWO-MOMENT RADIATION TRANSPORT - RADMOMENT")
        self.info(f"Scenario: {config.get('scenario_name', 'Unknown')}")
        self.info("=" * 70)
        self.info("")

        if system is not None:
            self.info("GRID PARAMETERS:")
            self.info(f"  nx = {system.nx}")
            self.info(f"  Lx = {system.Lx:.6g}")
            self.info(f"  dx = {system.dx:.6e}")
            self.info("")
            self.info("PHYSICAL CONSTANTS:")
            for key, value in system.constants.to_dict().items():
                self.info(f"  {key} = {value}")
            self.info("")
            self.info(f"PROBLEM: {system.problem!r}")
            self.info("")

        self.info("SIMULATION PARAMETERS:")
        self.info(f"  t_end = {config.get('t_end')}")
        self.info(f"  dt_initial = {config.get('dt_initial')}")
        self.info(f"  dt_max = {config.get('dt_max')}")
        self.info(f"  max_steps = {config.get('max_steps')}")
        self.info(f"  CFL = {config.get('cfl', 0.4)}")
        self.info(f"  max_iter = {config.get('max_iter', 400)}")
        self.info(f"  flux_policy = {config.get('flux_policy', 'clamp')}")
        self.info(f"  use_gpu = {config.get('use_gpu', False)}")

        self.info("=" * 70)
        self.info("")

    def log_conservation(self, metrics: Dict[str, float], t: float):
        """Log energy budget at a time."""
        self.info(f"Conservation at t={t:.6g}:")
        self.info(f"  Radiation energy: {metrics.get('radiation_energy', 0):.8e}")
        self.info(f"  Gas energy: {metrics.get('gas_energy', 0):.8e}")
        self.info(f"  Total energy: {metrics.get('total_energy', 0):.8e}")
        if 'relative_energy_error' in metrics:
            self.info(f"  Relative energy error: {metrics['relative_energy_error']:.3e}")

    def log_stability(self, metrics: Dict[str, float], t: float):
        """Log stability metrics."""
        self.info(f"Stability at t={t:.6g}:")
        self.info(f"  CFL number: {metrics.get('cfl_number', 0):.4f}")
        self.info(f"  Max reduced flux: {metrics.get('max_reduced_flux', 0):.6f}")
        self.info(f"  Min Erad: {metrics.get('min_erad', 0):.6e}")
        self.info(f"  Causality satisfied: {metrics.get('causality_satisfied', False)}")

    def log_comparison(self, name: str, norm: str, error: float, tolerance: float):
        """Log error against a reference solution."""
        status = "PASS" if error <= tolerance else "FAIL"
        msg = f"{name}: relative {norm} error = {error:.6e} (tolerance {tolerance:.3g}) {status}"
        if error <= tolerance:
            self.info(msg)
        else:
            self.warning(msg)

    def log_timing(self, timing: Dict[str, float]):
        """Log timing breakdown."""
        self.info("=" * 70)
        self.info("TIMING BREAKDOWN:")
        self.info("=" * 70)

        for key, value in sorted(timing.items()):
            if key != 'total':
                self.info(f"  {key}: {value:.3f} s")

        self.info(f"  {'-' * 40}")
        total_time = timing.get('total', sum(timing.values()))
        self.info(f"  TOTAL: {total_time:.3f} s")

        self.info("=" * 70)
        self.info("")

    def log_final_metrics(self, metrics: Dict[str, Any]):
        """Log final simulation metrics."""
        self.info("=" * 70)
        self.info("FINAL METRICS:")
        self.info("=" * 70)

        sections = (('cons_', "CONSERVATION:", "{:.8e}"), ('stab_', "STABILITY:", "{:.6g}"))
        for prefix, title, fmt in sections:
            self.info(title)
            for key in sorted(metrics.keys()):
                if key.startswith(prefix):
                    value = metrics[key]
                    if isinstance(value, bool):
                        self.info(f"  {key[len(prefix):]}: {value}")
                    elif isinstance(value, (int, float)):
                        self.info(f"  {key[len(prefix):]}: {fmt.format(value)}")

        self.info("=" * 70)

    def finalize(self):
        """Write final summary."""
        self.info("=" * 70)
        self.info("SIMULATION SUMMARY:")
        self.info("=" * 70)
        self.info("")

        if self.errors:
            self.info(f"ERRORS: {len(self.errors)}")
            for i, err in enumerate(self.errors, 1):
                self.info(f"  {i}. {err}")
        else:
            self.info("ERRORS: None")

        self.info("")

        if self.warnings:
            self.info(f"WARNINGS: {len(self.warnings)}")
            for i, warn in enumerate(self.warnings, 1):
                self.info(f"  {i}. {warn}")
        else:
            self.info("WARNINGS: None")

        self.info("")
        self.info(f"Log file: {self.log_file}")
        self.info("=" * 70)
        self.info(f"Simulation completed: {self.scenario_name}")
        self.info(f"Timestamp: {datetime.now().isoformat()}")
        self.info("=" * 70)

        for handler in self.logger.handlers:
            handler.flush()
