#!/usr/bin/env python3
"""
Command-line interface for the radmoment radiation transport benchmarks.

Usage:
    radmoment suolson                 # Su & Olson source problem
    radmoment marshak -r table.dat    # Su & Olson Marshak wave
    radmoment pulse                   # Gaussian diffusion pulse
    radmoment -a                      # Run all benchmarks sequentially
    radmoment --all                   # Run all benchmarks sequentially
    radmoment -c config.txt           # Run from config file
    radmoment --config my.txt         # Run from config file
    radmoment --help                  # Show help

Exit status is 1 if any run fails or exceeds its error tolerance.
"""

import argparse
import logging
import os
import sys
import time
from typing import Dict, Any, Optional

import numpy as np
from tqdm import tqdm

from radmoment.core.benchmarks import BENCHMARKS, get_benchmark, evaluate_benchmark
from radmoment.core.integrator import RadIntegrator
from radmoment.core.exceptions import RadMomentError
from radmoment.core.metrics import (
    compute_conservation_metrics,
    compute_all_metrics,
)
from radmoment.io.config_manager import ConfigManager
from radmoment.io.data_handler import DataHandler
from radmoment.utils.logger import SimulationLogger
from radmoment.visualization.animator import Animator


# Columns of the Su & Olson Marshak-wave table: x, ..., Trad, Tmat
MARSHAK_X_COLUMN = 1
MARSHAK_TRAD_COLUMN = 4
MARSHAK_TMAT_COLUMN = 5


# =============================================================================
# Logging Setup
# =============================================================================

def setup_logging(verbose: bool = False) -> logging.Logger:
    """Console logging for the 'radmoment' logger hierarchy."""
    logger = logging.getLogger('radmoment')
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    logger.handlers = []

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.WARNING)
    ch.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    logger.addHandler(ch)

    return logger


def load_marshak_reference(path: str) -> Dict[str, np.ndarray]:
    """Read the Marshak-wave table; positions are scaled by √3."""
    table = DataHandler.load_reference_table(
        path,
        x_column=MARSHAK_X_COLUMN,
        value_columns=[MARSHAK_TRAD_COLUMN, MARSHAK_TMAT_COLUMN],
        x_scale=np.sqrt(3.0),
    )
    return {
        'x': table['x'],
        'Trad': table[MARSHAK_TRAD_COLUMN],
        'Tgas': table[MARSHAK_TMAT_COLUMN],
    }


# =============================================================================
# Main Simulation Runner
# =============================================================================

def run_simulation(
    config: Dict[str, Any],
    output_dir: str = 'outputs',
    log_dir: str = 'logs',
    verbose: bool = False,
) -> Dict[str, Any]:
    """
    Run one benchmark and write its outputs.

    Args:
        config: Configuration dictionary (see ConfigManager.get_default_config)
        output_dir: Directory for output files
        log_dir: Directory for log files
        verbose: Enable verbose output

    Returns:
        Dictionary with the run result, final metrics, comparison and
        timing information
    """
    ConfigManager.validate_config(config)

    scenario = config['scenario']
    bench = get_benchmark(scenario, {'nx': config['nx']})
    scenario_name = f"{scenario}_nx{config['nx']}"

    os.makedirs(output_dir, exist_ok=True)

    sim_logger = SimulationLogger(scenario_name, log_dir=log_dir, verbose=verbose)
    timing = {}

    # Initialize system
    t_start = time.perf_counter()
    system = bench['setup'](**bench['setup_kwargs'])
    timing['system_init'] = time.perf_counter() - t_start

    sim_logger.log_parameters(config, system)

    integrator = RadIntegrator(
        system,
        cfl=config['cfl'],
        max_iter=config.get('max_iter', 400),
        reaction_rtol=config.get('reaction_rtol', 1e-10),
        flux_tolerance=config.get('flux_tolerance', 1e-6),
        flux_policy=config.get('flux_policy', 'clamp'),
        use_gpu=config.get('use_gpu', False),
        logger=sim_logger.logger,
    )

    initial_conservation = compute_conservation_metrics(system)
    sim_logger.log_conservation(initial_conservation, integrator.time)

    print(f"\n{'='*60}")
    print(f"  Running: {config.get('scenario_name', bench['name'])}")
    print(f"  Grid: {system.nx} cells, t_end: {config['t_end']}")
    print(f"{'='*60}\n")

    t_start = time.perf_counter()
    result = integrator.run(
        t_end=config['t_end'],
        dt_max=config['dt_max'],
        dt_initial=config.get('dt_initial'),
        max_steps=config.get('max_steps', 1_000_000),
        save_dt=config.get('save_dt'),
        verbose=True,
    )
    timing['simulation'] = time.perf_counter() - t_start
    print()

    if not result['reached_t_end']:
        sim_logger.warning(
            f"Stopped at t={result['t_final']:.6g} after {result['total_steps']} steps "
            f"(max_steps={config.get('max_steps')})"
        )

    # Final metrics
    t_start = time.perf_counter()
    final_metrics = compute_all_metrics(
        system,
        dt=integrator.last_dt,
        conservation_initial=initial_conservation,
        injected_energy=integrator.injected_energy,
        flux_tolerance=integrator.flux_tolerance,
    )
    timing['metrics'] = time.perf_counter() - t_start

    sim_logger.log_conservation(final_metrics, integrator.time)
    sim_logger.log_stability(final_metrics, integrator.time)
    sim_logger.log_final_metrics(final_metrics)

    # Reference comparison
    reference = None
    if scenario == 'marshak' and config.get('reference_file'):
        reference = load_marshak_reference(config['reference_file'])
    elif scenario == 'marshak':
        sim_logger.warning("No reference table given for the Marshak wave; skipping comparison")

    comparison = evaluate_benchmark(scenario, system, integrator.time, reference)
    if comparison is not None:
        comparison['tolerance'] = config.get('error_tol', comparison['tolerance'])
        comparison['passed'] = bool(comparison['error'] <= comparison['tolerance'])
        sim_logger.log_comparison(bench['name'], comparison['norm'],
                                  comparison['error'], comparison['tolerance'])

    # Post-processing with progress bar
    post_steps = []
    if config.get('save_png', True):
        post_steps += [('Creating profile plot', 'png'), ('Creating history plot', 'history_png')]
    if config.get('save_csv', True):
        post_steps += [('Saving CSV', 'csv')]
    if config.get('save_netcdf', True):
        post_steps += [('Saving NetCDF', 'netcdf')]

    animator = Animator(dpi=config.get('png_dpi', 150))
    output_files = []

    pbar = tqdm(post_steps, desc="Post-processing", unit="step", leave=True)

    for step_name, step_key in pbar:
        pbar.set_description(f"  {step_name}")
        t_start = time.perf_counter()

        if step_key == 'png':
            png_file = f"{output_dir}/{scenario_name}_profiles.png"
            plot_reference = reference
            if comparison is not None and reference is None and scenario == 'suolson':
                plot_reference = {'x': comparison['x_ref'], 'Tgas': comparison['values_ref']}
            animator.create_profile_plot(
                system, png_file, bench['name'], t=integrator.time,
                reference=plot_reference,
                x_scale=np.sqrt(3.0) if scenario == 'marshak' and reference is not None else 1.0,
            )
            output_files.append(png_file)
            timing['png_save'] = time.perf_counter() - t_start

        elif step_key == 'history_png':
            history_png = f"{output_dir}/{scenario_name}_history.png"
            animator.create_history_plot(result, history_png, f"{bench['name']} - Energy")
            output_files.append(history_png)
            timing['visualization'] = time.perf_counter() - t_start

        elif step_key == 'csv':
            profile_csv = f"{output_dir}/{scenario_name}_profile.csv"
            history_csv = f"{output_dir}/{scenario_name}_history.csv"
            metrics_csv = f"{output_dir}/{scenario_name}_metrics.csv"
            DataHandler.save_profile_csv(profile_csv, system)
            DataHandler.save_history_csv(history_csv, result)
            DataHandler.save_final_metrics_csv(metrics_csv, final_metrics)
            output_files += [profile_csv, history_csv, metrics_csv]
            timing['csv_save'] = time.perf_counter() - t_start

        elif step_key == 'netcdf':
            nc_file = f"{output_dir}/{scenario_name}.nc"
            DataHandler.save_netcdf(nc_file, result, config, final_metrics)
            output_files.append(nc_file)
            timing['netcdf_save'] = time.perf_counter() - t_start

    print()

    sim_logger.log_timing(timing)
    sim_logger.finalize()

    # Print clean summary to console
    total_time = sum(timing.values())
    print(f"\n{'='*60}")
    print(f"  SIMULATION COMPLETE")
    print(f"{'='*60}")
    print(f"  Total time: {total_time:.1f}s")
    print(f"  Steps: {result['total_steps']}, t = {integrator.time:.6g}")
    print(f"  Relative energy error: {final_metrics.get('relative_energy_error', 0):.3e}")
    if comparison is not None:
        status = "PASS" if comparison['passed'] else "FAIL"
        print(f"  Relative {comparison['norm']} error: {comparison['error']:.4e} "
              f"(tol {comparison['tolerance']:.3g}) {status}")
    print(f"{'='*60}")
    print(f"  Output files:")
    for path in output_files:
        print(f"    • {path}")
    print(f"    • {sim_logger.log_file}")
    print(f"{'='*60}\n")

    return {
        'result': result,
        'system': system,
        'integrator': integrator,
        'final_metrics': final_metrics,
        'comparison': comparison,
        'passed': comparison['passed'] if comparison is not None else None,
        'timing': timing,
    }


# =============================================================================
# CLI Entry Point
# =============================================================================

def load_config_file(config_path: str) -> Dict[str, Any]:
    """
    Load configuration from a text file over the scenario defaults.

    Args:
        config_path: Path to config file

    Returns:
        Configuration dictionary compatible with run_simulation
    """
    overrides = ConfigManager.load(config_path)
    config = ConfigManager.get_default_config(overrides.get('scenario', 'suolson'))
    config.update(overrides)
    return config


def build_config(
    scenario: str,
    nx: Optional[int] = None,
    t_end: Optional[float] = None,
    reference_file: Optional[str] = None,
    use_gpu: bool = False,
) -> Dict[str, Any]:
    """Default configuration of a scenario with command-line overrides."""
    config = ConfigManager.get_default_config(scenario)
    if nx is not None:
        config['nx'] = nx
    if t_end is not None:
        config['t_end'] = t_end
    if reference_file is not None:
        config['reference_file'] = reference_file
    config['use_gpu'] = use_gpu
    return config


def main(argv=None):
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description='radmoment: 1D two-moment radiation transport benchmarks',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  radmoment suolson                 Run Su & Olson source problem
  radmoment marshak -r table.dat    Run Marshak wave against a reference table
  radmoment pulse                   Run Gaussian diffusion pulse
  radmoment -a                      Run all benchmarks sequentially
  radmoment -c config.txt           Run from config file
  radmoment pulse --nx 200 -v       Run with overrides and verbose output

Available scenarios:
  suolson  Su & Olson (1997) radiating source, tabulated solution at t = 10
  marshak  Su & Olson Marshak wave (needs a reference table for validation)
  pulse    Gaussian pulse in the diffusion limit, analytic solution
        """
    )

    parser.add_argument(
        'scenario',
        nargs='?',
        choices=list(BENCHMARKS.keys()),
        default=None,
        help='Scenario to run (optional if using -a or -c)'
    )

    parser.add_argument(
        '-a', '--all',
        action='store_true',
        help='Run all benchmarks sequentially'
    )

    parser.add_argument(
        '-c', '--config',
        type=str,
        default=None,
        help='Path to configuration file (.txt)'
    )

    parser.add_argument(
        '-r', '--reference',
        type=str,
        default=None,
        help='Reference table for the Marshak wave'
    )

    parser.add_argument('--nx', type=int, default=None, help='Override number of cells')
    parser.add_argument('--t-end', type=float, default=None, help='Override final time')

    parser.add_argument(
        '-o', '--output',
        default='outputs',
        help='Output directory (default: outputs)'
    )

    parser.add_argument(
        '--log-dir',
        default='logs',
        help='Log directory (default: logs)'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    parser.add_argument(
        '--gpu',
        action='store_true',
        help='Use GPU acceleration (requires JAX with CUDA)'
    )

    args = parser.parse_args(argv)

    if not args.all and not args.config and not args.scenario:
        parser.error("Please specify a scenario, use -a/--all, or provide -c/--config")

    setup_logging(args.verbose)

    try:
        if args.all:
            print(f"\n{'='*60}")
            print(f"  RADMOMENT: Running All Benchmarks")
            print(f"{'='*60}\n")

            results = {}
            failed = []

            for i, scenario in enumerate(BENCHMARKS.keys(), 1):
                print(f"\n[{i}/{len(BENCHMARKS)}] Running {scenario}...")
                config = build_config(
                    scenario, nx=args.nx, t_end=args.t_end,
                    reference_file=args.reference if scenario == 'marshak' else None,
                    use_gpu=args.gpu,
                )
                try:
                    run = run_simulation(config, output_dir=args.output,
                                         log_dir=args.log_dir, verbose=args.verbose)
                    results[scenario] = run
                    if run['passed'] is False:
                        failed.append((scenario, "error norm above tolerance"))
                except (RadMomentError, ValueError, RuntimeError, OSError) as e:
                    print(f"  ERROR: {e}")
                    failed.append((scenario, str(e)))

            print(f"\n{'='*60}")
            print(f"  ALL BENCHMARKS COMPLETE")
            print(f"{'='*60}")
            print(f"  Successful: {len(BENCHMARKS) - len(failed)}/{len(BENCHMARKS)}")
            if failed:
                print(f"  Failed: {len(failed)}")
                for scenario, error in failed:
                    print(f"    • {scenario}: {error}")
            print(f"{'='*60}\n")

            return 0 if not failed else 1

        elif args.config:
            if not os.path.exists(args.config):
                print(f"Error: Config file not found: {args.config}", file=sys.stderr)
                return 1

            print(f"\n  Loading config: {args.config}")
            config = load_config_file(args.config)
            if args.reference:
                config['reference_file'] = args.reference
            run = run_simulation(config, output_dir=args.output,
                                 log_dir=args.log_dir, verbose=args.verbose)
            return 1 if run['passed'] is False else 0

        else:
            config = build_config(
                args.scenario, nx=args.nx, t_end=args.t_end,
                reference_file=args.reference, use_gpu=args.gpu,
            )
            run = run_simulation(config, output_dir=args.output,
                                 log_dir=args.log_dir, verbose=args.verbose)
            return 1 if run['passed'] is False else 0

    except KeyboardInterrupt:
        print("\n\nSimulation interrupted by user.")
        return 1
    except (RadMomentError, ValueError, RuntimeError, OSError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
