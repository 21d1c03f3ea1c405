#!/usr/bin/env python
"""
Example: Advanced analysis with the radmoment library.

This script demonstrates:
- A user-defined problem built from custom closures
- Convergence of the Gaussian pulse with resolution
- Comparison with the Su & Olson tabulated solution at t = 1

Run with:
    python examples/advanced_analysis.py
"""

import numpy as np
from pathlib import Path
import pandas as pd

from radmoment import RadSystem, RadConstants, RadProblem, RadIntegrator
from radmoment import compute_conservation_metrics, compute_stability_metrics
from radmoment.core.closures import (
    PowerLawOpacity,
    BoundaryPolicy,
    MarshakBoundary,
    ReflectingBoundary,
    SlabSource,
)
from radmoment.core.benchmarks import (
    setup_gaussian_pulse,
    setup_suolson_source,
    evaluate_benchmark,
)


def custom_problem():
    """Kramers-like opacity slab heated from the left and from inside."""
    print("\n" + "=" * 60)
    print("CUSTOM PROBLEM")
    print("=" * 60)

    problem = RadProblem(
        opacity=PowerLawOpacity(10.0, rho_exponent=1.0, T_exponent=-3.5, T_floor=1e-2),
        boundary=BoundaryPolicy(MarshakBoundary(1.0), ReflectingBoundary()),
        source=SlabSource(strength=0.5, x0=0.2, t_cutoff=0.5),
        name='kramers_slab',
    )
    constants = RadConstants(erad_floor=1e-10)
    system = RadSystem(nx=200, Lx=2.0, constants=constants, problem=problem)
    system.init_equilibrium(T=0.01, rho=1.0)

    integrator = RadIntegrator(system, cfl=0.4)
    initial = compute_conservation_metrics(system)

    print("\n  Running to t=1.0...")
    integrator.run(t_end=1.0, dt_max=5e-3, verbose=False)

    cons = compute_conservation_metrics(system, initial, integrator.injected_energy)
    stab = compute_stability_metrics(system, integrator.last_dt)

    # Boundary inflow is not included in injected_energy
    print(f"    Energy change: {cons['energy_change']:.4e}")
    print(f"    Source energy: {integrator.injected_energy:.4e}")
    print(f"    Boundary inflow: {cons['energy_error']:.4e}")
    print(f"    Max Tgas: {stab['max_gas_temperature']:.4f}")
    print(f"    Max reduced flux: {stab['max_reduced_flux']:.4f}")

    return system


def pulse_convergence():
    """Relative L1 error of the Gaussian pulse for several resolutions."""
    print("\n" + "=" * 60)
    print("GAUSSIAN PULSE CONVERGENCE")
    print("=" * 60)

    rows = []
    for nx in (50, 100, 200):
        system = setup_gaussian_pulse(nx=nx)
        integrator = RadIntegrator(system, cfl=0.4)
        print(f"\n  Running nx={nx}...")
        integrator.run(t_end=0.01, dt_max=1e-5, verbose=False)

        comparison = evaluate_benchmark('pulse', system, integrator.time)
        rows.append({
            'nx': nx,
            'steps': integrator.step_count,
            'L1 error': comparison['error'],
        })

    df = pd.DataFrame(rows)
    errors = df['L1 error'].to_numpy()
    df['order'] = np.concatenate([[np.nan], np.log2(errors[:-1] / errors[1:])])

    print("\n  === CONVERGENCE ===")
    print(df.to_string(index=False))

    return df


def suolson_early_time():
    """Su & Olson gas temperature at t = 1."""
    print("\n" + "=" * 60)
    print("SU & OLSON AT t = 1")
    print("=" * 60)

    system = setup_suolson_source(nx=300, Lx=15.0)
    integrator = RadIntegrator(system, cfl=0.4)

    print("\n  Running to t=1.0...")
    integrator.run(t_end=1.0, dt_max=1e-2, dt_initial=1e-9, verbose=False)

    comparison = evaluate_benchmark('suolson', system, integrator.time)
    df = pd.DataFrame({
        'x': comparison['x_ref'],
        'Tgas (reference)': comparison['values_ref'],
        'Tgas (numerical)': comparison['values_interp'],
    })
    print(df.to_string(index=False))
    print(f"\n  Relative L1 error: {comparison['error']:.4e}")

    return df


def main():
    print("=" * 60)
    print("radmoment: Advanced Analysis Examples")
    print("=" * 60)

    # Create output directory
    output_dir = Path("example_outputs")
    output_dir.mkdir(exist_ok=True)

    custom_problem()

    df_conv = pulse_convergence()
    df_conv.to_csv(output_dir / "pulse_convergence.csv", index=False)
    print(f"\n  Saved convergence to: {output_dir / 'pulse_convergence.csv'}")

    df_suolson = suolson_early_time()
    df_suolson.to_csv(output_dir / "suolson_t1.csv", index=False)
    print(f"\n  Saved comparison to: {output_dir / 'suolson_t1.csv'}")

    print("\n" + "=" * 60)
    print("Advanced analysis complete!")
    print("Check 'example_outputs' directory for results.")
    print("=" * 60)


if __name__ == "__main__":
    main()
