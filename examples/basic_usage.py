#!/usr/bin/env python
"""
Example: Basic usage of the radmoment library.

This script runs the Su & Olson Marshak wave on a short domain, then
writes profiles, metrics and an animation.

Run with:
    python examples/basic_usage.py
"""

from pathlib import Path

from radmoment import RadIntegrator
from radmoment import compute_all_metrics, compute_conservation_metrics
from radmoment.core.benchmarks import setup_marshak_wave
from radmoment.io.data_handler import DataHandler
from radmoment.visualization.animator import Animator


def main():
    print("=" * 60)
    print("radmoment: 1D Two-Moment Radiation Transport")
    print("=" * 60)

    # Create output directory
    output_dir = Path("example_outputs")
    output_dir.mkdir(exist_ok=True)

    # 1. Define the radiation system
    print("\n[1] Creating radiation system (Marshak wave)...")
    system = setup_marshak_wave(nx=400, Lz=20.0)
    print(f"    {system}")
    print(f"    {system.problem!r}")

    # 2. Initialize the integrator
    print("\n[2] Initializing integrator...")
    integrator = RadIntegrator(
        system,
        cfl=0.4,
        use_gpu=False  # Set to True if you have GPU
    )
    print(f"    {integrator}")

    initial = compute_conservation_metrics(system)

    # 3. Run simulation
    print("\n[3] Running simulation...")
    result = integrator.run(
        t_end=3.0,
        dt_max=1e-2,
        save_dt=0.1,
        verbose=True
    )

    print(f"\n    Simulation complete!")
    print(f"    Snapshots: {len(result['snapshots'])}")
    print(f"    Total steps: {result['total_steps']}")

    # 4. Compute metrics
    print("\n[4] Computing metrics...")
    metrics = compute_all_metrics(
        system,
        dt=integrator.last_dt,
        conservation_initial=initial,
        verbose=True
    )

    # Energy enters through the hohlraum boundary, so the budget is open
    print("\n    === KEY METRICS ===")
    print(f"    Energy gained through boundary: {metrics['energy_change']:.4e}")
    print(f"    Max reduced flux: {metrics['max_reduced_flux']:.4f}")
    print(f"    Max Trad: {metrics['max_radiation_temperature']:.4f}")
    print(f"    Max |Trad - Tgas|/Tgas: {metrics['max_nonequilibrium']:.4f}")

    # 5. Save results
    print("\n[5] Saving results...")

    profile_file = output_dir / "marshak_profile.csv"
    DataHandler.save_profile_csv(profile_file, system)
    print(f"    Saved: {profile_file}")

    metrics_file = output_dir / "marshak_metrics.csv"
    DataHandler.save_final_metrics_csv(metrics_file, metrics)
    print(f"    Saved: {metrics_file}")

    nc_file = output_dir / "marshak.nc"
    config = {'scenario_name': 'Marshak Wave Example', 'cfl': integrator.cfl}
    DataHandler.save_netcdf(nc_file, result, config, metrics)
    print(f"    Saved: {nc_file}")

    # 6. Create visualization
    print("\n[6] Creating visualizations...")
    animator = Animator(fps=10, dpi=150)

    png_file = output_dir / "marshak_profiles.png"
    animator.create_profile_plot(system, png_file, "Marshak Wave", t=integrator.time)
    print(f"    Saved: {png_file}")

    gif_file = output_dir / "marshak_animation.gif"
    animator.create_animation(result, gif_file, "Marshak Wave", verbose=True)

    print("\n" + "=" * 60)
    print("Done! Check 'example_outputs' directory for results.")
    print("=" * 60)


if __name__ == "__main__":
    main()
