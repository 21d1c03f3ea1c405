"""
Visualization module for 1D radiation-moment simulations.

Provides the Animator class for creating:
    - Profile plots (temperatures, energies, reduced flux) with optional
      reference solution markers
    - Energy history plots (radiation, gas, total energy, time step)
    - GIF animations of the temperature profiles

Uses dark theme with publication-quality output.
"""

import numpy as np
import matplotlib.pyplot as plt
import matplotlib.animation as animation
from typing import Dict, Optional, Any

from ..core.rad_system import RAD_ENERGY, GAS_ENERGY, GAS_DENSITY, GAS_MOMENTUM


# Set dark style globally
plt.style.use('dark_background')


class Animator:
    """
    Plotting and animation class for radiation-moment simulations.

    Attributes:
        fps: Frames per second for animations
        dpi: Resolution for saved figures
    """

    def __init__(self, fps: int = 10, dpi: int = 150):
        self.fps = fps
        self.dpi = dpi

        self.colors = {
            'radiation': '#FFD93D',    # Yellow
            'gas': '#FF6B9D',          # Pink
            'total': '#00D4AA',        # Cyan-green
            'flux': '#7FB3FF',         # Blue
            'reference': '#ffffff',    # White markers
            'grid': '#2a2a3e',
            'text': '#ffffff',
        }

        self.fig_facecolor = '#1a1a2e'
        self.ax_facecolor = '#16213e'

    def _style_axis(self, ax, xlabel: str, ylabel: str, title: str):
        ax.set_facecolor(self.ax_facecolor)
        ax.set_xlabel(xlabel, color=self.colors['text'])
        ax.set_ylabel(ylabel, color=self.colors['text'])
        ax.set_title(title, color=self.colors['text'])
        ax.tick_params(colors=self.colors['text'])
        ax.grid(True, color=self.colors['grid'], alpha=0.5)

    def create_profile_plot(
        self,
        system,
        filename: str,
        title: str = "Radiation Profiles",
        t: Optional[float] = None,
        reference: Optional[Dict[str, np.ndarray]] = None,
        x_scale: float = 1.0,
    ) -> None:
        """
        Create a 2x2 plot of the current profiles.

        Panels:
            - Radiation and gas temperature
            - Radiation and gas energy density
            - Reduced flux |F|/(ĉE)
            - Radiation flux

        Args:
            system: RadSystem
            filename: Output file path
            title: Plot title
            t: Simulation time shown in the title
            reference: Optional reference solution with 'x' and any of
                'Trad', 'Tgas', 'Erad', 'Egas'
            x_scale: Factor applied to cell positions before plotting
        """
        x = system.x * x_scale

        fig, axes = plt.subplots(2, 2, figsize=(12, 9), facecolor=self.fig_facecolor)
        time_label = f"\nt = {t:.4g}" if t is not None else ""
        fig.suptitle(f"{title}{time_label}", fontsize=14, color=self.colors['text'])

        ax = axes[0, 0]
        ax.plot(x, system.radiation_temperature(), color=self.colors['radiation'], label='$T_{rad}$')
        ax.plot(x, system.gas_temperature(), color=self.colors['gas'], ls='--', label='$T_{gas}$')
        self._style_axis(ax, 'x', 'Temperature', 'Temperatures')

        ax = axes[0, 1]
        ax.plot(x, system.Erad, color=self.colors['radiation'], label='$E_{rad}$')
        ax.plot(x, system.Egas, color=self.colors['gas'], ls='--', label='$E_{gas}$')
        self._style_axis(ax, 'x', 'Energy density', 'Energy densities')

        if reference is not None:
            x_ref = reference['x']
            for key, axis in (('Trad', axes[0, 0]), ('Tgas', axes[0, 0]),
                              ('Erad', axes[0, 1]), ('Egas', axes[0, 1])):
                if key in reference:
                    axis.plot(x_ref, reference[key], ls='none', marker='*',
                              color=self.colors['reference'], label=f'{key} (reference)')

        for axis in axes[0]:
            axis.legend(facecolor=self.ax_facecolor, edgecolor='gray')

        ax = axes[1, 0]
        ax.plot(x, system.reduced_flux(), color=self.colors['flux'])
        ax.axhline(1.0, color=self.colors['text'], ls=':', lw=0.8)
        self._style_axis(ax, 'x', r'$|F|/(\hat{c}E)$', 'Reduced flux')

        ax = axes[1, 1]
        ax.plot(x, system.Frad, color=self.colors['flux'])
        self._style_axis(ax, 'x', '$F_1$', 'Radiation flux')

        plt.tight_layout()
        plt.savefig(filename, dpi=self.dpi, facecolor=self.fig_facecolor,
                    bbox_inches='tight')
        plt.close(fig)

    def create_history_plot(
        self,
        result: Dict[str, Any],
        filename: str,
        title: str = "Energy History"
    ) -> None:
        """
        Create energy budget and time-step history plot.

        Args:
            result: Result dictionary of RadIntegrator.run
            filename: Output file path
            title: Plot title
        """
        times = np.asarray(result['times'])
        E_rad = np.asarray(result['radiation_energy'])
        E_gas = np.asarray(result['gas_energy'])
        E_tot = E_rad + E_gas

        fig, axes = plt.subplots(1, 2, figsize=(13, 5), facecolor=self.fig_facecolor)
        fig.suptitle(title, fontsize=14, color=self.colors['text'])

        ax = axes[0]
        ax.plot(times, E_rad, color=self.colors['radiation'], label='Radiation')
        ax.plot(times, E_gas, color=self.colors['gas'], label='Gas')
        ax.plot(times, E_tot, color=self.colors['total'], ls='--', label='Total')
        self._style_axis(ax, 't', 'Energy', 'Energy budget')
        ax.legend(facecolor=self.ax_facecolor, edgecolor='gray')

        ax = axes[1]
        dt = np.asarray(result['dt'])
        if dt.size:
            ax.semilogy(times[1:], dt, color=self.colors['flux'])
        self._style_axis(ax, 't', r'$\Delta t$', 'Time step')

        plt.tight_layout()
        plt.savefig(filename, dpi=self.dpi, facecolor=self.fig_facecolor,
                    bbox_inches='tight')
        plt.close(fig)

    def create_animation(
        self,
        result: Dict[str, Any],
        filename: str,
        title: str = "Radiation Transport",
        verbose: bool = False
    ) -> None:
        """
        Create GIF animation of the temperature profiles.

        Args:
            result: Result dictionary of RadIntegrator.run
            filename: Output GIF file path
            title: Animation title
            verbose: Print progress
        """
        snapshots = result.get('snapshots', [])
        if len(snapshots) < 2:
            if verbose:
                print("Not enough snapshots for animation")
            return

        system = result['system']
        x = system.x
        a_rad = system.constants.radiation_constant

        def temperatures(U):
            rho = U[GAS_DENSITY]
            e = U[GAS_ENERGY] - 0.5 * np.sum(U[GAS_MOMENTUM]**2, axis=0) / rho
            Tgas = system.problem.gas_temperature(rho, e)
            Trad = (np.maximum(U[RAD_ENERGY], 0.0) / a_rad)**0.25
            return Trad, Tgas

        profiles = [temperatures(U) for _, U in snapshots]
        vmax = max(max(np.max(Tr), np.max(Tg)) for Tr, Tg in profiles)

        fig, ax = plt.subplots(figsize=(8, 5), facecolor=self.fig_facecolor)
        self._style_axis(ax, 'x', 'Temperature', '')
        ax.set_xlim(x[0], x[-1])
        ax.set_ylim(0, 1.05 * vmax)

        line_rad, = ax.plot(x, profiles[0][0], color=self.colors['radiation'], label='$T_{rad}$')
        line_gas, = ax.plot(x, profiles[0][1], color=self.colors['gas'], ls='--', label='$T_{gas}$')
        ax.legend(facecolor=self.ax_facecolor, edgecolor='gray')
        time_text = ax.set_title(f"{title}\nt = {snapshots[0][0]:.4g}", color=self.colors['text'])

        def update(frame):
            Trad, Tgas = profiles[frame]
            line_rad.set_ydata(Trad)
            line_gas.set_ydata(Tgas)
            time_text.set_text(f"{title}\nt = {snapshots[frame][0]:.4g}")
            return [line_rad, line_gas, time_text]

        if verbose:
            print(f"Creating animation with {len(snapshots)} frames...")

        anim = animation.FuncAnimation(
            fig, update, frames=len(snapshots),
            interval=1000 // self.fps, blit=True
        )

        anim.save(filename, writer='pillow', fps=self.fps,
                  savefig_kwargs={'facecolor': self.fig_facecolor})
        plt.close(fig)

        if verbose:
            print(f"Animation saved to {filename}")
