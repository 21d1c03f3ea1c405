"""Data handler for saving radiation-moment results to CSV and NetCDF."""

import numpy as np
import pandas as pd
from netCDF4 import Dataset
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional, Sequence

from ..core.rad_system import (
    RAD_ENERGY, X1_RAD_FLUX, GAS_ENERGY, GAS_DENSITY, GAS_MOMENTUM,
    VARIABLE_NAMES,
)


class DataHandler:
    """Handle saving radiation-moment data to various formats."""

    @staticmethod
    def profile_frame(system) -> pd.DataFrame:
        """Interior-cell profile of the current state as a DataFrame."""
        return pd.DataFrame({
            'x': system.x,
            'Erad': system.Erad,
            'Frad': system.Frad,
            'Egas': system.Egas,
            'rho': system.rho,
            'Tgas': system.gas_temperature(),
            'Trad': system.radiation_temperature(),
            'reduced_flux': system.reduced_flux(),
        })

    @staticmethod
    def save_profile_csv(filepath: str, system):
        """
        Save the current radiation and gas profiles to CSV.

        Args:
            filepath: Output file path
            system: RadSystem
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        df = DataHandler.profile_frame(system)
        df.to_csv(filepath, index=False, float_format='%.8e')

    @staticmethod
    def save_history_csv(filepath: str, result: Dict[str, Any]):
        """
        Save energy history of a run to CSV.

        Args:
            filepath: Output file path
            result: Result dictionary of RadIntegrator.run
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        E_rad = np.asarray(result['radiation_energy'])
        E_gas = np.asarray(result['gas_energy'])
        df = pd.DataFrame({
            'time': result['times'],
            'radiation_energy': E_rad,
            'gas_energy': E_gas,
            'total_energy': E_rad + E_gas,
            # First entry is the initial state
            'dt': np.concatenate([[np.nan], result['dt']]),
        })
        df.to_csv(filepath, index=False, float_format='%.8e')

    @staticmethod
    def save_final_metrics_csv(filepath: str, metrics: Dict[str, Any]):
        """
        Save final state metrics to CSV.

        Args:
            filepath: Output file path
            metrics: Metrics dictionary
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        rows = []
        for key, value in sorted(metrics.items()):
            if isinstance(value, (int, float, bool, str)):
                rows.append({
                    'Metric': key,
                    'Value': value,
                    'Type': type(value).__name__
                })

        df = pd.DataFrame(rows)
        df.to_csv(filepath, index=False)

    @staticmethod
    def load_reference_table(
        filepath: str,
        x_column: int,
        value_columns: Sequence[int],
        x_scale: float = 1.0,
        header_lines: int = 1,
    ) -> Dict[str, np.ndarray]:
        """
        Read a whitespace-separated reference solution table.

        Args:
            filepath: Path to table
            x_column: Column index of the position
            value_columns: Column indices of the solution values
            x_scale: Factor applied to the position column
            header_lines: Number of header lines to skip

        Returns:
            Dictionary with 'x' and one array per value column, keyed by
            column index
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Reference table not found: {filepath}")

        df = pd.read_csv(path, sep=r'\s+', header=None, skiprows=header_lines,
                         comment='#', engine='python')
        ncols = df.shape[1]
        for col in [x_column, *value_columns]:
            if col >= ncols:
                raise ValueError(
                    f"Column {col} out of range: {filepath} has {ncols} columns"
                )

        table = {'x': x_scale * df[x_column].to_numpy(dtype=np.float64)}
        for col in value_columns:
            table[col] = df[col].to_numpy(dtype=np.float64)
        return table

    @staticmethod
    def save_netcdf(
        filepath: str,
        result: Dict[str, Any],
        config: Dict[str, Any],
        final_metrics: Optional[Dict[str, Any]] = None
    ):
        """
        Save snapshots and energy history to NetCDF.

        Creates a NetCDF file with:
            - Snapshots of all conserved variables at saved times
            - Derived radiation and gas temperatures
            - Energy history of every step
            - Final metrics and run settings as attributes

        Args:
            filepath: Output file path
            result: Result dictionary of RadIntegrator.run
            config: Configuration dictionary
            final_metrics: Metrics for final state
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        system = result['system']
        snapshots = result['snapshots']
        times = np.array([s[0] for s in snapshots])
        n_time = len(times)
        U_all = np.stack([s[1] for s in snapshots])
        n_var, nx = U_all.shape[1:]

        with Dataset(str(filepath), 'w', format='NETCDF4') as nc:
            # ============ Dimensions ============
            nc.createDimension('time', n_time)
            nc.createDimension('x', nx)
            nc.createDimension('variable', n_var)
            nc.createDimension('step', len(result['times']))

            # ============ Coordinate Variables ============
            nc_time = nc.createVariable('time', 'f8', ('time',), zlib=True)
            nc_time[:] = times
            nc_time.long_name = "simulation_time"
            nc_time.axis = "T"

            nc_x = nc.createVariable('x', 'f8', ('x',), zlib=True)
            nc_x[:] = system.x
            nc_x.long_name = "cell_centre"
            nc_x.axis = "X"

            # ============ Field Variables ============
            nc_U = nc.createVariable('U', 'f8', ('time', 'variable', 'x'), zlib=True)
            nc_U[:] = U_all
            nc_U.long_name = "conserved_variables"
            nc_U.description = ", ".join(VARIABLE_NAMES)

            nc_E = nc.createVariable('radiation_energy', 'f8', ('time', 'x'), zlib=True)
            nc_E[:] = U_all[:, RAD_ENERGY]
            nc_E.long_name = "radiation_energy_density"

            nc_F = nc.createVariable('radiation_flux', 'f8', ('time', 'x'), zlib=True)
            nc_F[:] = U_all[:, X1_RAD_FLUX]
            nc_F.long_name = "x1_radiation_flux"

            nc_Eg = nc.createVariable('gas_energy', 'f8', ('time', 'x'), zlib=True)
            nc_Eg[:] = U_all[:, GAS_ENERGY]
            nc_Eg.long_name = "total_gas_energy_density"

            # Derived temperatures
            rho = U_all[:, GAS_DENSITY]
            e_int = U_all[:, GAS_ENERGY] - 0.5 * np.sum(U_all[:, GAS_MOMENTUM]**2, axis=1) / rho
            Tgas = np.asarray(system.problem.gas_temperature(rho, e_int))
            a_rad = system.constants.radiation_constant
            Trad = (np.maximum(U_all[:, RAD_ENERGY], 0.0) / a_rad)**0.25

            nc_Tg = nc.createVariable('gas_temperature', 'f8', ('time', 'x'), zlib=True)
            nc_Tg[:] = Tgas
            nc_Tg.long_name = "gas_temperature"

            nc_Tr = nc.createVariable('radiation_temperature', 'f8', ('time', 'x'), zlib=True)
            nc_Tr[:] = Trad
            nc_Tr.long_name = "radiation_temperature"

            # ============ Energy History ============
            nc_ht = nc.createVariable('history_time', 'f8', ('step',), zlib=True)
            nc_ht[:] = result['times']
            nc_hr = nc.createVariable('history_radiation_energy', 'f8', ('step',), zlib=True)
            nc_hr[:] = result['radiation_energy']
            nc_hg = nc.createVariable('history_gas_energy', 'f8', ('step',), zlib=True)
            nc_hg[:] = result['gas_energy']

            # ============ Final Metrics ============
            if final_metrics is not None:
                for key, value in final_metrics.items():
                    if isinstance(value, bool):
                        nc.setncattr(f'final_{key}', int(value))
                    elif isinstance(value, (int, float)):
                        nc.setncattr(f'final_{key}', float(value))

            # ============ Global Attributes ============
            for key, value in system.constants.to_dict().items():
                nc.setncattr(key, int(value) if isinstance(value, bool) else float(value))
            nc.nx = int(system.nx)
            nc.Lx = float(system.Lx)

            nc.t_end = float(result.get('t_end', times[-1]))
            nc.t_final = float(result.get('t_final', times[-1]))
            nc.cfl = float(config.get('cfl', 0.4))
            nc.total_steps = int(result.get('total_steps', 0))
            nc.n_snapshots = int(n_time)

            nc.scenario_name = config.get('scenario_name', 'Radiation Simulation')
            nc.problem = system.problem.name
            nc.backend = result.get('backend', 'cpu')

            nc.title = "1D Two-Moment Radiation Transport - radmoment"
            nc.source = "JAX-accelerated finite volume solver"
            nc.history = f"Created {datetime.now().isoformat()}"
            nc.Conventions = "CF-1.8"
            nc.license = "MIT"

    @staticmethod
    def load_netcdf(filepath: str) -> Dict[str, Any]:
        """
        Load simulation data from NetCDF file.

        Args:
            filepath: Path to NetCDF file

        Returns:
            Dictionary with simulation data
        """
        with Dataset(str(filepath), 'r') as nc:
            result = {
                'times': np.array(nc.variables['time'][:]),
                'x': np.array(nc.variables['x'][:]),
                'U': np.array(nc.variables['U'][:]),
                'radiation_energy': np.array(nc.variables['radiation_energy'][:]),
                'radiation_flux': np.array(nc.variables['radiation_flux'][:]),
                'gas_energy': np.array(nc.variables['gas_energy'][:]),
                'gas_temperature': np.array(nc.variables['gas_temperature'][:]),
                'radiation_temperature': np.array(nc.variables['radiation_temperature'][:]),
                'history_time': np.array(nc.variables['history_time'][:]),
                'history_radiation_energy': np.array(nc.variables['history_radiation_energy'][:]),
                'history_gas_energy': np.array(nc.variables['history_gas_energy'][:]),
            }

            for attr in nc.ncattrs():
                result[attr] = nc.getncattr(attr)

        return result
