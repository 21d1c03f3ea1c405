"""Configuration file parser for radiation-moment simulations."""

from pathlib import Path
from typing import Dict, Any

from ..core.benchmarks import BENCHMARKS
from ..core.integrator import FLUX_POLICIES
from ..core.exceptions import ConfigurationError


class ConfigManager:
    """Parse and manage configuration files for radiation-moment simulations."""

    @staticmethod
    def load(config_path: str) -> Dict[str, Any]:
        """
        Load configuration from file.

        File format:
            # Comments
            key = value   # inline comment

        Args:
            config_path: Path to configuration file

        Returns:
            Dictionary of configuration parameters
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config not found: {config_path}")

        config = {}

        with open(path, 'r') as f:
            for line in f:
                line = line.strip()

                if not line or line.startswith('#'):
                    continue

                if '=' not in line:
                    continue

                key, value = line.split('=', 1)
                key = key.strip()
                value = value.strip()

                if '#' in value:
                    value = value.split('#')[0].strip()

                config[key] = ConfigManager._parse_value(value)

        return config

    @staticmethod
    def _parse_value(value: str) -> Any:
        """Parse string to bool, int, float, None or str."""
        if value.lower() in ['true', 'false']:
            return value.lower() == 'true'

        if value.lower() in ['none', '']:
            return None

        try:
            if '.' in value or 'e' in value.lower() or value.lower() in ['inf', 'nan']:
                return float(value)
            else:
                return int(value)
        except ValueError:
            return value

    @staticmethod
    def save(config: Dict[str, Any], config_path: str):
        """
        Save configuration to file.

        Args:
            config: Configuration dictionary
            config_path: Output path
        """
        path = Path(config_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            f.write("# radmoment configuration\n")
            f.write("# Generated automatically\n\n")

            for key, value in sorted(config.items()):
                if isinstance(value, bool):
                    value_str = 'true' if value else 'false'
                elif value is None:
                    value_str = 'none'
                elif isinstance(value, float):
                    if value != 0 and (abs(value) < 1e-4 or abs(value) > 1e4):
                        value_str = f"{value:.6e}"
                    else:
                        value_str = f"{value}"
                else:
                    value_str = str(value)

                f.write(f"{key} = {value_str}\n")

    @staticmethod
    def get_default_config(scenario: str = 'suolson') -> Dict[str, Any]:
        """
        Get default configuration for a benchmark scenario.

        Run settings (t_end, time steps, resolution, error tolerance)
        are taken from the benchmark definition.
        """
        if scenario not in BENCHMARKS:
            raise ConfigurationError(
                f"Unknown scenario {scenario!r}; available: {sorted(BENCHMARKS)}"
            )
        bench = BENCHMARKS[scenario]

        return {
            'scenario': scenario,
            'scenario_name': bench['name'],
            'nx': bench['setup_kwargs']['nx'],
            't_end': bench['t_end'],
            'dt_initial': bench['dt_initial'],
            'dt_max': bench['dt_max'],
            'max_steps': bench['max_steps'],
            'cfl': 0.4,
            'max_iter': 400,
            'reaction_rtol': 1e-10,
            'flux_tolerance': 1e-6,
            'flux_policy': 'clamp',
            'save_dt': None,
            'error_tol': bench['error_tol'],
            'reference_file': None,
            'use_gpu': False,
            'compute_metrics': True,
            'save_csv': True,
            'save_netcdf': True,
            'save_png': True,
            'output_dir': 'outputs',
            'png_dpi': 150,
        }

    @staticmethod
    def validate_config(config: Dict[str, Any]) -> bool:
        """
        Validate configuration parameters.

        Args:
            config: Configuration dictionary

        Returns:
            True if valid

        Raises:
            ConfigurationError: If configuration is invalid
        """
        required = ['scenario', 'nx', 't_end', 'dt_max', 'cfl']

        for key in required:
            if key not in config:
                raise ConfigurationError(f"Missing required parameter: {key}")

        if config['scenario'] not in BENCHMARKS:
            raise ConfigurationError(
                f"scenario must be one of {sorted(BENCHMARKS)}, got {config['scenario']!r}"
            )

        if config.get('nx', 0) < 4:
            raise ConfigurationError("nx must be >= 4")

        if config.get('cfl', 0) <= 0 or config.get('cfl', 0) > 1:
            raise ConfigurationError("cfl must be in (0, 1]")

        if config.get('t_end', 0) <= 0:
            raise ConfigurationError("t_end must be > 0")

        if config.get('dt_max', 0) <= 0:
            raise ConfigurationError("dt_max must be > 0")

        dt_initial = config.get('dt_initial')
        if dt_initial is not None and dt_initial <= 0:
            raise ConfigurationError("dt_initial must be > 0")

        if config.get('max_steps', 1) < 1:
            raise ConfigurationError("max_steps must be >= 1")

        if config.get('flux_policy', 'clamp') not in FLUX_POLICIES:
            raise ConfigurationError(f"flux_policy must be one of {FLUX_POLICIES}")

        return True
