"""
Configuration file support for the factorsea CLI.

Supports YAML and JSON config files with CLI argument override.

Example (YAML):

    data: expression.csv
    loadings: weights.csv
    scores: factors.csv
    feature_sets: reactome.gmt
    output: results/fsea
    view: mRNA
    factors: [Factor1, Factor3]
    enrichment:
      feature_statistic: z
      statistical_test: cor.adj.parametric
      p_adjust_method: BH
      alpha: 0.05
"""

import json
from argparse import Namespace
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml

from factorsea.enrichment import EnrichmentConfig
from factorsea.exceptions import InvalidConfigurationError

PATH_KEYS = ('data', 'loadings', 'scores', 'feature_sets', 'output')
TOP_LEVEL_KEYS = PATH_KEYS + ('view', 'factors', 'enrichment')
SHORT_OPTIONS = {'-o': 'output'}


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters:
        config_path: Path to config file (.yaml, .yml, or .json)

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported or invalid

    Examples:
        >>> config = load_config(Path("fsea.yaml"))
        >>> print(config['enrichment']['statistical_test'])
        cor.adj.parametric
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    try:
        with open(config_path, 'r') as f:
            if suffix in ('.yaml', '.yml'):
                config = yaml.safe_load(f)
            elif suffix == '.json':
                config = json.load(f)
            else:
                raise ValueError(
                    f"Unsupported config format: {suffix}. "
                    f"Use .yaml, .yml, or .json"
                )
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}") from e

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise ValueError("Config file must contain a dictionary/mapping at top level")

    return config


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration structure and values.

    Unknown keys are rejected and the ``enrichment`` section is checked by
    building an ``EnrichmentConfig`` from it.

    Raises:
        InvalidConfigurationError: If configuration is invalid
    """
    unknown = [key for key in config if key.replace('-', '_') not in TOP_LEVEL_KEYS]
    if unknown:
        raise InvalidConfigurationError(
            f"Unknown config keys {unknown}. Valid keys: {', '.join(TOP_LEVEL_KEYS)}"
        )

    enrichment = _section(config, 'enrichment')
    if enrichment is not None:
        if not isinstance(enrichment, dict):
            raise InvalidConfigurationError("'enrichment' section must be a mapping")
        EnrichmentConfig.from_dict(enrichment)


def _section(config: Dict[str, Any], key: str) -> Any:
    for name in (key, key.replace('_', '-')):
        if name in config:
            return config[name]
    return None


def _explicit_args(cli_args: Optional[List[str]]) -> Set[str]:
    """Destination names of the options present on the command line."""
    explicit = set()
    for arg in cli_args or []:
        if arg.startswith('--'):
            explicit.add(arg[2:].split('=', 1)[0].replace('-', '_'))
        elif arg[:2] in SHORT_OPTIONS:
            # -o out, -oout
            explicit.add(SHORT_OPTIONS[arg[:2]])
    return explicit


def _merge_value(cli_value: Any, config_value: Any, was_explicitly_set: bool) -> Any:
    """
    Merge a single config value with CLI argument.

    Rules:
    - CLI args ALWAYS override config if explicitly set
    - If CLI arg not set, use config value
    - If neither set, keep CLI default
    """
    if was_explicitly_set:
        return cli_value
    if config_value is not None:
        return config_value
    return cli_value


def merge_config_with_args(
    config: Dict[str, Any],
    args: Namespace,
    cli_args: Optional[List[str]] = None,
) -> Namespace:
    """
    Merge config file values with CLI arguments.

    Priority (highest to lowest):
    1. Explicitly provided CLI arguments
    2. Config file values
    3. CLI argument defaults

    Parameters:
        config: Configuration dictionary from load_config()
        args: Parsed CLI arguments (argparse.Namespace)
        cli_args: Raw CLI arguments list (for detecting explicit values).
                  If None, assumes all args are defaults

    Returns:
        Updated Namespace with merged values
    """
    validate_config(config)
    explicit_args = _explicit_args(cli_args)
    merged = Namespace(**vars(args))

    for key in PATH_KEYS:
        config_value = _section(config, key)
        if config_value is not None:
            config_value = Path(config_value)
        setattr(merged, key, _merge_value(getattr(merged, key, None), config_value, key in explicit_args))

    for key in ('view', 'factors'):
        config_value = _section(config, key)
        if key == 'factors' and isinstance(config_value, (str, int)):
            config_value = [config_value]
        setattr(merged, key, _merge_value(getattr(merged, key, None), config_value, key in explicit_args))

    enrichment = _section(config, 'enrichment') or {}
    for key, value in enrichment.items():
        name = key.replace('-', '_').replace('.', '_')
        setattr(merged, name, _merge_value(getattr(merged, name, None), value, name in explicit_args))

    return merged
