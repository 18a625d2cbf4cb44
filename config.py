# config.py
import copy
import logging

import yaml

logger = logging.getLogger(__name__)

EFFECT_KINDS = ('pulse', 'sustained')
RATE_SOURCES = ('current', 'average')


class ConfigError(ValueError):
    """Raised when a configuration value is outside its allowed domain"""


def get_default_config():
    """
    Provide default configuration used when no file is given or loading fails

    Returns:
        dict: Default configuration values
    """
    return {
        'eyes': {
            'left_indices': [33, 160, 158, 133, 153, 144],
            'right_indices': [362, 385, 387, 263, 373, 380],
        },
        'smoothing': {'ear_window': 2, 'position_window': 1},
        'blinks': {
            'close_threshold': 0.35,
            'reopen_buffer': 0.05,
            'min_interval_s': 0.2,
            'confirmation_delay_s': 0.0,
        },
        'rate': {'window_s': 60.0, 'average_guard_s': 60.0, 'prune_interval_s': 1.0},
        'alerts': {
            'target_rate': 15,
            'sustained_below_s': 3.0,
            'startup_grace_s': 10.0,
            'check_interval_s': 10.0,
            'effect_kind': 'pulse',
            'effect_durations': {'pulse': 0.15, 'sustained': 1.0},
            'rate_source': 'current',
        },
        'camera': {'index': 0, 'width': 1280, 'height': 720, 'fps': 30, 'mirror_effect': True},
        'display': {
            'dashboard_width': 320,
            'show_landmarks': True,
            'show_fps': True,
            'colors': {
                'background': [45, 45, 45],
                'text_primary': [255, 255, 255],
                'text_secondary': [200, 200, 200],
                'rate_good': [100, 255, 100],
                'rate_low': [100, 100, 255],
                'landmarks': [0, 255, 0],
            },
        },
        'logging': {'level': 'INFO', 'event_log': True, 'log_dir': 'logs'},
    }


def merge_config(base, override):
    """
    Recursively merge ``override`` into a copy of ``base``

    Nested sections are merged key by key so a partial YAML file only
    replaces the values it names.
    """
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(config_path=None):
    """
    Load configuration from a YAML file with fallback defaults

    Args:
        config_path: Path to configuration file (optional)

    Returns:
        dict: Configuration dictionary
    """
    defaults = get_default_config()
    if not config_path:
        return defaults
    try:
        with open(config_path, 'r') as file:
            loaded = yaml.safe_load(file) or {}
        logger.info("Configuration loaded from %s", config_path)
    except FileNotFoundError:
        logger.warning("Config file %s not found. Using defaults.", config_path)
        return defaults
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Error loading config: %s. Using defaults.", e)
        return defaults
    if not isinstance(loaded, dict):
        logger.warning("Config file %s is not a mapping. Using defaults.", config_path)
        return defaults
    return merge_config(defaults, loaded)


_NON_NEGATIVE = {
    'smoothing': ('ear_window', 'position_window'),
    'blinks': ('close_threshold', 'reopen_buffer', 'min_interval_s', 'confirmation_delay_s'),
    'rate': ('window_s', 'average_guard_s', 'prune_interval_s'),
    'alerts': ('target_rate', 'sustained_below_s', 'startup_grace_s', 'check_interval_s'),
}

# periodic timer intervals
_POSITIVE = {
    'rate': ('prune_interval_s',),
    'alerts': ('check_interval_s',),
}


def validate_config(config):
    """
    Check tunables for non-negativity, timer intervals for positivity
    and enum fields for known values

    Args:
        config: Configuration dictionary

    Raises:
        ConfigError: On the first offending value
    """
    for section, keys in _NON_NEGATIVE.items():
        section_config = config.get(section, {})
        for key in keys:
            value = section_config.get(key)
            if value is None:
                continue
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ConfigError(f"{section}.{key} must be a number, got {value!r}")
            if value < 0:
                raise ConfigError(f"{section}.{key} must be non-negative, got {value}")

    for section, keys in _POSITIVE.items():
        section_config = config.get(section, {})
        for key in keys:
            value = section_config.get(key)
            if value is not None and value <= 0:
                raise ConfigError(f"{section}.{key} must be positive, got {value}")

    alerts_config = config.get('alerts', {})
    effect_kind = alerts_config.get('effect_kind', 'pulse')
    if effect_kind not in EFFECT_KINDS:
        raise ConfigError(f"alerts.effect_kind must be one of {EFFECT_KINDS}, got {effect_kind!r}")
    rate_source = alerts_config.get('rate_source', 'current')
    if rate_source not in RATE_SOURCES:
        raise ConfigError(f"alerts.rate_source must be one of {RATE_SOURCES}, got {rate_source!r}")
    for kind, duration in alerts_config.get('effect_durations', {}).items():
        if duration < 0:
            raise ConfigError(f"alerts.effect_durations.{kind} must be non-negative, got {duration}")
    return config
