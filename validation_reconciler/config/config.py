"""
This module just loads config at import time and does the initial log config
"""

# Standard
from typing import List, Mapping
import os

# First Party
import aconfig
import alog

# Local
from .validation import get_invalid_params

_CONFIG_FILE = os.path.join(os.path.dirname(__file__), "config.yaml")


def restore_empty_numeric_overrides(
    config: aconfig.Config,
    defaults: aconfig.Config,
    environ: Mapping[str, str],
) -> List[str]:
    """An env var that is set but empty counts as unset for numeric keys, so
    the key keeps its default. Non-numeric values are left for validation.

    Returns:
        restored:  List[str]
            The keys that were put back to their defaults
    """
    restored = []
    for key, default in defaults.items():
        if isinstance(default, bool) or not isinstance(default, (int, float)):
            continue
        if environ.get(key.upper()) == "":
            config[key] = default
            restored.append(key)
    return restored


# Read the library config, allowing env overrides
library_config = aconfig.Config.from_yaml(_CONFIG_FILE, override_env_vars=True)
restore_empty_numeric_overrides(
    library_config,
    aconfig.Config.from_yaml(_CONFIG_FILE, override_env_vars=False),
    os.environ,
)

# Parse the validation file, not allowing env overrides
validation_config = aconfig.Config.from_yaml(
    os.path.join(os.path.dirname(__file__), "config_validation.yaml"),
    override_env_vars=False,
)

# Validate the loaded config values. A bad value (e.g. a non-numeric
# RESOURCES_PER_LIST_QUERY) must stop the process before any pass runs.
invalid_params = get_invalid_params(library_config, validation_config)
assert (
    not invalid_params
), f"Library configuration found invalid values: {invalid_params}"

# Do initial alog configuration
alog.configure(
    default_level=library_config.log_level,
    filters=library_config.log_filters,
    formatter="json" if library_config.log_json else "pretty",
    thread_id=library_config.log_thread_id,
)
