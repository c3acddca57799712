"""
Common utilities shared across the library
"""

# Standard
from datetime import timedelta
from typing import Any, Optional
import re

# First Party
import alog

# Local
from . import constants

log = alog.use_channel("RCUTL")

# Sentinel for missing dict values
__MISSING__ = "__MISSING__"

## Dicts #######################################################################


def nested_get(dct: dict, key: str, dflt=None) -> Any:
    """Helper to get values from a dict using 'foo.bar' key notation

    Unlike a plain lookup, an intermediate value that is not a dict is treated
    as a missing key. Objects read from the cluster are untrusted, so a label
    path that runs into a scalar simply does not resolve.

    Args:
        dct:  dict
            The dict to search
        key:  str
            Key that may contain '.' notation indicating dict nesting
        dflt:  Any
            The value to return when the key is not found

    Returns:
        val:  Any
            Whatever is found at the given key or dflt if the key is not found.
            This includes missing intermediate dicts.
    """
    parts = key.split(constants.NESTED_DICT_DELIM)
    for part in parts[:-1]:
        dct = dct.get(part, __MISSING__)
        if dct is __MISSING__ or not isinstance(dct, dict):
            return dflt
    return dct.get(parts[-1], dflt)


## Time ########################################################################

# CITE: https://stackoverflow.com/questions/4628122/how-to-construct-a-timedelta-object-from-a-simple-string
_TIME_DELTA_REGEX = re.compile(
    r"^((?P<hours>\d+?)h)?((?P<minutes>\d+?)m)?((?P<seconds>\d*\.?\d+?)s)?$"
)


def parse_time_delta(time_str: str) -> Optional[timedelta]:
    """Parse a string into a timedelta. Accepts values in the following
    formats: 1h, 5m, 10s, 1h30m, 0.5s

    Args:
        time_str: str
            The string representation of a timedelta

    Returns:
        result: Optional[timedelta]
            The parsed timedelta if one could be found
    """
    if not isinstance(time_str, str):
        return None
    parts = _TIME_DELTA_REGEX.match(time_str)
    if not parts or all(part is None for part in parts.groupdict().values()):
        return None
    time_params = {
        name: float(param) for name, param in parts.groupdict().items() if param
    }
    return timedelta(**time_params)


## Api Versions ################################################################


def split_api_version(api_version: str):
    """Split an apiVersion string into its (group, version) parts. The core
    group has no group prefix (e.g. "v1").
    """
    api_version = api_version or ""
    if constants.API_VERSION_DELIM in api_version:
        group, version = api_version.split(constants.API_VERSION_DELIM, 1)
        return group, version
    return "", api_version


def join_api_version(group: str, version: str) -> str:
    """Inverse of split_api_version"""
    if group:
        return f"{group}{constants.API_VERSION_DELIM}{version}"
    return version
