# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

""" Manages runtime options for flanker

    Options are built per call with build_config(), there is no shared state
    between separate runs. Values supplied by the caller are layered over the
    defaults in default.cfg, then checked.

"""

from argparse import Namespace
from configparser import ConfigParser
import math
from typing import Any, Dict, Iterator, Optional, Tuple, Union

from flanker.common.errors import ConfigurationError
from flanker.custom_typing import ConfigType

from .loader import load_config_from_file

# options that apply to the logging setup, allowed at the top level for convenience
_LOGGING_KEYS = ("verbose", "debug", "logfile")


class Config(ConfigType):  # since it's a glorified namespace, pylint: disable=too-few-public-methods
    """ Keeps options values for a single flanker run.
        Values can be read as attributes or with get(), but never changed.
    """
    def __init__(self, indict: Dict[str, Any]) -> None:  # pylint: disable=super-init-not-called
        if indict:
            self.__dict__.update(indict)

    def get(self, key: str, default: Any = None) -> Any:
        """ Returns a value for a key if the key exists, otherwise returns
            the default value provided or None """
        return self.__dict__.get(key, default)

    def __getattr__(self, attr: str) -> Any:
        if attr in self.__dict__:
            return self.__dict__[attr]
        raise AttributeError(f"Config has no attribute: {attr}")

    def __setattr__(self, attr: str, value: Any) -> None:
        raise RuntimeError("Config options can't be set directly")

    def __iter__(self) -> Iterator[Tuple[str, Any]]:
        for i in self.__dict__.items():
            yield i

    def __repr__(self) -> str:
        return str(self)

    def __str__(self) -> str:
        return str(dict(self))

    def __len__(self) -> int:
        return len(self.__dict__)


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer, not {value!r}")
    try:
        result = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer, not {value!r}")
    if isinstance(value, float) and result != value:
        raise ConfigurationError(f"{name} must be an integer, not {value!r}")
    return result


def _as_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a number, not {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, not {value!r}")


def check_distance(name: str, value: Any) -> int:
    """ Converts and checks a distance option, which must be a non-negative integer

        Arguments:
            name: the name of the option, for error messages
            value: the raw value

        Returns:
            the distance as an int
    """
    distance = _as_int(name, value)
    if distance < 0:
        raise ConfigurationError(f"{name} cannot be negative: {distance}")
    return distance


def check_fraction(name: str, value: Any) -> float:
    """ Converts and checks a fraction option, which must be within [0, 1]

        Arguments:
            name: the name of the option, for error messages
            value: the raw value

        Returns:
            the fraction as a float
    """
    fraction = _as_float(name, value)
    if not 0. <= fraction <= 1.:
        raise ConfigurationError(f"{name} must be between 0 and 1: {fraction}")
    return fraction


def check_cluster_distance(name: str, value: Any) -> float:
    """ Converts and checks a midpoint distance option, which must be a
        finite, non-negative number

        Arguments:
            name: the name of the option, for error messages
            value: the raw value

        Returns:
            the distance as a float
    """
    distance = _as_float(name, value)
    if not math.isfinite(distance):
        raise ConfigurationError(f"{name} must be a finite number: {distance}")
    if distance < 0:
        raise ConfigurationError(f"{name} cannot be negative: {distance}")
    return distance


def _as_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ConfigParser.BOOLEAN_STATES:
        return ConfigParser.BOOLEAN_STATES[value.lower()]
    raise ConfigurationError(f"{name} must be a boolean, not {value!r}")


def _validate(values: Dict[str, Any]) -> None:
    values["distance"] = check_distance("distance", values["distance"])
    values["min_in"] = check_fraction("min_in", values["min_in"])
    values["max_out"] = check_fraction("max_out", values["max_out"])
    values["cluster_distance"] = check_cluster_distance("cluster_distance", values["cluster_distance"])
    batch_size = _as_int("batch_size", values["batch_size"])
    if batch_size < 1:
        raise ConfigurationError(f"batch_size must be positive: {batch_size}")
    values["batch_size"] = batch_size
    values["consolidated"] = _as_bool("consolidated", values["consolidated"])
    values["fasta_file"] = values["fasta_file"] or None
    values["comment"] = str(values["comment"] or "")


def build_config(values: Optional[Union[Dict[str, Any], Namespace]] = None,
                 default_file: str = "") -> Config:
    """ Builds up a Config. Uses, in order of lowest priority, the default
        config file and then the provided values.

        Arguments:
            values: a dict or Namespace of option values to override defaults with
            default_file: an alternative defaults file, if not provided the
                          embedded version is used

        Returns:
            a new Config instance
    """
    default = load_config_from_file(default_file)
    merged: Dict[str, Any] = dict(default.__dict__)
    logging_options = Namespace(**vars(merged.pop("logging", Namespace())))

    if values is None:
        overrides: Dict[str, Any] = {}
    elif isinstance(values, Namespace):
        overrides = dict(values.__dict__)
    else:
        overrides = dict(values)

    for key in _LOGGING_KEYS:
        if key in overrides:
            setattr(logging_options, key, overrides.pop(key))
    if "logging" in overrides:
        extra = overrides.pop("logging")
        logging_options.__dict__.update(extra if isinstance(extra, dict) else vars(extra))
    if not getattr(logging_options, "logfile", None):
        logging_options.logfile = None
    unknown = sorted(set(overrides) - set(merged))
    if unknown:
        raise ConfigurationError(f"unknown options: {', '.join(unknown)}")
    merged.update(overrides)
    merged["logging"] = logging_options

    _validate(merged)
    return Config(merged)
