# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

"""Configuration file handling for flanker

"""
import configparser
import os

from argparse import Namespace

from flanker.common import path

_DEFAULT_NAME = 'default.cfg'
_BASEDIR = path.get_full_path(__file__)


def load_config_from_file(default_file: str = "") -> Namespace:
    """ Load config from default config.

        Values in the [DEFAULT] section end up in the top level namespace,
        each other section becomes a nested namespace. Values that look like
        booleans are converted, everything else stays as text.

        Arguments:
            default_file: the path to the default config file, if not provided
                          the embedded version will be used

        Returns:
            a Namespace mapping option name to option value
    """
    namespace = Namespace()
    default_file = default_file or os.path.join(_BASEDIR, _DEFAULT_NAME)
    config = configparser.ConfigParser()
    with open(default_file, "r", encoding="utf-8") as handle:
        config.read_file(handle)

    defaults = set(config.defaults())
    for section in config.sections():
        section_space = Namespace()
        for key, value in config.items(section):
            # the DEFAULT section leaks into every other section
            if key in defaults and config.defaults()[key] == value:
                continue
            name = key.replace('-', '_')
            try:
                section_space.__dict__[name] = config.getboolean(section, key)
                continue
            except ValueError:
                pass
            section_space.__dict__[name] = value
        namespace.__dict__[section] = section_space

    for key, value in config.defaults().items():
        key = key.replace('-', '_')
        if key not in namespace:
            namespace.__dict__[key] = value

    return namespace
