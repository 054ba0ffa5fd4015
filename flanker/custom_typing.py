# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

""" Helpers for type hints.
"""

from typing import Any, List, Protocol, Sequence, Tuple, runtime_checkable

# a single query filter, e.g. ("eq", "genome_id", "83332.12") or ("in", "patric_id", [...])
Filter = Tuple[str, str, Any]


class ConfigType:  # pylint: disable=too-few-public-methods
    """ Exists only to allow mypy to reference the options namespace by a
        stable name, see flanker.config.Config
    """
    def __init__(self) -> None:
        raise NotImplementedError("ConfigType is a stub for typing purposes only")


@runtime_checkable
class ProgressSink(Protocol):  # pylint: disable=too-few-public-methods
    """ Anything accepting free-text progress messages """
    def progress(self, message: str) -> None:
        """ Receives a single status message """


@runtime_checkable
class QueryService(Protocol):  # pylint: disable=too-few-public-methods
    """ The external feature/contig data store """
    def query(self, table: str, filters: Sequence[Filter], fields: Sequence[str]) -> List[Tuple]:
        """ Returns one tuple per matching row, containing the requested
            fields in the order requested
        """
