# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

""" Provides a base for all results objects, to give a consistent API for
    converting results to simple types.
"""

from typing import Any, Dict, List


class Results:
    """
        For storage of the results of a single pipeline run. Should be
        subclassed for a consistent API.
    """
    __slots__ = ["skipped"]

    def __init__(self) -> None:
        # inputs that were dropped because the data store had nothing for them
        self.skipped: List[str] = []

    def to_json(self) -> Dict[str, Any]:
        """
            Converts the contained results into a json structure of simple types
        """
        raise NotImplementedError()

    def add_skipped(self, name: str) -> None:
        """ Records an input that couldn't be used """
        if name not in self.skipped:
            self.skipped.append(name)
