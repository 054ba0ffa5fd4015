# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

""" Categorisation of features by role, protein family or EC number.

    Each kind of category knows which feature field holds its values, how to
    split a field value into category names and how to convert a name to an
    id. A CategoryHelper uses a kind to find the categories that occur exactly
    once in a genome.
"""

import base64
import enum
import hashlib
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from flanker.common.errors import UpstreamError
from flanker.common.locations import Location
from flanker.common.query import EQ, as_int, get_data
from flanker.common.sequences import FEATURE_TABLE
from flanker.custom_typing import QueryService

_ROLE_SEPARATORS = re.compile(r"\s+/\s+|\s+@\s+|\s*;\s+")
_EC_OR_TC = re.compile(r"\s*\((?:EC|TC)\s+[^)]*\)", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def roles_of_function(assignment: str) -> List[str]:
    """ Splits a functional assignment into its component roles, discarding
        any comment

        Arguments:
            assignment: the functional assignment, e.g. "Thioredoxin / Peroxidase # comment"

        Returns:
            a list of role names
    """
    if not assignment:
        return []
    assignment = assignment.split("#", 1)[0].strip()
    return [role.strip() for role in _ROLE_SEPARATORS.split(assignment) if role.strip()]


def role_checksum(role: str) -> str:
    """ Builds an id for a role that ignores EC/TC numbers, case and spacing """
    normalised = _EC_OR_TC.sub("", role)
    normalised = _WHITESPACE.sub(" ", normalised).strip().lower()
    digest = hashlib.md5(normalised.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii").rstrip("=")


class CategoryKind(enum.Enum):
    """ The kinds of category features can be grouped by """
    ROLE = "role"
    FAMILY = "family"
    EC = "ecnum"

    @property
    def field_name(self) -> str:
        """ The feature field holding the category values """
        return {
            CategoryKind.ROLE: "product",
            CategoryKind.FAMILY: "pgfam_id",
            CategoryKind.EC: "ec",
        }[self]

    def name_to_id(self, name: str) -> str:
        """ Converts a category name to its id """
        if self is CategoryKind.ROLE:
            return role_checksum(name)
        return name

    def names_of(self, value: Any) -> List[str]:
        """ Splits a feature field value into the category names it contains """
        if not value:
            return []
        if self is CategoryKind.ROLE:
            return roles_of_function(value)
        if self is CategoryKind.EC and isinstance(value, (list, tuple)):
            return [str(name) for name in value if name]
        return [str(value)]

    def all_cats(self, value: Any) -> List[str]:
        """ Returns the ids of all categories a feature field value belongs to """
        return [self.name_to_id(name) for name in self.names_of(value)]

    def display_name(self, name: str) -> str:
        """ Returns a printable name for a category, given its name """
        if self is CategoryKind.EC:
            return f"EC {name}"
        return name

    @classmethod
    def from_string(cls, label: str) -> "CategoryKind":
        """ Finds the kind with the given label, e.g. "role" """
        for kind in cls:
            if kind.value == label:
                return kind
        raise ValueError(f"invalid category type: {label}")


class CategoryHelper:
    """ Finds the categories of the features in a genome.

        If no category names are given, every category found is of interest,
        otherwise only the categories named.
    """
    def __init__(self, service: QueryService, kind: CategoryKind,
                 names: Optional[Iterable[str]] = None) -> None:
        self.service = service
        self.kind = kind
        self.all_mode = names is None
        self._names: Dict[str, str] = {}
        for name in names or []:
            self._names[kind.name_to_id(name)] = name

    @classmethod
    def from_file(cls, service: QueryService, kind: CategoryKind, path: str,
                  has_header: bool = True) -> "CategoryHelper":
        """ Builds a helper for the category names in the first column of a
            tab-delimited file

            Arguments:
                service: the QueryService to use
                kind: the kind of category
                path: the path of the file
                has_header: whether the first line of the file is a header

            Returns:
                a new CategoryHelper
        """
        names = []
        with open(path, "r", encoding="utf-8") as handle:
            if has_header:
                next(handle, None)
            for line in handle:
                line = line.rstrip("\n")
                if line:
                    names.append(line.split("\t", 1)[0])
        return cls(service, kind, names)

    def is_of_interest(self, category_id: str) -> bool:
        """ Returns True if the category should be counted """
        return self.all_mode or category_id in self._names

    def id_to_name(self, category_id: str) -> str:
        """ Returns the printable name of a category, or the id itself if the
            name is unknown. Names given up front are returned as given.
        """
        return self._names.get(category_id, category_id)

    def get_cats(self, genome_id: str) -> Dict[str, Location]:
        """ Finds the categories of interest that occur on exactly one feature
            in the genome

            Arguments:
                genome_id: the id of the genome

            Returns:
                a dictionary mapping category id to the location of the single
                feature in that category
        """
        rows = get_data(self.service, FEATURE_TABLE, [(EQ, "genome_id", genome_id)],
                        [self.kind.field_name, "sequence_id", "start", "strand", "end"])
        counts: Dict[str, int] = {}
        found: Dict[str, Location] = {}
        for value, contig, start, strand, end in rows:
            names = self.kind.names_of(value)
            if not names:
                continue
            first = as_int(start, f"start in {genome_id}")
            # some features are missing an end
            last = as_int(end, f"end in {genome_id}") if end not in (None, "") else first
            try:
                location = Location.from_raw(contig, first, last, strand)
            except (TypeError, ValueError) as err:
                raise UpstreamError(f"invalid feature location in {genome_id}: {err}") from err
            for name in names:
                category_id = self.kind.name_to_id(name)
                if self.all_mode:
                    self._names.setdefault(category_id, self.kind.display_name(name))
                if not self.is_of_interest(category_id):
                    continue
                counts[category_id] = counts.get(category_id, 0) + 1
                found[category_id] = location
        result = {cat: location for cat, location in found.items() if counts[cat] == 1}
        logging.debug("Genome %s has %d singly occurring %s categories", genome_id, len(result), self.kind.value)
        return result
