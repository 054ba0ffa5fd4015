# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

""" Locations of features on contigs and helper functions for location
    operations.

    Unlike Biopython locations, all positions here are 1-based and inclusive
    on both ends, matching the coordinates used by the feature data store.
"""

from typing import Any, Iterator, NamedTuple, Tuple

from Bio.SeqFeature import FeatureLocation

DEFAULT_DISTANCE = 100

_STRANDS = {
    "+": "+",
    "-": "-",
    1: "+",
    -1: "-",
    "1": "+",
    "-1": "-",
}


def normalise_strand(strand: Any) -> str:
    """ Converts the various strand representations to '+' or '-'

        Arguments:
            strand: a strand value, e.g. "+", "-", 1 or -1

        Returns:
            "+" or "-"
    """
    try:
        return _STRANDS[strand]
    except (KeyError, TypeError):
        raise ValueError(f"invalid strand: {strand!r}")


class Location:
    """ A stranded location on a single sequence. Start and end are 1-based
        positions, with end being the last base covered.
    """
    __slots__ = ["_sequence_id", "_start", "_end", "_strand"]

    def __init__(self, sequence_id: str, start: int, end: int, strand: str = "+") -> None:
        if not sequence_id:
            raise ValueError("location requires a sequence id")
        if not isinstance(start, int) or not isinstance(end, int):
            raise TypeError(f"location positions must be integers: {start!r}, {end!r}")
        if start < 1:
            raise ValueError(f"location start must be at least 1: {start}")
        if end < start:
            raise ValueError(f"location end cannot be before start: {start}..{end}")
        self._sequence_id = sequence_id
        self._start = start
        self._end = end
        self._strand = normalise_strand(strand)

    @classmethod
    def from_raw(cls, sequence_id: str, start: Any, end: Any, strand: Any) -> "Location":
        """ Builds a location from raw feature data, which may be missing an
            end, may have the end before the start and may have text positions.

            Arguments:
                sequence_id: the id of the sequence the location is on
                start: the start position
                end: the end position, or None/empty if unknown
                strand: the strand, in any form accepted by normalise_strand()

            Returns:
                a new Location
        """
        start = int(start)
        if end in (None, "", 0):
            end = start
        end = int(end)
        if end < start:
            start, end = end, start
        return cls(sequence_id, start, end, strand)

    @property
    def sequence_id(self) -> str:
        """ The id of the sequence the location is on """
        return self._sequence_id

    @property
    def start(self) -> int:
        """ The first position covered """
        return self._start

    @property
    def end(self) -> int:
        """ The last position covered """
        return self._end

    @property
    def strand(self) -> str:
        """ Either '+' or '-' """
        return self._strand

    @property
    def midpoint(self) -> float:
        """ The centre of the location, not necessarily a whole position """
        return (self._start + self._end) / 2

    def to_biopython(self) -> FeatureLocation:
        """ Converts the location to a zero-based Biopython FeatureLocation """
        return FeatureLocation(self._start - 1, self._end, 1 if self._strand == "+" else -1)

    def __len__(self) -> int:
        return self._end - self._start + 1

    def __iter__(self) -> Iterator[Any]:
        return iter((self._sequence_id, self._start, self._end, self._strand))

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Location):
            return NotImplemented
        return tuple(self) == tuple(other)

    def __hash__(self) -> int:
        return hash(tuple(self))

    def __repr__(self) -> str:
        return f"Location({self._sequence_id!r}, {self._start}, {self._end}, {self._strand!r})"

    def __str__(self) -> str:
        return f"{self._sequence_id}_{self._start}{self._strand}{len(self)}"


class Region(NamedTuple):
    """ A flanked, unstranded area of a sequence, 1-based and inclusive """
    sequence_id: str
    start: int
    end: int


def expand_location(location: Location, sequence_length: int,
                    distance: int = DEFAULT_DISTANCE) -> Tuple[int, int]:
    """ Extends a location by the given distance in both directions, capped by
        the sequence edges.

        The right edge is capped at one less than the sequence length, so the
        final base of a sequence is never included. Existing consumers rely on
        those coordinates, so the cap stays as it is.

        Arguments:
            location: the location to extend
            sequence_length: the length of the sequence containing the location
            distance: the number of bases to add on each side

        Returns:
            a tuple of the new start and end positions
    """
    start = location.start - distance
    if start < 1:
        start = 1
    end = location.end + distance
    if end >= sequence_length:
        end = sequence_length - 1
    return start, end
