# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

""" A lazily populated cache of contig DNA.

    Each contig is fetched once, on first use, and kept for the lifetime of
    the store. The cached text is the forward strand, in lower case except
    for the areas covered by CDS features, which are upper case.
"""

import logging
from typing import Dict, Optional

from flanker.custom_typing import QueryService

from .errors import NotFoundError, UpstreamError
from .locations import Location
from .query import EQ, as_int, get_data

CONTIG_TABLE = "contig"
FEATURE_TABLE = "feature"


class SequenceStore:
    """ Fetches and caches annotated contig sequences from a QueryService.

        A store should be scoped to a single run; nothing is ever refreshed
        or evicted.
    """
    def __init__(self, service: QueryService) -> None:
        self.service = service
        self._sequences: Dict[str, str] = {}
        self._lengths: Dict[str, int] = {}
        # contigs that were looked up and found to be missing
        self._missing: set = set()

    def __contains__(self, sequence_id: str) -> bool:
        return self._ensure_loaded(sequence_id)

    def get_sequence(self, sequence_id: str) -> Optional[str]:
        """ Returns the annotated DNA of a sequence, or None if the data store
            has no such sequence
        """
        if not self._ensure_loaded(sequence_id):
            return None
        return self._sequences[sequence_id]

    def get_sequence_strict(self, sequence_id: str) -> str:
        """ As get_sequence(), but raises a NotFoundError for unknown sequences """
        sequence = self.get_sequence(sequence_id)
        if sequence is None:
            raise NotFoundError(sequence_id)
        return sequence

    def get_length(self, sequence_id: str) -> Optional[int]:
        """ Returns the length of a sequence, or None if the data store
            has no such sequence
        """
        if not self._ensure_loaded(sequence_id):
            return None
        return self._lengths[sequence_id]

    def get_region(self, sequence_id: str, start: int, end: int, strand: str = "+") -> Optional[str]:
        """ Returns the DNA of an area of a sequence, reverse complemented if
            the area is on the reverse strand.

            Arguments:
                sequence_id: the id of the sequence
                start: the first position (1-based) of the area
                end: the last position (1-based) of the area
                strand: the strand to read, "+" or "-"

            Returns:
                the DNA of the area, or None if the sequence is unknown
        """
        sequence = self.get_sequence(sequence_id)
        if sequence is None:
            return None
        location = Location(sequence_id, start, end, strand)
        return location.to_biopython().extract(sequence)

    def _ensure_loaded(self, sequence_id: str) -> bool:
        if sequence_id in self._sequences:
            return True
        if sequence_id in self._missing:
            return False

        rows = get_data(self.service, CONTIG_TABLE, [(EQ, "sequence_id", sequence_id)],
                        ["sequence_id", "genome_id", "sequence"])
        if not rows:
            logging.debug("Sequence %s not found in data store", sequence_id)
            self._missing.add(sequence_id)
            return False
        _, genome_id, dna = rows[0]
        if not isinstance(dna, str):
            raise UpstreamError(f"invalid DNA for sequence {sequence_id}: {dna!r}")

        features = get_data(self.service, FEATURE_TABLE,
                            [(EQ, "sequence_id", sequence_id), (EQ, "feature_type", "CDS")],
                            ["patric_id", "start", "end"])
        try:
            annotated = bytearray(dna.lower(), "ascii")
        except UnicodeEncodeError as err:
            raise UpstreamError(f"invalid DNA for sequence {sequence_id}") from err
        for feature_id, start, end in features:
            # positions are 1-based and always left to right
            first = max(as_int(start, f"start for {feature_id}") - 1, 0)
            last = as_int(end, f"end for {feature_id}")
            annotated[first:last] = annotated[first:last].upper()

        self._sequences[sequence_id] = annotated.decode("ascii")
        self._lengths[sequence_id] = len(annotated)
        logging.debug("Loaded sequence %s of genome %s: %d bases, %d CDS features",
                      sequence_id, genome_id, len(annotated), len(features))
        return True
