# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

""" Extraction of the DNA surrounding features, merging the flanked areas of
    features that overlap into a single consolidated region.

    Each feature gets its own copy of the region sequence, on its own strand,
    along with a map of where every feature in the region sits within that
    sequence.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from flanker.common.errors import InvariantViolation, UpstreamError
from flanker.common.locations import DEFAULT_DISTANCE, Location, Region, expand_location
from flanker.common.query import as_int, get_data_keyed
from flanker.common.results import Results
from flanker.common.sequences import FEATURE_TABLE, SequenceStore
from flanker.config import check_distance
from flanker.custom_typing import QueryService

# feature id, first position, last position
OffsetEntry = Tuple[str, int, int]


class ConsolidatedRegion:
    """ A union of overlapping flanked regions on a single sequence, along
        with the features responsible for it.
    """
    __slots__ = ["sequence_id", "start", "end", "feature_ids"]

    def __init__(self, sequence_id: str, start: int, end: int, feature_ids: Iterable[str] = ()) -> None:
        self.sequence_id = sequence_id
        self.start = start
        self.end = end
        self.feature_ids = list(feature_ids)

    def absorb(self, region: Region, feature_id: str) -> None:
        """ Extends the region to cover another region, which must start
            within this region
        """
        assert region.sequence_id == self.sequence_id
        assert region.start <= self.end, f"{region} doesn't touch {self}"
        self.end = max(self.end, region.end)
        self.feature_ids.append(feature_id)

    def __len__(self) -> int:
        return self.end - self.start + 1

    def __eq__(self, other: Any) -> bool:
        return (isinstance(other, ConsolidatedRegion)
                and self.sequence_id == other.sequence_id
                and self.start == other.start
                and self.end == other.end
                and self.feature_ids == other.feature_ids)

    def __repr__(self) -> str:
        return f"ConsolidatedRegion({self.sequence_id!r}, {self.start}, {self.end}, {self.feature_ids})"

    def to_json(self) -> Dict[str, Any]:
        """ Converts the region to simple types """
        return {
            "sequence_id": self.sequence_id,
            "start": self.start,
            "end": self.end,
            "features": list(self.feature_ids),
        }


class RegionResults(Results):
    """ The sequences and offset maps for a set of features """
    __slots__ = ["sequences", "offsets", "regions"]

    def __init__(self) -> None:
        super().__init__()
        self.sequences: Dict[str, str] = {}
        self.offsets: Dict[str, List[OffsetEntry]] = {}
        self.regions: List[ConsolidatedRegion] = []

    def to_json(self) -> Dict[str, Any]:
        return {
            "sequences": dict(self.sequences),
            "offsets": {fid: [list(entry) for entry in entries] for fid, entries in self.offsets.items()},
            "regions": [region.to_json() for region in self.regions],
            "skipped": list(self.skipped),
        }


def consolidate_sequence_regions(sequence_id: str, regions: Dict[str, Region]) -> List[ConsolidatedRegion]:
    """ Merges the overlapping regions of a single sequence.

        Regions are swept in order of start position, with regions sharing a
        start kept in their given order. A region starting at or before the end
        of the current consolidated region is merged into it, so chains of
        overlaps end up in a single region.

        Arguments:
            sequence_id: the id of the sequence the regions are on
            regions: a dictionary mapping feature id to that feature's region

        Returns:
            a list of ConsolidatedRegions, ordered by start
    """
    for feature_id, region in regions.items():
        if region.sequence_id != sequence_id:
            raise InvariantViolation(f"region for {feature_id} is on {region.sequence_id}, not {sequence_id}")
        if region.start > region.end:
            raise InvariantViolation(f"region for {feature_id} ends before it starts: {region}")

    # sorted() is stable, so equal starts keep their original order
    ordered = sorted(regions.items(), key=lambda item: item[1].start)
    if not ordered:
        return []

    first_id, first = ordered[0]
    current = ConsolidatedRegion(sequence_id, first.start, first.end, [first_id])
    results = [current]
    for feature_id, region in ordered[1:]:
        if region.start <= current.end:
            current.absorb(region, feature_id)
        else:
            current = ConsolidatedRegion(sequence_id, region.start, region.end, [feature_id])
            results.append(current)
    return results


def consolidate_regions(regions_by_sequence: Dict[str, Dict[str, Region]]) -> List[ConsolidatedRegion]:
    """ Merges overlapping regions for all sequences. Sequences are processed
        in order of their ids.

        Arguments:
            regions_by_sequence: a dictionary mapping sequence id to a
                                 dictionary of feature id to region

        Returns:
            a list of ConsolidatedRegions
    """
    results: List[ConsolidatedRegion] = []
    for sequence_id in sorted(regions_by_sequence):
        results.extend(consolidate_sequence_regions(sequence_id, regions_by_sequence[sequence_id]))
    return results


def build_offset_map(region: ConsolidatedRegion, locations: Dict[str, Location]) -> List[OffsetEntry]:
    """ Finds the position of each member feature within the region's forward
        sequence, as 1-based positions ordered by start.

        Arguments:
            region: the consolidated region
            locations: a dictionary mapping feature id to location, containing
                       at least the members of the region

        Returns:
            a list of tuples of feature id, first position and last position
    """
    mapping = []
    for feature_id in region.feature_ids:
        location = locations[feature_id]
        mapping.append((feature_id, location.start - region.start + 1, location.end - region.start + 1))
    mapping.sort(key=lambda entry: entry[1])
    return mapping


def mirror_offset_map(mapping: List[OffsetEntry], length: int) -> List[OffsetEntry]:
    """ Converts an offset map for a forward sequence into one for the reverse
        complement of that sequence.

        Each entry (fid, start, end) becomes (fid, length - end, length - start),
        i.e. the zero-based offsets of the first and last base of the feature
        within the reverse complement.

        Arguments:
            mapping: the map for the forward sequence, as from build_offset_map()
            length: the length of the forward sequence

        Returns:
            a new list of tuples
    """
    return [(feature_id, length - end, length - start) for feature_id, start, end in mapping]


class RegionConsolidator:
    """ Builds flanked and consolidated regions for features, fetching
        locations and sequences as required.

        The sequence store is owned by the consolidator, so sequences are only
        cached for as long as the consolidator is in use.
    """
    def __init__(self, service: QueryService, store: Optional[SequenceStore] = None,
                 batch_size: int = 100) -> None:
        self.service = service
        self.store = store or SequenceStore(service)
        self.batch_size = batch_size

    def feature_locations(self, feature_ids: Iterable[str]) -> Dict[str, Location]:
        """ Fetches the locations of the given features. Features unknown to
            the data store will not be present in the result.

            Arguments:
                feature_ids: the ids of the features

            Returns:
                a dictionary mapping feature id to Location, in input order
        """
        rows = get_data_keyed(self.service, FEATURE_TABLE, [],
                              ["patric_id", "sequence_id", "start", "end", "strand"],
                              list(feature_ids), batch_size=self.batch_size)
        locations: Dict[str, Location] = {}
        for feature_id, sequence_id, start, end, strand in rows:
            if end in (None, ""):
                end = start
            try:
                locations[feature_id] = Location.from_raw(sequence_id,
                                                          as_int(start, f"start for {feature_id}"),
                                                          as_int(end, f"end for {feature_id}"),
                                                          strand)
            except (TypeError, ValueError) as err:
                raise UpstreamError(f"invalid location for {feature_id}: {err}") from err
        return locations

    def compute_regions(self, locations: Dict[str, Location], distance: int = DEFAULT_DISTANCE,
                        results: Optional[Results] = None) -> Dict[str, Dict[str, Region]]:
        """ Finds the flanked region of each feature, grouped by sequence.
            Features on sequences unknown to the data store are skipped.

            Arguments:
                locations: a dictionary mapping feature id to location
                distance: the number of bases to include on each side of a feature
                results: a Results instance to record skipped features in

            Returns:
                a dictionary mapping sequence id to a dictionary of feature id to Region
        """
        distance = check_distance("distance", distance)
        regions: Dict[str, Dict[str, Region]] = {}
        for feature_id, location in locations.items():
            length = self.store.get_length(location.sequence_id)
            if length is None:
                logging.warning("Skipping %s, sequence %s not found", feature_id, location.sequence_id)
                if results is not None:
                    results.add_skipped(feature_id)
                continue
            start, end = expand_location(location, length, distance)
            regions.setdefault(location.sequence_id, {})[feature_id] = Region(location.sequence_id, start, end)
        return regions

    def consolidate(self, locations: Dict[str, Location], distance: int = DEFAULT_DISTANCE) -> RegionResults:
        """ Builds the consolidated region sequences and offset maps for
            features with known locations.

            Arguments:
                locations: a dictionary mapping feature id to location
                distance: the number of bases to include on each side of a feature

            Returns:
                a RegionResults instance
        """
        results = RegionResults()
        regions = self.compute_regions(locations, distance, results)
        results.regions = consolidate_regions(regions)

        for region in results.regions:
            mapping = build_offset_map(region, locations)
            forward = self.store.get_region(region.sequence_id, region.start, region.end, "+")
            assert forward is not None  # sequence must be present for the region to exist
            reverse = None
            for feature_id in region.feature_ids:
                if locations[feature_id].strand == "+":
                    results.sequences[feature_id] = forward
                    results.offsets[feature_id] = list(mapping)
                    continue
                if reverse is None:
                    reverse = self.store.get_region(region.sequence_id, region.start, region.end, "-")
                results.sequences[feature_id] = reverse
                results.offsets[feature_id] = mirror_offset_map(mapping, len(forward))
        logging.debug("Consolidated %d features into %d regions", len(results.sequences), len(results.regions))
        return results

    def feature_regions(self, feature_ids: Iterable[str], distance: int = DEFAULT_DISTANCE) -> RegionResults:
        """ Builds the flanked region sequence for each feature separately,
            without merging. Sequences are on the strand of the feature.

            Arguments:
                feature_ids: the ids of the features
                distance: the number of bases to include on each side of a feature

            Returns:
                a RegionResults instance, with no offset maps or consolidated regions
        """
        distance = check_distance("distance", distance)
        feature_ids = list(feature_ids)
        results = RegionResults()
        locations = self._locate(feature_ids, results)
        regions = self.compute_regions(locations, distance, results)
        for sequence_id in sorted(regions):
            for feature_id, region in regions[sequence_id].items():
                if region.start > region.end:
                    raise InvariantViolation(f"region for {feature_id} ends before it starts: {region}")
                sequence = self.store.get_region(sequence_id, region.start, region.end,
                                                 locations[feature_id].strand)
                assert sequence is not None
                results.sequences[feature_id] = sequence
        return results

    def consolidated_regions(self, feature_ids: Iterable[str], distance: int = DEFAULT_DISTANCE) -> RegionResults:
        """ Builds the consolidated region sequences and offset maps for the
            given features, fetching their locations first.

            Arguments:
                feature_ids: the ids of the features
                distance: the number of bases to include on each side of a feature

            Returns:
                a RegionResults instance
        """
        distance = check_distance("distance", distance)
        feature_ids = list(feature_ids)
        unlocated = RegionResults()
        locations = self._locate(feature_ids, unlocated)
        results = self.consolidate(locations, distance)
        missing_sequences = results.skipped
        results.skipped = unlocated.skipped
        for feature_id in missing_sequences:
            results.add_skipped(feature_id)
        return results

    def _locate(self, feature_ids: List[str], results: Results) -> Dict[str, Location]:
        locations = self.feature_locations(feature_ids)
        for feature_id in feature_ids:
            if feature_id not in locations:
                logging.warning("Skipping %s, no location found", feature_id)
                results.add_skipped(feature_id)
        return locations
