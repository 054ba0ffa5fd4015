# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

""" Signature families: protein families that are common in one set of
    genomes and rare in another.

    Occurrence is counted per genome, so a family found on many features of
    a genome still only counts once for that genome.
"""

import logging
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from flanker.categories import CategoryKind
from flanker.common.errors import ConfigurationError
from flanker.common.progress import report
from flanker.common.query import ANY_VALUE, EQ, IN, as_int, get_data, get_data_batch
from flanker.common.results import Results
from flanker.common.sequences import FEATURE_TABLE
from flanker.config import check_fraction
from flanker.custom_typing import ProgressSink, QueryService

FAMILY_FIELD = CategoryKind.FAMILY.field_name

# family id, product, feature id, contig id, start, end, strand
MemberInfo = Tuple[str, str, str, str, int, int, str]


class FamilyCount(NamedTuple):
    """ The number of genomes in each set that contain a family """
    family_id: str
    in_count: int
    out_count: int
    label: str

    def in_fraction(self, total: int) -> float:
        """ The fraction of the in-group genomes containing the family """
        return self.in_count / total

    def out_fraction(self, total: int) -> float:
        """ The fraction of the out-group genomes containing the family """
        return self.out_count / total

    def to_json(self) -> Dict[str, Any]:
        """ Converts the count to simple types """
        return dict(self._asdict())


class SignatureResults(Results):
    """ The signature families found for a pair of genome sets and the
        clusters formed by their members
    """
    __slots__ = ["genomes_in", "genomes_out", "families", "members", "clusters"]

    def __init__(self, genomes_in: Sequence[str], genomes_out: Sequence[str]) -> None:
        super().__init__()
        self.genomes_in = list(genomes_in)
        self.genomes_out = list(genomes_out)
        self.families: Dict[str, FamilyCount] = {}
        self.members: List[MemberInfo] = []
        self.clusters: List[List[Tuple]] = []

    def to_json(self) -> Dict[str, Any]:
        return {
            "genomes_in": list(self.genomes_in),
            "genomes_out": list(self.genomes_out),
            "families": {fam: count.to_json() for fam, count in self.families.items()},
            "clusters": [[list(entry) for entry in cluster] for cluster in self.clusters],
            "skipped": list(self.skipped),
        }


def split_genome_sets(genomes_in: Iterable[str], genomes_out: Iterable[str]) -> Tuple[List[str], List[str]]:
    """ Builds sorted, disjoint genome sets. Genomes in both sets are kept in
        the in-group only.

        Raises a ConfigurationError if either set ends up empty.

        Arguments:
            genomes_in: the ids of the in-group genomes
            genomes_out: the ids of the out-group genomes

        Returns:
            a tuple of the in-group list and the out-group list
    """
    in_set = set(genomes_in)
    out_set = set(genomes_out)
    shared = in_set & out_set
    if shared:
        logging.warning("Removing %d genomes present in both sets from the out-group", len(shared))
        out_set -= shared
    if not in_set:
        raise ConfigurationError("no genomes in the in-group")
    if not out_set:
        raise ConfigurationError("no genomes in the out-group")
    return sorted(in_set), sorted(out_set)


class EnrichmentCounter:
    """ Counts family occurrence over genome sets and selects the families
        that distinguish one set from the other.

        Arguments:
            service: the QueryService to fetch features with
            progress: an optional sink for progress messages
            comment: text to append to each progress message
            batch_size: the number of families to request member features for at once
    """
    def __init__(self, service: QueryService, progress: Optional[ProgressSink] = None,
                 comment: str = "", batch_size: int = 100) -> None:
        self.service = service
        self.progress = progress
        self.comment = f"  {comment}" if comment else ""
        self.batch_size = batch_size

    def count_families(self, genomes_in: Iterable[str], genomes_out: Iterable[str]) -> Dict[str, FamilyCount]:
        """ Counts, for every family found, how many genomes of each set
            contain it

            Arguments:
                genomes_in: the ids of the in-group genomes
                genomes_out: the ids of the out-group genomes

            Returns:
                a dictionary mapping family id to FamilyCount
        """
        in_group, out_group = split_genome_sets(genomes_in, genomes_out)
        report(self.progress, f"{len(in_group)} genomes in group 1, {len(out_group)} in group 2.")

        counts: Dict[str, Dict[str, int]] = {}
        labels: Dict[str, str] = {}
        total = len(in_group) + len(out_group)
        done = 0
        for group_type, group in [("in", in_group), ("out", out_group)]:
            for genome in group:
                done += 1
                report(self.progress, f"Reading features for {genome} ({done} of {total}).{self.comment}")
                rows = get_data(self.service, FEATURE_TABLE,
                                [(EQ, "genome_id", genome), (EQ, FAMILY_FIELD, ANY_VALUE)],
                                [FAMILY_FIELD, "product"])
                seen = set()
                for family, product in rows:
                    if not family:
                        continue
                    labels[family] = product or ""
                    if family in seen:
                        continue
                    seen.add(family)
                    family_counts = counts.setdefault(family, {"in": 0, "out": 0})
                    family_counts[group_type] += 1
                logging.debug("Genome %s contains %d families", genome, len(seen))

        return {family: FamilyCount(family, value["in"], value["out"], labels[family])
                for family, value in counts.items()}

    def select(self, genomes_in: Iterable[str], genomes_out: Iterable[str],
               min_in_fraction: float, max_out_fraction: float) -> Dict[str, FamilyCount]:
        """ Finds the families present in at least the given fraction of
            the in-group and at most the given fraction of the out-group

            Arguments:
                genomes_in: the ids of the in-group genomes
                genomes_out: the ids of the out-group genomes
                min_in_fraction: the minimum fraction of in-group genomes containing a family
                max_out_fraction: the maximum fraction of out-group genomes containing a family

            Returns:
                a dictionary mapping family id to FamilyCount, for only the
                families that qualify
        """
        min_in_fraction = check_fraction("min_in_fraction", min_in_fraction)
        max_out_fraction = check_fraction("max_out_fraction", max_out_fraction)
        in_group, out_group = split_genome_sets(genomes_in, genomes_out)

        counts = self.count_families(in_group, out_group)
        size_in = len(in_group)
        size_out = len(out_group)
        selected = {}
        for family in sorted(counts):
            count = counts[family]
            if count.out_fraction(size_out) <= max_out_fraction and count.in_fraction(size_in) >= min_in_fraction:
                selected[family] = count
        logging.info("%d of %d families qualify as signatures", len(selected), len(counts))
        return selected

    def family_members(self, family_ids: Iterable[str],
                       genomes: Optional[Iterable[str]] = None) -> List[MemberInfo]:
        """ Finds the features belonging to the given families

            Arguments:
                family_ids: the ids of the families
                genomes: if given, only features of these genomes are returned

            Returns:
                a list of tuples, each of family id, product, feature id,
                contig id, start, end and strand
        """
        filters = []
        if genomes is not None:
            filters.append((IN, "genome_id", list(genomes)))
        couplets = [(family, [family]) for family in family_ids]
        rows = get_data_batch(self.service, FEATURE_TABLE, filters,
                              ["product", "patric_id", "accession", "start", "end", "strand"],
                              couplets, FAMILY_FIELD, batch_size=self.batch_size)
        members = []
        for family, product, feature_id, contig, start, end, strand in rows:
            first = as_int(start, f"start for {feature_id}")
            last = as_int(end, f"end for {feature_id}") if end not in (None, "") else first
            members.append((family, product, feature_id, contig, first, last, strand))
        return members

