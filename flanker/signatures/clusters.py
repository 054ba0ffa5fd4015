# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

""" Physical clustering of features along contigs.

    A cluster is a run of features on one contig in which each feature's
    midpoint is within a given distance of the previous feature's midpoint.
"""

import logging
import re
from typing import Dict, List, Sequence, Tuple

from flanker.config import check_cluster_distance

# feature ids in the form fig|83332.12.peg.1234 or 83332.12.peg.1234 encode their genome id
_GENOME_IN_FEATURE = re.compile(r"^(?:fig\|)?(\d+\.\d+)\.")

# the number of trailing fields in an input tuple: feature id, contig, start, end, strand
_LOCATION_FIELDS = 5


def contig_key(feature_id: str, contig_id: str) -> str:
    """ Builds a grouping key for a contig, prefixed with the genome id if the
        feature id contains one, so that identically named contigs of
        different genomes are kept apart
    """
    match = _GENOME_IN_FEATURE.match(feature_id)
    if match:
        return f"{match.group(1)}:{contig_id}"
    return contig_id


def _close_cluster(cluster: List[Tuple], by_size: Dict[int, List[List[Tuple]]]) -> None:
    if len(cluster) >= 2:
        by_size.setdefault(len(cluster), []).append(list(cluster))


def cluster_features(located_features: Sequence[Sequence], distance: float) -> List[List[Tuple]]:
    """ Groups features into clusters of neighbours on the same contig.

        Each input tuple may start with any number of information fields,
        followed by the feature id, contig id, start, end and strand. Each
        member of a cluster is a tuple of the feature id followed by the
        information fields, e.g. ("fig|83332.12.peg.5", family, product).

        Only clusters with at least two members are kept. Larger clusters are
        returned first; clusters of the same size are in contig order.

        Arguments:
            located_features: the tuples describing the features
            distance: the maximum distance between neighbouring midpoints

        Returns:
            a list of clusters, each a list of tuples
    """
    distance = check_cluster_distance("cluster distance", distance)

    by_contig: Dict[str, List[Tuple[float, Tuple]]] = {}
    for entry in located_features:
        if len(entry) < _LOCATION_FIELDS:
            raise ValueError(f"feature tuple too short for a location: {entry}")
        info = tuple(entry[:-_LOCATION_FIELDS])
        feature_id, contig, start, end, _ = entry[-_LOCATION_FIELDS:]
        midpoint = (start + end) / 2
        by_contig.setdefault(contig_key(feature_id, contig), []).append((midpoint, (feature_id,) + info))

    by_size: Dict[int, List[List[Tuple]]] = {}
    for contig in sorted(by_contig):
        # sorted() is stable, so features sharing a midpoint stay in input order
        features = sorted(by_contig[contig], key=lambda pair: pair[0])
        last_point, first = features[0]
        cluster = [first]
        for point, member in features[1:]:
            if point - last_point > distance:
                _close_cluster(cluster, by_size)
                cluster = []
            cluster.append(member)
            last_point = point
        _close_cluster(cluster, by_size)

    clusters = []
    for size in sorted(by_size, reverse=True):
        clusters.extend(by_size[size])
    logging.debug("Found %d clusters in %d contigs", len(clusters), len(by_contig))
    return clusters
