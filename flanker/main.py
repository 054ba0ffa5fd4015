# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

""" The complete pipelines, each building its own options, logging setup and
    sequence cache for the duration of a single call.
"""

import logging
from argparse import Namespace
from typing import Any, Dict, Iterable, Optional, Union

from flanker.common import logs
from flanker.common.fasta import write_region_fasta
from flanker.common.sequences import SequenceStore
from flanker.config import Config, build_config
from flanker.consolidation import RegionConsolidator, RegionResults
from flanker.custom_typing import ProgressSink, QueryService
from flanker.signatures import EnrichmentCounter, SignatureResults, split_genome_sets
from flanker.signatures.clusters import cluster_features

__version__ = "1.0.0"

Options = Optional[Union[Dict[str, Any], Namespace]]


def run_consolidation(service: QueryService, feature_ids: Iterable[str], options: Options = None) -> RegionResults:
    """ Builds the flanked region sequences for a set of features.

        Options of particular interest here:
            consolidated: whether to merge overlapping regions (default True)
            fasta_file: a path to write the sequences to in FASTA format

        Arguments:
            service: the QueryService providing features and contigs
            feature_ids: the ids of the features of interest
            options: values to override the defaults with

        Returns:
            a RegionResults instance
    """
    config = build_config(options)
    with logs.changed_logging(logfile=config.logging.logfile, verbose=config.logging.verbose,
                              debug=config.logging.debug):
        return _run_consolidation(service, list(feature_ids), config)


def _run_consolidation(service: QueryService, feature_ids: list, config: Config) -> RegionResults:
    """ The real run_consolidation, assumes logging is set up around it """
    logging.info("flanker version: %s", __version__)
    consolidator = RegionConsolidator(service, SequenceStore(service), batch_size=config.batch_size)
    if config.consolidated:
        results = consolidator.consolidated_regions(feature_ids, config.distance)
    else:
        results = consolidator.feature_regions(feature_ids, config.distance)
    if results.skipped:
        logging.warning("%d of %d features skipped", len(results.skipped), len(set(feature_ids)))

    fasta_file = config.fasta_file
    if fasta_file:
        write_region_fasta(fasta_file, sorted(set(feature_ids)), results.sequences, results.offsets)
        logging.info("Wrote %d region sequences to %s", len(results.sequences), fasta_file)
    return results


def run_signature_clusters(service: QueryService, genomes_in: Iterable[str], genomes_out: Iterable[str],
                           options: Options = None, progress: Optional[ProgressSink] = None) -> SignatureResults:
    """ Finds the signature families distinguishing one genome set from
        another, then clusters the members of those families within the
        first set by position.

        Arguments:
            service: the QueryService providing features
            genomes_in: the ids of the genomes with the property of interest
            genomes_out: the ids of the genomes without the property
            options: values to override the defaults with
            progress: an optional sink for progress messages

        Returns:
            a SignatureResults instance
    """
    config = build_config(options)
    with logs.changed_logging(logfile=config.logging.logfile, verbose=config.logging.verbose,
                              debug=config.logging.debug):
        # empty sets are rejected before anything is fetched
        in_group, out_group = split_genome_sets(genomes_in, genomes_out)
        results = SignatureResults(in_group, out_group)
        counter = EnrichmentCounter(service, progress=progress, comment=config.comment,
                                    batch_size=config.batch_size)
        results.families = counter.select(in_group, out_group, config.min_in, config.max_out)
        results.members = counter.family_members(list(results.families), genomes=in_group)
        results.clusters = cluster_features(results.members, config.cluster_distance)
        logging.info("%d signature families formed %d clusters", len(results.families), len(results.clusters))
    return results
