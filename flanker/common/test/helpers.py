# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

""" Shared helpers for building small data stores in tests """

from typing import Any, Dict, List, Optional

from flanker.common.query import TableQueryService

# 60 bases, no palindromes so reverse complements are easy to tell apart
CONTIG_ONE = "atgaccgttagcgatcctaggcatttgacgatcgaagtcccgatgactgcaatgcctagc"
CONTIG_TWO = "ggcatcgatcgtacgttagcattgcagtcgatcgtagcatgcatcgactagctagcgatc"


def build_feature(patric_id: str, sequence_id: str, start: int, end: int, strand: str = "+", *,
                  genome_id: Optional[str] = None, family: str = "", product: str = "hypothetical protein",
                  feature_type: str = "CDS", **kwargs: Any) -> Dict[str, Any]:
    """ Builds a feature table row """
    if genome_id is None:
        genome_id = patric_id.split("|", 1)[-1].rsplit(".", 2)[0]
    row = {
        "patric_id": patric_id,
        "genome_id": genome_id,
        "sequence_id": sequence_id,
        "accession": sequence_id,
        "start": start,
        "end": end,
        "strand": strand,
        "feature_type": feature_type,
        "pgfam_id": family,
        "product": product,
    }
    row.update(kwargs)
    return row


def build_contig(sequence_id: str, genome_id: str, sequence: str) -> Dict[str, Any]:
    """ Builds a contig table row """
    return {"sequence_id": sequence_id, "genome_id": genome_id, "sequence": sequence}


def build_service(contigs: Optional[List[Dict[str, Any]]] = None,
                  features: Optional[List[Dict[str, Any]]] = None) -> TableQueryService:
    """ Builds an in-memory data store from contig and feature rows """
    return TableQueryService({
        "contig": list(contigs or []),
        "feature": list(features or []),
    })


def two_contig_service(features: Optional[List[Dict[str, Any]]] = None) -> TableQueryService:
    """ Builds a data store with two 60 base contigs of genome 83332.12 """
    return build_service([
        build_contig("NC_1", "83332.12", CONTIG_ONE),
        build_contig("NC_2", "83332.12", CONTIG_TWO),
    ], features)
