# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

""" A collection of functions supporting the FASTA format
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple


def format_offset_map(mapping: Sequence[Tuple[str, int, int]]) -> str:
    """ Formats an offset map as text, e.g. "fid1=101..400, fid2=380..900" """
    return ", ".join(f"{fid}={start}..{end}" for fid, start, end in mapping)


def format_region_fasta(feature_ids: Sequence[str], sequences: Dict[str, str],
                        offsets: Optional[Dict[str, List[Tuple[str, int, int]]]] = None,
                        comments: Optional[Dict[str, str]] = None) -> str:
    """ Builds FASTA text with one entry per feature, in the order given.
        Features without a sequence are left out.

        The header holds the feature id, any comment and, separated by a tab,
        the offset map of the feature if there is one.

        Arguments:
            feature_ids: the ids of the features to include
            sequences: a dictionary mapping feature id to region sequence
            offsets: a dictionary mapping feature id to offset map
            comments: a dictionary mapping feature id to comment text

        Returns:
            the FASTA text
    """
    offsets = offsets or {}
    comments = comments or {}
    entries = []
    for fid in feature_ids:
        if fid not in sequences:
            logging.debug("No region sequence for %s, leaving it out of FASTA", fid)
            continue
        header = f"{fid} {comments.get(fid, '')}".rstrip()
        if offsets.get(fid):
            header += "\t" + format_offset_map(offsets[fid])
        entries.append(f">{header}\n{sequences[fid]}")
    return "\n".join(entries) + "\n" if entries else ""


def write_region_fasta(filename: str, feature_ids: Sequence[str], sequences: Dict[str, str],
                       offsets: Optional[Dict[str, List[Tuple[str, int, int]]]] = None,
                       comments: Optional[Dict[str, str]] = None) -> None:
    """ Writes the FASTA text built by format_region_fasta() to a file """
    with open(filename, "w", encoding="utf-8") as handle:
        handle.write(format_region_fasta(feature_ids, sequences, offsets, comments))
