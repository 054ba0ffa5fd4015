# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

""" flanker: flanking region consolidation and signature family clustering
    for annotated genomes.

    The expected entry points as a library are run_consolidation() and
    run_signature_clusters().
"""

from flanker.main import run_consolidation, run_signature_clusters, __version__
