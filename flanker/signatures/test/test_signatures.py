# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

# for test files, silence irrelevant and noisy pylint warnings
# pylint: disable=no-self-use,protected-access,missing-docstring

import unittest
from unittest.mock import Mock

from flanker.common.errors import ConfigurationError, UpstreamError
from flanker.common.test.helpers import build_feature, build_service
from flanker.signatures import EnrichmentCounter, FamilyCount, SignatureResults, split_genome_sets


def build_genome_service():
    """ Four genomes, the first two being the in-group in most tests:
        PGF_A is in 1.1 and 2.1 only, PGF_B in 1.1 and 3.1, PGF_C everywhere,
        PGF_D in 1.1 only but on two features
    """
    features = [
        build_feature("fig|1.1.peg.1", "1.1.con.1", 100, 400, family="PGF_A", product="Kinase"),
        build_feature("fig|1.1.peg.2", "1.1.con.1", 500, 700, family="PGF_B", product="Permease"),
        build_feature("fig|1.1.peg.3", "1.1.con.1", 900, 1200, family="PGF_C", product="Regulator"),
        build_feature("fig|1.1.peg.4", "1.1.con.2", 10, 90, "-", family="PGF_D", product="Transposase"),
        build_feature("fig|1.1.peg.5", "1.1.con.2", 200, 290, family="PGF_D", product="Transposase"),
        build_feature("fig|1.1.peg.6", "1.1.con.2", 300, 390),  # no family
        build_feature("fig|2.1.peg.1", "2.1.con.1", 50, 350, "-", family="PGF_A", product="Kinase"),
        build_feature("fig|2.1.peg.2", "2.1.con.1", 1000, 1300, family="PGF_C", product="Regulator"),
        build_feature("fig|3.1.peg.1", "3.1.con.1", 100, 200, family="PGF_B", product="Permease"),
        build_feature("fig|3.1.peg.2", "3.1.con.1", 300, 400, family="PGF_C", product="Regulator"),
        build_feature("fig|4.1.peg.1", "4.1.con.1", 100, 200, family="PGF_C", product="Regulator"),
    ]
    return build_service([], features)


class TestGenomeSets(unittest.TestCase):
    def test_sorted_and_unique(self):
        assert split_genome_sets(["2.1", "1.1", "2.1"], ["4.1", "3.1"]) == (["1.1", "2.1"], ["3.1", "4.1"])

    def test_shared_removed_from_out_group(self):
        with self.assertLogs(level="WARNING") as logs:
            assert split_genome_sets(["1.1", "2.1"], ["2.1", "3.1"]) == (["1.1", "2.1"], ["3.1"])
        assert "present in both sets" in logs.output[0]

    def test_empty(self):
        with self.assertRaisesRegex(ConfigurationError, "in-group"):
            split_genome_sets([], ["3.1"])
        with self.assertRaisesRegex(ConfigurationError, "out-group"):
            split_genome_sets(["1.1"], [])
        with self.assertRaisesRegex(ConfigurationError, "out-group"):
            split_genome_sets(["1.1"], ["1.1"])


class TestFamilyCount(unittest.TestCase):
    def test_fractions(self):
        count = FamilyCount("PGF_A", 3, 1, "Kinase")
        assert count.in_fraction(4) == 0.75
        assert count.out_fraction(5) == 0.2
        assert count.to_json() == {"family_id": "PGF_A", "in_count": 3, "out_count": 1, "label": "Kinase"}


class TestCounting(unittest.TestCase):
    def setUp(self):
        self.service = build_genome_service()
        self.counter = EnrichmentCounter(self.service)

    def test_counts(self):
        counts = self.counter.count_families(["1.1", "2.1"], ["3.1", "4.1"])
        assert counts == {
            "PGF_A": FamilyCount("PGF_A", 2, 0, "Kinase"),
            "PGF_B": FamilyCount("PGF_B", 1, 1, "Permease"),
            "PGF_C": FamilyCount("PGF_C", 2, 2, "Regulator"),
            # two features, but only one genome
            "PGF_D": FamilyCount("PGF_D", 1, 0, "Transposase"),
        }

    def test_counts_bounded_by_set_sizes(self):
        counts = self.counter.count_families(["1.1", "2.1", "3.1"], ["4.1"])
        for count in counts.values():
            assert 0 <= count.in_count <= 3
            assert 0 <= count.out_count <= 1
        assert counts["PGF_C"] == FamilyCount("PGF_C", 3, 1, "Regulator")

    def test_select_strict(self):
        selected = self.counter.select(["1.1", "2.1"], ["3.1", "4.1"], 1.0, 0.0)
        assert list(selected) == ["PGF_A"]
        assert selected["PGF_A"].in_count == 2
        assert selected["PGF_A"].out_count == 0

    def test_present_in_out_group_rejected(self):
        # PGF_B is in 1.1 and 3.1
        selected = self.counter.select(["1.1"], ["3.1", "4.1"], 1.0, 0.0)
        assert "PGF_B" not in selected
        assert sorted(selected) == ["PGF_A", "PGF_D"]

    def test_select_relaxed(self):
        selected = self.counter.select(["1.1", "2.1"], ["3.1", "4.1"], 0.5, 0.5)
        assert list(selected) == ["PGF_A", "PGF_B", "PGF_D"]

    def test_exact_boundaries(self):
        # one of three in-group genomes is exactly a third
        selected = self.counter.select(["1.1", "2.1", "4.1"], ["3.1"], 1 / 3, 0.0)
        assert "PGF_D" in selected

    def test_select_bad_fractions(self):
        with self.assertRaises(ConfigurationError):
            self.counter.select(["1.1"], ["3.1"], 1.5, 0.0)
        with self.assertRaises(ConfigurationError):
            self.counter.select(["1.1"], ["3.1"], 0.5, -0.1)

    def test_empty_sets(self):
        with self.assertRaises(ConfigurationError):
            self.counter.select([], ["3.1"], 0.8, 0.2)

    def test_progress(self):
        sink = Mock()
        counter = EnrichmentCounter(self.service, progress=sink, comment="batch 3")
        counter.count_families(["1.1", "2.1"], ["3.1"])
        messages = [call.args[0] for call in sink.progress.call_args_list]
        assert messages == [
            "2 genomes in group 1, 1 in group 2.",
            "Reading features for 1.1 (1 of 3).  batch 3",
            "Reading features for 2.1 (2 of 3).  batch 3",
            "Reading features for 3.1 (3 of 3).  batch 3",
        ]

    def test_upstream_failure(self):
        service = Mock(spec=["query"])
        service.query.side_effect = OSError("unreachable")
        with self.assertRaisesRegex(UpstreamError, "unreachable"):
            EnrichmentCounter(service).select(["1.1"], ["3.1"], 0.8, 0.2)


class TestMembers(unittest.TestCase):
    def setUp(self):
        self.counter = EnrichmentCounter(build_genome_service(), batch_size=1)

    def test_members(self):
        members = self.counter.family_members(["PGF_D", "PGF_A"])
        assert members == [
            ("PGF_D", "Transposase", "fig|1.1.peg.4", "1.1.con.2", 10, 90, "-"),
            ("PGF_D", "Transposase", "fig|1.1.peg.5", "1.1.con.2", 200, 290, "+"),
            ("PGF_A", "Kinase", "fig|1.1.peg.1", "1.1.con.1", 100, 400, "+"),
            ("PGF_A", "Kinase", "fig|2.1.peg.1", "2.1.con.1", 50, 350, "-"),
        ]

    def test_members_limited_to_genomes(self):
        members = self.counter.family_members(["PGF_A", "PGF_B"], genomes=["2.1", "3.1"])
        assert [member[2] for member in members] == ["fig|2.1.peg.1", "fig|3.1.peg.1"]

    def test_no_families(self):
        assert self.counter.family_members([]) == []


class TestResults(unittest.TestCase):
    def test_json(self):
        results = SignatureResults(["1.1"], ["3.1"])
        results.families = {"PGF_A": FamilyCount("PGF_A", 1, 0, "Kinase")}
        results.clusters = [[("fig|1.1.peg.1", "PGF_A"), ("fig|1.1.peg.2", "PGF_B")]]
        results.add_skipped("9.9")
        assert results.to_json() == {
            "genomes_in": ["1.1"],
            "genomes_out": ["3.1"],
            "families": {"PGF_A": {"family_id": "PGF_A", "in_count": 1, "out_count": 0, "label": "Kinase"}},
            "clusters": [[["fig|1.1.peg.1", "PGF_A"], ["fig|1.1.peg.2", "PGF_B"]]],
            "skipped": ["9.9"],
        }
