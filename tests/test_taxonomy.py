"""
Tests for taxonomy schemes and the distribution model.
"""

import pytest

from toetsgen.taxonomy import (
    DEFAULT_SCHEME,
    KTI,
    RTTI,
    SCHEMES,
    TaxonomyDistribution,
    get_scheme,
)


class TestSchemes:
    def test_rtti_labels_and_defaults(self):
        assert RTTI.labels == ("R", "T1", "T2", "I")
        assert RTTI.defaults == {"R": 25, "T1": 40, "T2": 25, "I": 10}

    def test_kti_labels_and_defaults(self):
        assert KTI.labels == ("K", "T", "I")
        assert KTI.defaults == {"K": 30, "T": 50, "I": 20}

    def test_defaults_sum_to_100(self):
        for scheme in SCHEMES.values():
            assert sum(scheme.defaults.values()) == 100

    def test_every_label_has_a_name_and_color(self):
        for scheme in SCHEMES.values():
            assert set(scheme.level_names) == set(scheme.labels)
            assert set(scheme.colors) == set(scheme.labels)

    def test_get_scheme_unknown(self):
        assert get_scheme("BLOOM") is None

    def test_default_scheme_is_rtti(self):
        assert DEFAULT_SCHEME == "RTTI"


class TestDistribution:
    def test_starts_with_defaults(self):
        dist = TaxonomyDistribution()
        assert dist.scheme_id == "RTTI"
        assert dist.as_dict() == {"R": 25, "T1": 40, "T2": 25, "I": 10}
        assert dist.is_valid()

    def test_unknown_scheme_rejected(self):
        with pytest.raises(ValueError):
            TaxonomyDistribution("BLOOM")

    def test_set_value_changes_total(self):
        dist = TaxonomyDistribution("RTTI")
        dist.set_value("R", 30)
        assert dist.total_percent() == 105
        assert not dist.is_valid()

    def test_set_value_does_not_clamp(self):
        dist = TaxonomyDistribution("KTI")
        dist.set_value("K", 250)
        assert dist.as_dict()["K"] == 250

    def test_set_value_unknown_label(self):
        dist = TaxonomyDistribution("KTI")
        with pytest.raises(KeyError):
            dist.set_value("T1", 10)

    @pytest.mark.parametrize(
        "values,valid",
        [
            ({"R": 25, "T1": 25, "T2": 25, "I": 25}, True),
            ({"R": 0, "T1": 0, "T2": 0, "I": 100}, True),
            ({"R": 0, "T1": 0, "T2": 0, "I": 0}, False),
            ({"R": 50, "T1": 50, "T2": 1, "I": 0}, False),
        ],
    )
    def test_valid_iff_sum_is_100(self, values, valid):
        dist = TaxonomyDistribution("RTTI", values=values)
        assert dist.is_valid() is valid
        assert dist.is_valid() == (sum(values.values()) == 100)

    def test_switch_scheme_resets_to_defaults(self):
        dist = TaxonomyDistribution("RTTI", values={"R": 0, "T1": 0, "T2": 0, "I": 77})
        dist.switch_scheme("KTI")
        assert dist.scheme_id == "KTI"
        assert dist.as_dict() == {"K": 30, "T": 50, "I": 20}

    def test_switch_scheme_never_carries_over_shared_label(self):
        dist = TaxonomyDistribution("KTI")
        dist.set_value("I", 55)
        dist.switch_scheme("RTTI")
        assert dist.as_dict()["I"] == 10

    def test_switch_scheme_idempotent(self):
        dist = TaxonomyDistribution("RTTI")
        dist.set_value("R", 90)
        dist.switch_scheme("RTTI")
        first = dist.as_dict()
        dist.switch_scheme("RTTI")
        assert dist.as_dict() == first == RTTI.defaults

    def test_switch_to_unknown_scheme(self):
        dist = TaxonomyDistribution("RTTI")
        with pytest.raises(ValueError):
            dist.switch_scheme("BLOOM")
        assert dist.scheme_id == "RTTI"


class TestDistributionFromForm:
    def test_reads_dist_fields(self):
        form = {"dist_K": "20", "dist_T": "60", "dist_I": "20"}
        dist = TaxonomyDistribution.from_form("KTI", form)
        assert dist.as_dict() == {"K": 20, "T": 60, "I": 20}

    def test_missing_fields_keep_defaults(self):
        dist = TaxonomyDistribution.from_form("RTTI", {"dist_R": "35"})
        assert dist.as_dict() == {"R": 35, "T1": 40, "T2": 25, "I": 10}

    def test_clamps_and_ignores_garbage(self):
        form = {"dist_R": "150", "dist_T1": "-5", "dist_T2": "abc", "dist_I": "12.7"}
        dist = TaxonomyDistribution.from_form("RTTI", form)
        assert dist.as_dict() == {"R": 100, "T1": 0, "T2": 0, "I": 12}

    def test_unknown_scheme_falls_back(self):
        dist = TaxonomyDistribution.from_form("BLOOM", {})
        assert dist.scheme_id == "RTTI"
