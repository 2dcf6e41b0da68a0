"""Tests for ImplementorIndex, the registry sink."""

from implspine.index import UNKNOWN_TRAIT, ImplementorIndex
from implspine.models import CrateImplementorTable
from implspine.registry import ImplementorRegistry


class TestImplementorIndex:
    def test_groups_by_trait_in_registration_order(self, make_table):
        index = ImplementorIndex()
        index(make_table("gamma", "gamma::Key"))
        index(make_table("alpha", "alpha::Token"))
        index(make_table("alpha", "alpha::Token", trait_path="core::clone::Clone"))

        assert index.traits() == ["core::clone::Clone", "core::ops::Drop"]
        assert index.crates("core::ops::Drop") == ["gamma", "alpha"]
        assert "core::ops::Drop" in index
        assert len(index) == 2

    def test_last_registration_wins(self, make_table):
        index = ImplementorIndex()
        index.register(make_table("alpha", "alpha::Old"))
        index.register(make_table("alpha", "alpha::New"))

        descriptors = index.implementors("core::ops::Drop")["alpha"]
        assert [d.type_path for d in descriptors] == ["alpha::New"]

    def test_exclude_crates(self, make_table):
        index = ImplementorIndex()
        index(make_table("alpha", "alpha::A"))
        index(make_table("beta", "beta::B"))
        assert list(index.implementors("core::ops::Drop", exclude={"alpha"})) == ["beta"]

    def test_unknown_trait(self):
        index = ImplementorIndex()
        index(CrateImplementorTable({"alpha": []}))
        assert index.traits() == [UNKNOWN_TRAIT]
        assert index.implementors("core::ops::Drop") == {}

    def test_stats(self, make_table):
        index = ImplementorIndex()
        index(make_table("alpha", "alpha::A", "alpha::B"))
        index(make_table("alpha", "alpha::A", trait_path="core::clone::Clone"))

        stats = index.stats()
        assert stats["total_traits"] == 2
        assert stats["total_crates"] == 1
        assert stats["total_implementors"] == 3
        assert stats["traits"]["core::ops::Drop"] == {"crates": 1, "implementors": 2}

    def test_as_registry_sink(self, make_table):
        index = ImplementorIndex()
        registry = ImplementorRegistry(sink=index)
        registry.submit(make_table("alpha", "alpha::A"))
        registry.initialize()
        registry.submit(make_table("beta", "beta::B"))

        assert index.crates("core::ops::Drop") == ["alpha", "beta"]
