"""Tests for FragmentLoader against fixture docs trees."""

import shutil

from implspine.index import ImplementorIndex
from implspine.loader import FragmentLoader
from implspine.registry import ImplementorRegistry


class TestDiscovery:
    def test_discovers_trait_scripts(self, docs_root):
        paths = FragmentLoader(docs_root).discover()
        assert [p.name for p in paths] == ["trait.Clone.js", "trait.Drop.js"]

    def test_accepts_implementors_dir_directly(self, docs_root):
        assert len(FragmentLoader(docs_root / "implementors").discover()) == 2

    def test_missing_dir_yields_nothing(self, tmp_path):
        assert FragmentLoader(tmp_path).discover() == []


class TestLoadAll:
    def test_load_before_initialize(self, docs_root):
        index = ImplementorIndex()
        registry = ImplementorRegistry(sink=index)

        report = FragmentLoader(docs_root).load_all(registry)
        assert report.queued == 2
        assert report.delivered == 0
        assert index.traits() == []

        registry.initialize()
        assert index.traits() == ["core::clone::Clone", "core::ops::Drop"]
        assert index.crates("core::clone::Clone") == ["alpha", "gamma"]

    def test_load_after_initialize(self, docs_root):
        index = ImplementorIndex()
        registry = ImplementorRegistry(sink=index)
        registry.initialize()

        report = FragmentLoader(docs_root).load_all(registry)
        assert report.delivered == 2
        assert report.queued == 0
        assert index.stats()["total_implementors"] == 7

    def test_bad_fragment_is_skipped(self, docs_root, tmp_path):
        root = tmp_path / "doc"
        shutil.copytree(docs_root, root)
        broken = root / "implementors" / "core" / "fmt" / "trait.Debug.js"
        broken.parent.mkdir(parents=True)
        broken.write_text("(function() {})()", encoding="utf-8")

        index = ImplementorIndex()
        registry = ImplementorRegistry(sink=index)
        report = FragmentLoader(root).load_all(registry)
        registry.initialize()

        assert str(broken) in report.skipped
        assert len(report.loaded) == 2
        assert "core::fmt::Debug" not in index
        assert report.to_dict()["skipped"] == report.skipped
