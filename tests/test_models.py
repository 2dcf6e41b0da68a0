"""Tests for ImplementorDescriptor and CrateImplementorTable."""

import dataclasses

import pytest

from implspine.models import CrateImplementorTable, ImplementorDescriptor


class TestImplementorDescriptor:
    def test_is_immutable(self):
        descriptor = ImplementorDescriptor("core::ops::Drop", "futures::Promise<T>")
        with pytest.raises(dataclasses.FrozenInstanceError):
            descriptor.type_path = "other"

    def test_lists_are_stored_as_tuples(self):
        descriptor = ImplementorDescriptor("core::ops::Drop", "X", constraints=["T: Send"], generics=["T"])
        assert descriptor.constraints == ("T: Send",)
        assert descriptor.generics == ("T",)

    def test_signature(self):
        descriptor = ImplementorDescriptor(
            "core::ops::Drop",
            "futures::stream::Receiver<T, E>",
            constraints=("T: Send + 'static", "E: Send + 'static"),
            generics=("T", "E"),
        )
        assert descriptor.trait_name == "Drop"
        assert descriptor.signature == (
            "impl<T, E> Drop for futures::stream::Receiver<T, E> where T: Send + 'static, E: Send + 'static"
        )

    def test_signature_without_generics(self):
        descriptor = ImplementorDescriptor("core::clone::Clone", "alpha::Token")
        assert descriptor.signature == "impl Clone for alpha::Token"

    def test_markup_ignored_in_equality(self):
        a = ImplementorDescriptor("core::ops::Drop", "X", markup="<a>X</a>")
        b = ImplementorDescriptor("core::ops::Drop", "X")
        assert a == b


class TestCrateImplementorTable:
    def test_preserves_order(self):
        first = ImplementorDescriptor("core::ops::Drop", "a::First")
        second = ImplementorDescriptor("core::ops::Drop", "a::Second")
        table = CrateImplementorTable({"zeta": [first, second], "alpha": []}, trait_path="core::ops::Drop")

        assert table.crates == ("zeta", "alpha")
        assert table["zeta"] == (first, second)
        assert table.implementor_count == 2
        assert len(table) == 2

    def test_accepts_pairs(self):
        table = CrateImplementorTable([("alpha", [])])
        assert "alpha" in table
        assert table.trait_path is None

    def test_is_read_only(self):
        table = CrateImplementorTable({"alpha": []})
        with pytest.raises(TypeError):
            table["beta"] = ()  # type: ignore[index]

    def test_source_mapping_changes_do_not_leak(self):
        source = {"alpha": []}
        table = CrateImplementorTable(source)
        source["beta"] = []
        assert table.crates == ("alpha",)

    def test_equality_includes_trait(self):
        assert CrateImplementorTable({"a": []}, trait_path="x") == CrateImplementorTable({"a": []}, trait_path="x")
        assert CrateImplementorTable({"a": []}, trait_path="x") != CrateImplementorTable({"a": []}, trait_path="y")

    def test_to_dict(self):
        descriptor = ImplementorDescriptor("core::ops::Drop", "a::T", generics=("T",))
        data = CrateImplementorTable({"a": [descriptor]}, trait_path="core::ops::Drop").to_dict()
        assert data["trait_path"] == "core::ops::Drop"
        assert data["crates"]["a"][0]["generics"] == ["T"]
