"""Tests for pi.deck.registry."""

from __future__ import annotations

import pytest

from pi.deck import navigation
from pi.deck.errors import KeyConflictError, PageNotFoundError
from pi.deck.page import BasePage, PState
from pi.deck.registry import PageRegistry, validate_page_keys
from pi.deck.size import Size


class KeysPage(BasePage):
    def __init__(self, *handled: str) -> None:
        self.handled = list(handled)

    def init(self) -> PState:
        return navigation.make(None)

    def view(self, pstate: PState, focus: bool, size: Size) -> str:
        return ""

    def handled_keys(self) -> list[str]:
        return self.handled


class TestValidation:
    def test_global_key_rejected(self) -> None:
        with pytest.raises(KeyConflictError) as info:
            validate_page_keys("main", KeysPage("?", "q"))
        assert info.value.page == "main"
        assert info.value.keys == ["?"]

    def test_ordinary_keys_allowed(self) -> None:
        validate_page_keys("main", KeysPage("q", "C-s"))


class TestPageRegistry:
    def test_register_and_get(self) -> None:
        registry = PageRegistry()
        page = KeysPage()
        registry.register("main", page)
        assert registry.get("main") is page
        assert registry.exists("main")
        assert registry.names() == ["main"]

    def test_missing_page(self) -> None:
        registry = PageRegistry()
        assert registry.find("nope") is None
        with pytest.raises(PageNotFoundError) as info:
            registry.get("nope")
        assert str(info.value) == "no page registered as 'nope'"
        with pytest.raises(KeyError):
            registry.get("nope")

    def test_register_validates(self) -> None:
        registry = PageRegistry()
        with pytest.raises(KeyConflictError):
            registry.register("bad", KeysPage("?"))
        assert not registry.exists("bad")

    def test_override_skips_validation(self) -> None:
        registry = PageRegistry()
        registry.override("bad", KeysPage("?"))
        assert registry.exists("bad")

    def test_register_once(self) -> None:
        registry = PageRegistry()
        first, second = KeysPage(), KeysPage()
        assert registry.register_once("p", first)
        assert not registry.register_once("p", second)
        assert registry.get("p") is first

    def test_lazy_page_loaded_once(self) -> None:
        registry = PageRegistry()
        built: list[int] = []

        def loader() -> KeysPage:
            built.append(1)
            return KeysPage()

        registry.register_lazy("lazy", loader)
        assert registry.exists("lazy")
        assert registry.names() == []
        page = registry.get("lazy")
        assert registry.get("lazy") is page
        assert built == [1]
        assert registry.names() == ["lazy"]

    def test_lazy_page_is_validated(self) -> None:
        registry = PageRegistry()
        registry.register_lazy("lazy", lambda: KeysPage("?"))
        with pytest.raises(KeyConflictError):
            registry.find("lazy")

    def test_unregister(self) -> None:
        registry = PageRegistry()
        registry.register("a", KeysPage())
        registry.register_lazy("b", KeysPage)
        registry.unregister("a")
        registry.unregister("b")
        registry.unregister("never")
        assert not registry.exists("a")
        assert not registry.exists("b")


class TestConflicts:
    def test_shared_keys_reported(self) -> None:
        registry = PageRegistry()
        registry.register("b", KeysPage("q", "x"))
        registry.register("a", KeysPage("q"))
        registry.register("c", KeysPage("x", "y"))
        assert registry.check_all_conflicts() == [("q", ["a", "b"]), ("x", ["b", "c"])]
        assert registry.conflict_report() == (
            "Key conflicts detected:\n"
            "  Key 'q' handled by: a, b\n"
            "  Key 'x' handled by: b, c"
        )

    def test_no_conflicts(self) -> None:
        registry = PageRegistry()
        registry.register("a", KeysPage("q"))
        assert registry.check_all_conflicts() == []
        assert registry.conflict_report() is None
