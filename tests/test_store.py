"""
Tests for the decorated key/value store.
"""

import os
import sys
from typing import Optional

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from protected_config.store import ConfigurationData, DecoratedStore


class UppercaseDecorator:
    """Records hook calls and upper-cases returned values."""

    def __init__(self):
        self.loads = 0

    def after_load(self, entries: ConfigurationData) -> ConfigurationData:
        self.loads += 1
        entries["Loaded"] = "yes"
        return entries

    def before_return(self, key: str, value: Optional[str]) -> Optional[str]:
        return value.upper() if value is not None else None


class FailingDecorator:
    def after_load(self, entries):
        raise RuntimeError("scan failed")

    def before_return(self, key, value):
        return value


class TestConfigurationData:
    """Tests for ConfigurationData."""

    def test_case_insensitive_lookup(self):
        data = ConfigurationData({"SomeApi:Secret": "x"})
        assert data["someapi:secret"] == "x"
        assert "SOMEAPI:SECRET" in data

    def test_keeps_first_casing(self):
        data = ConfigurationData({"SomeApi:Secret": "x"})
        data["someapi:secret"] = "y"
        assert list(data) == ["SomeApi:Secret"]
        assert data["SomeApi:Secret"] == "y"

    def test_delete(self):
        data = ConfigurationData({"A": "1"})
        del data["a"]
        assert len(data) == 0

    def test_missing_key(self):
        with pytest.raises(KeyError):
            ConfigurationData()["missing"]

    def test_non_string_membership(self):
        assert 1 not in ConfigurationData({"1": "x"})

    def test_copy_is_independent(self):
        data = ConfigurationData({"A": "1"})
        copy = data.copy()
        copy["A"] = "2"
        assert data["A"] == "1"

    def test_repr_hides_values(self):
        assert "hunter2" not in repr(ConfigurationData({"Password": "hunter2"}))

    def test_sharp_s_keys_stay_separate(self):
        """Case folding never expands one character into two."""
        data = ConfigurationData({"Straße": "a", "STRASSE": "b"})
        assert len(data) == 2
        assert data["STRASSE"] == "b"
        assert data["strasse"] == "b"
        assert data["STRAßE"] == "a"


class TestDecoratedStore:
    """Tests for DecoratedStore."""

    def test_load_runs_after_load(self):
        decorator = UppercaseDecorator()
        store = DecoratedStore(lambda: ConfigurationData({"A": "x"}), [decorator])
        store.load()
        assert decorator.loads == 1
        assert "Loaded" in store

    def test_try_get_runs_before_return(self):
        store = DecoratedStore(lambda: ConfigurationData({"A": "x"}), [UppercaseDecorator()])
        store.load()
        assert store.try_get("a") == (True, "X")

    def test_try_get_missing(self):
        store = DecoratedStore(lambda: ConfigurationData({"A": "x"}))
        store.load()
        assert store.try_get("B") == (False, None)

    def test_get_default(self):
        store = DecoratedStore(lambda: ConfigurationData())
        store.load()
        assert store.get("B", "fallback") == "fallback"

    def test_raw_skips_hooks(self):
        store = DecoratedStore(lambda: ConfigurationData({"A": "x"}), [UppercaseDecorator()])
        store.load()
        assert store.raw("A") == "x"

    def test_failed_load_keeps_previous_data(self):
        """A load that fails part-way never becomes visible."""
        calls = iter([ConfigurationData({"A": "old"}), ConfigurationData({"A": "new"})])
        store = DecoratedStore(lambda: next(calls))
        store.load()

        store.add_decorator(FailingDecorator())
        with pytest.raises(RuntimeError):
            store.load()

        assert store.raw("A") == "old"

    def test_set_and_keys(self):
        store = DecoratedStore(lambda: ConfigurationData({"A": "1"}))
        store.load()
        store.set("B", "2")
        assert store.keys() == ["A", "B"]
        assert len(store) == 2
