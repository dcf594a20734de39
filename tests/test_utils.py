# tests/test_utils.py
"""
Tests for configkit.utils.
"""

from pathlib import Path

from configkit.utils import expand_path, flatten, join_key, prefix_keys, render_scalar, split_key

# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class TestKeys:

    def test_join(self):
        assert join_key(["database", "port"]) == "database__port"
        assert join_key([]) == ""

    def test_split(self):
        assert split_key("a__b__c") == ["a", "b", "c"]
        assert split_key(("a", "b")) == ["a", "b"]

    def test_prefix_keys(self):
        assert prefix_keys({"size": "1"}, "pool") == {"pool__size": "1"}

    def test_prefix_keys_at_root(self):
        assert prefix_keys({"size": "1"}, "") == {"size": "1"}


# ---------------------------------------------------------------------------
# flatten / render_scalar
# ---------------------------------------------------------------------------


class TestFlatten:

    def test_nested(self):
        assert flatten({"a": {"b": {"c": 1}}, "d": "x"}) == {"a__b__c": "1", "d": "x"}

    def test_scalars(self):
        assert render_scalar(True) == "true"
        assert render_scalar(False) == "false"
        assert render_scalar(None) == ""
        assert render_scalar([1, "two", True]) == "1,two,true"
        assert render_scalar(1.5) == "1.5"


# ---------------------------------------------------------------------------
# expand_path
# ---------------------------------------------------------------------------


class TestExpandPath:

    def test_none_input(self):
        assert expand_path(None) is None

    def test_tilde_expansion(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/testuser")
        assert expand_path("~/configs/app.conf") == "/home/testuser/configs/app.conf"

    def test_env_var_expansion(self, monkeypatch):
        monkeypatch.setenv("MY_DIR", "/opt/config")
        assert expand_path("$MY_DIR/app.conf") == "/opt/config/app.conf"

    def test_path_object(self):
        assert expand_path(Path("/etc/app.conf")) == "/etc/app.conf"
