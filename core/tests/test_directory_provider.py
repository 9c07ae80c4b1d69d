import logging

from textutil.api import build_registry
from textutil.contracts import HostConfig, SourceProvider
from textutil.discovery.directory import DirectorySourceProvider


def test_yields_stems_and_bytes_recursively_in_sorted_order(tmp_path):
    (tmp_path / "b.py").write_bytes(b"b")
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "a.py").write_bytes(b"a")
    (tmp_path / "notes.txt").write_bytes(b"ignored")

    provider = DirectorySourceProvider(tmp_path)

    assert isinstance(provider, SourceProvider)
    assert list(provider) == [("b", b"b"), ("a", b"a")]


def test_non_recursive_skips_subdirectories(tmp_path):
    (tmp_path / "top.py").write_bytes(b"top")
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "deep.py").write_bytes(b"deep")

    provider = DirectorySourceProvider(tmp_path, recursive=False)

    assert [name for name, _ in provider] == ["top"]


def test_suffix_match_is_case_insensitive(tmp_path):
    (tmp_path / "LOUD.PY").write_bytes(b"loud")
    (tmp_path / "script.rhai").write_bytes(b"other")

    provider = DirectorySourceProvider(tmp_path, suffixes=[".py", ".rhai"])

    assert sorted(name for name, _ in provider) == ["LOUD", "script"]


def test_missing_directory_yields_nothing(tmp_path, caplog):
    with caplog.at_level(logging.WARNING, logger="textutil.discovery"):
        entries = list(DirectorySourceProvider(tmp_path / "nope"))

    assert entries == []
    assert any("does not exist" in r.getMessage() for r in caplog.records)


def test_unreadable_file_is_skipped(tmp_path, monkeypatch, caplog):
    (tmp_path / "good.py").write_bytes(b"good")
    (tmp_path / "bad.py").write_bytes(b"bad")
    original_read_bytes = type(tmp_path).read_bytes

    def flaky_read_bytes(self):
        if self.name == "bad.py":
            raise PermissionError("denied")
        return original_read_bytes(self)

    monkeypatch.setattr(type(tmp_path), "read_bytes", flaky_read_bytes)

    with caplog.at_level(logging.WARNING, logger="textutil.discovery"):
        entries = list(DirectorySourceProvider(tmp_path))

    assert entries == [("good", b"good")]
    assert any("Skipping unreadable plugin file" in r.getMessage() for r in caplog.records)


def test_build_registry_from_config(tmp_path):
    (tmp_path / "Upper.py").write_text("def main(x):\n    return x.upper()\n", encoding="utf-8")
    config = HostConfig.model_validate({"plugins": {"directory": str(tmp_path)}})

    registry = build_registry(config)

    assert [info.key for info in registry.list()] == ["upper"]
