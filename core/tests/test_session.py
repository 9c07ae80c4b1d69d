import pytest

from textutil.contracts import HostConfig
from textutil.session import EditorSession
from textutil.testkit.providers import InMemorySourceProvider


def _session(text: str = "abc") -> EditorSession:
    provider = InMemorySourceProvider(
        {
            "upper": "def main(x):\n    return x.upper()\n",
            "broken": "def main(x):\n    raise ValueError('nope')\n",
        }
    )
    return EditorSession(text, source_provider=provider)


def test_success_replaces_buffer():
    session = _session()

    result = session.run_plugin("UPPER")

    assert result.ok
    assert session.text == "ABC"
    assert session.last_error is None


def test_failure_leaves_buffer_untouched_and_records_error():
    session = _session()

    result = session.run_plugin("broken")

    assert not result.ok
    assert session.text == "abc"
    assert session.last_error == "runtime error: ValueError: nope (line 2)"


def test_unknown_plugin_reports_lookup_message():
    session = _session()

    session.run_plugin("ghost")

    assert session.text == "abc"
    assert session.last_error == "no plugin named ghost found"


def test_refresh_rereads_provider():
    provider = InMemorySourceProvider({"one": "def main(x):\n    return x\n"})
    session = EditorSession("", source_provider=provider)

    session.refresh_plugins()

    assert provider.iterations == 2
    assert session.plugin_names() == ["one"]


def test_session_uses_configured_directory(tmp_path):
    (tmp_path / "shout.py").write_text("def main(x):\n    return x + '!'\n", encoding="utf-8")
    config = HostConfig.model_validate({"plugins": {"directory": str(tmp_path)}})

    session = EditorSession("hey", config=config)
    session.run_plugin("shout")

    assert session.text == "hey!"


def test_one_shot_iterator_provider_is_rejected():
    entries = iter([("upper", b"def main(x):\n    return x.upper()\n")])

    with pytest.raises(TypeError, match="one-shot iterator"):
        EditorSession("abc", source_provider=entries)


def test_provider_factory_is_called_on_every_refresh():
    calls = []

    def entries():
        calls.append(len(calls))
        yield "upper", b"def main(x):\n    return x.upper()\n"

    session = EditorSession("abc", source_provider=entries)
    session.refresh_plugins()

    assert calls == [0, 1]
    assert session.plugin_names() == ["upper"]
    assert session.run_plugin("upper").text == "ABC"
