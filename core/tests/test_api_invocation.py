from __future__ import annotations

import logging
import textwrap

import pytest

from textutil.api import NOT_TEXT_MESSAGE, run_plugin
from textutil.contracts import HostConfig, InvocationResult
from textutil.orchestration.registry import DictPluginRegistry
from textutil.runtime.sandbox import PythonScriptRuntime
from textutil.testkit.providers import InMemorySourceProvider

PLUGINS = {
    "identity": "def main(x):\n    return x\n",
    "Upper": "def main(x):\n    return x.upper()\n",
    "broken_syntax": "def main(x)\n    return x\n",
    "raises": "def main(x):\n    raise ValueError('bad input: ' + x)\n",
    "top_level_raise": "raise RuntimeError('at import')\ndef main(x):\n    return x\n",
    "no_main": "def transform(x):\n    return x\n",
    "returns_int": "def main(x):\n    return len(x)\n",
    "returns_object": "def main(x):\n    return object()\n",
    "reads_binding": "def main(x):\n    return text_input + '|' + x\n",
    "leaks_state": (
        "try:\n"
        "    seen\n"
        "except NameError:\n"
        "    seen = []\n"
        "def main(x):\n"
        "    seen.append(x)\n"
        "    return str(len(seen))\n"
    ),
    "rebinds_input": "text_input = 'hijacked'\ndef main(x):\n    return x\n",
    "spins": "def main(x):\n    while True:\n        pass\n",
    "greets": "def main(x):\n    log('greeting', x)\n    return greet(x) + ' v' + HOST_VERSION\n",
    "exits": "class Boom(Exception):\n    pass\ndef main(x):\n    raise Boom()\n",
}


@pytest.fixture
def registry() -> DictPluginRegistry:
    return DictPluginRegistry.load(InMemorySourceProvider(PLUGINS))


def test_identity_round_trip(registry):
    result = run_plugin("identity", "hello", registry=registry)

    assert isinstance(result, InvocationResult)
    assert result.ok
    assert result.text == "hello"
    assert result.message is None


def test_uppercase_plugin(registry):
    result = run_plugin("upper", "abc", registry=registry)

    assert result.status == "ok"
    assert result.text == "ABC"
    assert result.plugin_key == "upper"


def test_unknown_plugin_is_lookup_failure(registry):
    for text in ("", "anything", "multi\nline"):
        result = run_plugin("nonexistent", text, registry=registry)

        assert result.status == "failed"
        assert result.message == "no plugin named nonexistent found"
        assert result.phase == "lookup"
        assert result.text is None


def test_syntax_error_is_parse_failure(registry):
    result = run_plugin("broken_syntax", "x", registry=registry)

    assert result.status == "failed"
    assert result.phase == "parse"
    assert result.message.startswith("parse error: ")


def test_raising_main_fails_then_other_plugin_still_succeeds(registry):
    failed = run_plugin("raises", "oops", registry=registry)
    succeeded = run_plugin("upper", "still works", registry=registry)

    assert failed.phase == "runtime"
    assert failed.message == "runtime error: ValueError: bad input: oops (line 2)"
    assert succeeded.ok
    assert succeeded.text == "STILL WORKS"


def test_top_level_failure_is_runtime_failure(registry):
    result = run_plugin("top_level_raise", "x", registry=registry)

    assert result.phase == "runtime"
    assert "RuntimeError: at import" in result.message


def test_missing_entry_point_is_lookup_failure(registry):
    result = run_plugin("no_main", "x", registry=registry)

    assert result.phase == "lookup"
    assert "function 'main' is not defined" in result.message


@pytest.mark.parametrize("name", ["returns_int", "returns_object"])
def test_non_text_return_is_convert_failure(registry, name):
    result = run_plugin(name, "abc", registry=registry)

    assert result.status == "failed"
    assert result.phase == "convert"
    assert result.message == NOT_TEXT_MESSAGE


def test_input_is_also_exposed_as_read_only_binding(registry):
    result = run_plugin("reads_binding", "abc", registry=registry)

    assert result.text == "abc|abc"


def test_rebinding_input_fails(registry):
    result = run_plugin("rebinds_input", "abc", registry=registry)

    assert result.phase == "runtime"
    assert "read-only binding 'text_input'" in result.message


def test_runs_are_isolated_and_deterministic(registry):
    first = run_plugin("leaks_state", "a", registry=registry)
    second = run_plugin("leaks_state", "a", registry=registry)

    assert first == InvocationResult.success(
        "1", plugin_key="leaks_state", duration_s=first.duration_s
    )
    assert second.text == first.text


def test_timeout_is_reported_as_failure(registry):
    config = HostConfig.model_validate({"runtime": {"timeout_s": 0.2}})

    result = run_plugin("spins", "x", registry=registry, config=config)

    assert result.phase == "timeout"
    assert "time budget" in result.message


def test_host_bindings_are_available(registry, caplog):
    with caplog.at_level(logging.INFO, logger="textutil.plugin"):
        result = run_plugin("greets", "Ada", registry=registry)

    assert result.ok
    assert result.text.startswith("Hello, Ada! v")
    assert any(r.name == "textutil.plugin.greets" for r in caplog.records)


def test_custom_exception_class_is_reported(registry):
    result = run_plugin("exits", "x", registry=registry)

    assert result.phase == "runtime"
    assert result.message == "runtime error: Boom (line 4)"


def test_extra_bindings_are_injected(registry):
    source = {"suffix": "def main(x):\n    return x + SUFFIX\n"}
    registry = DictPluginRegistry.load(InMemorySourceProvider(source))

    result = run_plugin("suffix", "a", registry=registry, bindings={"SUFFIX": "!"})

    assert result.text == "a!"


def test_rejected_binding_is_convert_failure(registry):
    result = run_plugin("identity", "a", registry=registry, bindings={"bad": object()})

    assert result.phase == "convert"
    assert result.message.startswith("convert error: ")


def test_custom_abi_names_from_config():
    config = HostConfig.model_validate(
        {"runtime": {"entry_point": "transform", "input_binding": "buffer"}}
    )
    source = {"custom": "def transform(x):\n    return buffer[::-1]\n"}
    registry = DictPluginRegistry.load(InMemorySourceProvider(source))

    result = run_plugin("custom", "abc", registry=registry, config=config)

    assert result.text == "cba"


def test_unexpected_runtime_error_never_escapes(registry):
    class ExplodingRuntime(PythonScriptRuntime):
        def evaluate(self, context, source, *, filename="<plugin>"):
            raise OSError("disk on fire")

    result = run_plugin("identity", "x", registry=registry, runtime=ExplodingRuntime())

    assert result.status == "failed"
    assert result.message == "plugin run failed: disk on fire"


def test_runs_are_logged(registry, caplog):
    with caplog.at_level(logging.INFO, logger="textutil.run"):
        run_plugin("identity", "x", registry=registry)
        run_plugin("nonexistent", "x", registry=registry)

    messages = [r.getMessage() for r in caplog.records if r.name == "textutil.run"]
    assert any("'identity' ok" in message for message in messages)
    assert any("'nonexistent' failed (lookup)" in message for message in messages)


def test_patching_shared_objects_does_not_leak_into_later_runs():
    sources = {
        "wrap": "import textwrap\ndef main(x):\n    return textwrap.fill(x, width=72)\n",
        "patch_wrapper": (
            "import textwrap\n"
            "def main(x):\n"
            "    textwrap.TextWrapper.fill = lambda self, text: 'POISONED'\n"
            "    return x\n"
        ),
        "patch_error": (
            "def main(x):\n"
            "    HostCallError.__str__ = lambda self: 'POISONED'\n"
            "    return x\n"
        ),
        "catches": (
            "def main(x):\n"
            "    try:\n"
            "        greet(5)\n"
            "    except HostCallError as exc:\n"
            "        return str(exc)\n"
        ),
    }
    registry = DictPluginRegistry.load(InMemorySourceProvider(sources))

    before = run_plugin("wrap", "hello world", registry=registry)
    patched = run_plugin("patch_wrapper", "x", registry=registry)
    after = run_plugin("wrap", "hello world", registry=registry)
    patched_error = run_plugin("patch_error", "x", registry=registry)
    caught = run_plugin("catches", "x", registry=registry)

    assert patched.phase == "runtime"
    assert "shared with the host" in patched.message
    assert before.text == after.text == "hello world"
    assert textwrap.fill("a b") == "a b"
    assert patched_error.phase == "runtime"
    assert caught.text == "greet() failed: expected text"
