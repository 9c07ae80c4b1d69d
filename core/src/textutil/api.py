from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import replace

from textutil.contracts import (
    BindError,
    FailurePhase,
    HostConfig,
    HostValue,
    InvocationResult,
    PluginRegistry,
    ScriptError,
    ScriptRuntime,
    SourceEntry,
    normalize_plugin_key,
)
from textutil.discovery.directory import DirectorySourceProvider
from textutil.orchestration.registry import DictPluginRegistry
from textutil.runtime.bindings import default_bindings
from textutil.runtime.sandbox import PythonScriptRuntime

logger = logging.getLogger("textutil.run")

NOT_TEXT_MESSAGE = "plugin did not return text"


def run_plugin(
    name: str,
    text: str,
    *,
    registry: PluginRegistry,
    runtime: ScriptRuntime | None = None,
    bindings: Mapping[str, HostValue] | None = None,
    config: HostConfig | None = None,
) -> InvocationResult:
    """
    Run plugin ``name`` against ``text`` in a fresh execution context.

    Never raises for plugin-caused failures: every failure comes back as a
    ``failed`` InvocationResult carrying a diagnostic.
    """
    config = config or HostConfig()
    started = time.monotonic()

    plugin = registry.lookup(name)
    if plugin is None:
        return _finish(
            InvocationResult.failure(
                f"no plugin named {name} found",
                plugin_key=normalize_plugin_key(name),
                phase="lookup",
            ),
            started,
        )

    script_runtime = runtime or PythonScriptRuntime.from_config(config)
    entry_point = config.runtime.entry_point
    context = None

    def fail(message: str, phase: FailurePhase) -> InvocationResult:
        return _finish(
            InvocationResult.failure(message, plugin_key=plugin.key, phase=phase), started
        )

    try:
        context = script_runtime.create_context()
        try:
            script_runtime.bind(context, config.runtime.input_binding, text, mutable=False)
            host_values = dict(default_bindings(config, plugin_key=plugin.key))
            host_values.update(bindings or {})
            for binding_name, value in host_values.items():
                script_runtime.bind(context, binding_name, value, mutable=False)
        except BindError as exc:
            return fail(f"convert error: {exc}", "convert")

        try:
            script_runtime.evaluate(context, plugin.source, filename=plugin.filename)
            output = script_runtime.invoke(context, entry_point, [text])
        except ScriptError as exc:
            if exc.phase == "convert":
                return fail(NOT_TEXT_MESSAGE, "convert")
            return fail(script_runtime.to_display_string(context, exc), exc.phase)

        if not isinstance(output, str):
            return fail(NOT_TEXT_MESSAGE, "convert")
        return _finish(
            InvocationResult.success(output, plugin_key=plugin.key),
            started,
        )
    except KeyboardInterrupt:
        raise
    except Exception as exc:
        logger.exception("Unexpected host error while running plugin '%s'", plugin.key)
        return fail(f"plugin run failed: {exc}", "runtime")
    finally:
        if context is not None:
            _dispose_best_effort(script_runtime, context)


def build_source_provider(config: HostConfig) -> DirectorySourceProvider:
    return DirectorySourceProvider(
        config.plugins.directory,
        suffixes=config.plugins.suffixes,
        recursive=config.plugins.recursive,
    )


def build_registry(config: HostConfig | None = None) -> DictPluginRegistry:
    """Discover plugins from the configured directory."""
    config = config or HostConfig()
    registry = DictPluginRegistry.load(build_source_provider(config))
    logger.info("Loaded %d plugin(s) from %s", len(registry), config.plugins.directory)
    return registry


def refresh_registry(
    registry: DictPluginRegistry,
    source_provider: Iterable[SourceEntry],
    *,
    merge: bool = False,
) -> DictPluginRegistry:
    return registry.refresh(source_provider, merge=merge)


def _finish(result: InvocationResult, started: float) -> InvocationResult:
    duration_s = time.monotonic() - started
    result = replace(result, duration_s=duration_s)
    if result.ok:
        logger.info("Plugin '%s' ok in %.3fs", result.plugin_key, duration_s)
    else:
        logger.info(
            "Plugin '%s' failed (%s) in %.3fs: %s",
            result.plugin_key,
            result.phase,
            duration_s,
            result.message,
        )
    return result


def _dispose_best_effort(runtime: ScriptRuntime, context: object) -> None:
    try:
        runtime.dispose(context)
    except Exception:
        logger.warning("Failed to dispose execution context", exc_info=True)
