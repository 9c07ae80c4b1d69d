from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping

from textutil.api import build_source_provider, refresh_registry, run_plugin
from textutil.contracts import HostConfig, HostValue, InvocationResult, ScriptRuntime, SourceEntry
from textutil.orchestration.registry import DictPluginRegistry
from textutil.runtime.sandbox import PythonScriptRuntime


class EditorSession:
    """
    UI-side owner of the text buffer.

    The UI calls into the core synchronously and applies results here; the core
    never reaches back into UI state. The buffer only changes on a successful run.
    """

    def __init__(
        self,
        text: str = "",
        *,
        registry: DictPluginRegistry | None = None,
        source_provider: Iterable[SourceEntry] | Callable[[], Iterable[SourceEntry]] | None = None,
        config: HostConfig | None = None,
        runtime: ScriptRuntime | None = None,
        bindings: Mapping[str, HostValue] | None = None,
    ) -> None:
        self.config = config or HostConfig()
        if source_provider is None:
            source_provider = build_source_provider(self.config)
        if isinstance(source_provider, Iterator):
            raise TypeError(
                "source_provider is a one-shot iterator; pass a re-iterable provider "
                "or a callable returning fresh entries"
            )
        self.source_provider = source_provider
        if registry is None:
            registry = DictPluginRegistry.load(self._sources())
        self.registry = registry
        self.runtime = runtime or PythonScriptRuntime.from_config(self.config)
        self.bindings = dict(bindings or {})
        self.text = text
        self.last_result: InvocationResult | None = None

    @property
    def last_error(self) -> str | None:
        if self.last_result is None or self.last_result.ok:
            return None
        return self.last_result.message

    def run_plugin(self, name: str) -> InvocationResult:
        result = run_plugin(
            name,
            self.text,
            registry=self.registry,
            runtime=self.runtime,
            bindings=self.bindings,
            config=self.config,
        )
        if result.ok and result.text is not None:
            self.text = result.text
        self.last_result = result
        return result

    def refresh_plugins(self, *, merge: bool = False) -> DictPluginRegistry:
        return refresh_registry(self.registry, self._sources(), merge=merge)

    def plugin_names(self) -> list[str]:
        return [info.key for info in self.registry.list()]

    def _sources(self) -> Iterable[SourceEntry]:
        if callable(self.source_provider):
            return self.source_provider()
        return self.source_provider
