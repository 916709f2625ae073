"""Step content templates: user-authored Jinja text rendered against the run context."""

from __future__ import annotations

from typing import Any

from jinja2 import ChainableUndefined, Template, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from autoflow.domain.exceptions import ActionExecutionError


class StepTemplateRenderer:
    """Renders step text such as "Hi {{ lead.name }}" with the run context.

    Templates are written by dashboard users, so they run in Jinja's sandbox.
    Missing context paths render as empty strings. Compiled templates are
    cached by source text.
    """

    def __init__(self, max_cached: int = 256) -> None:
        self._env = SandboxedEnvironment(autoescape=False, undefined=ChainableUndefined)
        self._compiled: dict[str, Template] = {}
        self._max_cached = max_cached

    def render(self, source: str | None, context: dict[str, Any], *, step_type: str) -> str:
        """Render source with context. Raises ActionExecutionError for bad templates."""
        if not source:
            return ""
        if "{" not in source:
            return source
        try:
            template = self._compiled.get(source)
            if template is None:
                template = self._env.from_string(source)
                if len(self._compiled) >= self._max_cached:
                    self._compiled.clear()
                self._compiled[source] = template
            return template.render(**context)
        except TemplateError as e:
            raise ActionExecutionError(step_type, f"template error: {e}") from e
