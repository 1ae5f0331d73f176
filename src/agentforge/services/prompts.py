"""Рендер промптов из `agentforge/prompts/*.md` (Jinja2)."""

from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined


class PromptRenderer:
    def __init__(self, env: Environment | None = None) -> None:
        self._env = env or Environment(
            loader=PackageLoader("agentforge", "prompts"),
            undefined=StrictUndefined,
            autoescape=False,
        )

    def render(self, template_id: str, variables: dict[str, Any]) -> str:
        """Загружает шаблон по имени файла и подставляет переменные."""
        return self._env.get_template(template_id).render(**variables)
