"""HTML rendering through Jinja2 templates stored in the package 'templates/' directory."""

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from taskboard.config import TEMPLATES_DIR


class ViewRenderer:
    def __init__(self, directory: str | Path = TEMPLATES_DIR) -> None:
        self.environment = Environment(
            loader=FileSystemLoader(directory),
            autoescape=select_autoescape(["html"]),
        )

    def render(self, name: str, context: dict[str, Any]) -> str:
        return self.environment.get_template(name).render(**context)
