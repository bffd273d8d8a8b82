"""Terminal output for normalized analyses."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError as JinjaTemplateError

from .errors import TemplateError
from .normalize import SourceUnit, dumps


def render_json(units: Sequence[SourceUnit]) -> str:
    return dumps(units)


def render_template(template_path: Path, units: Sequence[SourceUnit]) -> str:
    """Render source units through a user-supplied Jinja template file."""
    path = Path(template_path).expanduser().resolve()
    if not path.is_file():
        raise TemplateError(f"Template {path} does not exist")
    env = Environment(
        loader=FileSystemLoader(str(path.parent)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=StrictUndefined,
    )
    try:
        template = env.get_template(path.name)
        return template.render(
            units=[unit.to_dict() for unit in units],
            source_units=list(units),
        )
    except JinjaTemplateError as exc:
        raise TemplateError(f"Could not render template {path.name}: {exc}") from exc


__all__ = ["render_json", "render_template"]
