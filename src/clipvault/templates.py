from dataclasses import replace

from clipvault.errors import EmptyContentError, NotFoundError
from clipvault.models import Template
from clipvault.utils import generate_id


def save_template(
    templates: list[Template], name: str, content: str, template_id: str | None = None
) -> tuple[list[Template], Template]:
    """Create a template, or update the one with template_id in place."""
    if not content or not content.strip():
        raise EmptyContentError("template content is empty")

    if template_id is None:
        template = Template(id=generate_id("tpl"), name=name, content=content)
        return [*templates, template], template

    for index, existing in enumerate(templates):
        if existing.id == template_id:
            updated = replace(existing, name=name, content=content)
            return [*templates[:index], updated, *templates[index + 1:]], updated

    raise NotFoundError(template_id, kind="template")


def delete_template(templates: list[Template], template_id: str) -> list[Template]:
    remaining = [t for t in templates if t.id != template_id]
    if len(remaining) == len(templates):
        raise NotFoundError(template_id, kind="template")
    return remaining
