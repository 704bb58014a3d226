"""Content for the caamp-managed instruction block."""

from __future__ import annotations

from jinja2 import Environment, StrictUndefined

from caamp.config.schemas import Provider

INJECTION_TEMPLATE = """\
## CAAMP Managed Configuration

This section is managed by caamp.
Do not edit between the CAAMP markers manually.
{% if mcp_server_name %}

### MCP Server: {{ mcp_server_name }}
Configured via `caamp mcp install`.
{% endif %}
{% if skill_names %}

### Installed Skills

{% for name in skill_names %}
- `{{ name }}` - Available via SKILL.md
{% endfor %}
{% endif %}
{% if custom_content %}

{{ custom_content }}
{% endif %}
"""

_env = Environment(
    autoescape=False,  # markdown, not HTML
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=False,
    undefined=StrictUndefined,
)


def generate_injection_content(
    mcp_server_name: str | None = None,
    custom_content: str | None = None,
    skill_names: list[str] | None = None,
) -> str:
    """Render the body of the managed block (without markers)."""
    template = _env.from_string(INJECTION_TEMPLATE)
    rendered = template.render(
        mcp_server_name=mcp_server_name,
        custom_content=custom_content,
        skill_names=skill_names or [],
    )
    return rendered.rstrip("\n")


def group_by_instruct_file(providers: list[Provider]) -> dict[str, list[Provider]]:
    """Group providers by instruction file name, preserving order."""
    groups: dict[str, list[Provider]] = {}
    for provider in providers:
        groups.setdefault(provider.instruct_file, []).append(provider)
    return groups
