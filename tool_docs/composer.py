"""
Per-tool page assembly.

Two steps, kept apart so each can be re-run on its own:

1. ``render_raw_tool`` fills the tool's metadata into the raw page template
   and leaves the three fragment placeholders in place.
2. ``compose`` substitutes the annotation, parameter and example-prompt
   fragments (frontmatter stripped) into those placeholders.
"""

import logging
from pathlib import Path
from typing import Mapping, Optional

from tool_docs.frontmatter import strip_frontmatter
from tool_docs.models import ComposedDocument, Fragment, FragmentKind, ToolRecord

logger = logging.getLogger(__name__)

PLACEHOLDERS = {
    FragmentKind.ANNOTATIONS: "{{ANNOTATIONS_CONTENT}}",
    FragmentKind.PARAMETERS: "{{PARAMETERS_CONTENT}}",
    FragmentKind.EXAMPLES: "{{EXAMPLE_PROMPTS_CONTENT}}",
}

ANNOTATION_HINT_LINK = "[Tool annotation hints](index.md#tool-annotations-for-azure-mcp-server):"

DEFAULT_RAW_TEMPLATE = f"""---
ms.topic: reference
ms.date: {{{{DATE}}}}
mcp-cli.version: {{{{VERSION}}}}
generated: {{{{GENERATED_AT}}}} UTC
---

## {{{{TOOL_NAME}}}}

<!-- @mcpcli {{{{COMMAND}}}} -->

{{{{DESCRIPTION}}}}

Example prompts include:

{PLACEHOLDERS[FragmentKind.EXAMPLES]}

{PLACEHOLDERS[FragmentKind.PARAMETERS]}

{ANNOTATION_HINT_LINK}

{PLACEHOLDERS[FragmentKind.ANNOTATIONS]}
"""


def load_template(path: Optional[Path]) -> str:
    if path is None:
        return DEFAULT_RAW_TEMPLATE
    return Path(path).read_text(encoding="utf-8")


def render_raw_tool(tool: ToolRecord, template: str, version: str, generated_at: str) -> str:
    """Fill metadata placeholders; fragment placeholders are left for ``compose``."""
    values = {
        "{{DATE}}": generated_at.split(" ", 1)[0],
        "{{VERSION}}": version or "unknown",
        "{{GENERATED_AT}}": generated_at,
        "{{TOOL_NAME}}": tool.display_name,
        "{{COMMAND}}": tool.command,
        "{{DESCRIPTION}}": tool.description.strip(),
    }
    for token, value in values.items():
        template = template.replace(token, value)
    return template


def compose(
    raw_template: str,
    slug: str,
    fragments: Mapping[FragmentKind, Optional[Fragment]],
    *,
    command: str = "",
    area: str = "",
) -> ComposedDocument:
    """Substitute fragments into a raw tool page.

    Absent fragments become empty strings; the template's surrounding
    headings stay in place.
    """
    content = raw_template
    for kind, token in PLACEHOLDERS.items():
        fragment = fragments.get(kind)
        body = strip_frontmatter(fragment.content).strip() if fragment else ""
        content = content.replace(token, body)
    return ComposedDocument(slug=slug, content=content, command=command, area=area)


# ---------------------------------------------------------------------------
# Reading fragments from disk
# ---------------------------------------------------------------------------

def fragment_candidates(slug: str, kind: FragmentKind) -> list[str]:
    """File names tried, in order, when looking up a fragment."""
    suffix = kind.file_suffix
    return [f"{slug}-{suffix}.md", f"{slug}.md", f"azure-{slug}-{suffix}.md"]


def load_fragments(
    slug: str,
    directories: Mapping[FragmentKind, Path],
) -> tuple[dict[FragmentKind, Optional[Fragment]], list[FragmentKind]]:
    """Read each fragment kind for ``slug``; returns (fragments, missing kinds)."""
    fragments: dict[FragmentKind, Optional[Fragment]] = {}
    missing = []
    for kind, directory in directories.items():
        found = None
        for name in fragment_candidates(slug, kind):
            path = Path(directory) / name
            if path.is_file():
                found = Fragment(kind, slug, path.read_text(encoding="utf-8"))
                break
        if found is None:
            logger.info("No %s fragment for %s", kind.value, slug)
            missing.append(kind)
        fragments[kind] = found
    return fragments, missing
