"""
Family assembly: one Markdown page per service area.

Four phases per family:

  1. Metadata: frontmatter + H1 + intro (LLM, static fallback)
  2. Headings: one action-oriented H2 per tool (LLM, existing heading as fallback)
  3. Related content: closing "## Related content" section (LLM, static fallback)
  4. Stitch: metadata, member bodies sorted by slug, related content

Only the stitch phase is deterministic. Placement is fixed either way:
metadata always first, related content always last.
"""

import logging
import math
import re
from pathlib import Path
from typing import Iterable, Optional

from tool_docs.frontmatter import add_missing_keys, has_frontmatter, strip_frontmatter
from tool_docs.llm_client import GenerationError, TextGenerator
from tool_docs.models import ComposedDocument, FamilyDocument, FamilyMetadata
from tool_docs.naming import NamingTables
from tool_docs.prompts import (
    FAMILY_H2_SYSTEM,
    FAMILY_H2_USER,
    FAMILY_METADATA_SYSTEM,
    FAMILY_METADATA_USER,
    FAMILY_RELATED_SYSTEM,
    FAMILY_RELATED_USER,
    fill,
)
from tool_docs.security import PromptInjectionDetector
from tool_docs.slug import AZURE_PREFIX, resolve_brand_prefix

logger = logging.getLogger(__name__)

MCPCLI_COMMENT = re.compile(r"<!--\s*@mcpcli\s+([^>]+?)\s*-->")


def _without_azure(slug: str) -> str:
    return slug[len(AZURE_PREFIX):] if slug.startswith(AZURE_PREFIX) else slug


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------

def family_prefix(area: str, tables: NamingTables) -> str:
    """Resolved brand prefix of an area, without the ``azure-`` prefix."""
    return _without_azure(resolve_brand_prefix(area, tables))


def _prefix_matches(key: str, prefix: str) -> bool:
    return bool(prefix) and (key == prefix or key.startswith(prefix + "-"))


def belongs_to_family(slug: str, area: str, tables: NamingTables) -> bool:
    return _prefix_matches(_without_azure(slug), family_prefix(area, tables))


def fallback_prefixes(area: str, tables: NamingTables) -> list[str]:
    """Secondary prefixes from the data-driven pattern list (``ai-{area}``, ...)."""
    lowered = area.lower()
    return [pattern.format(area=lowered) for pattern in tables.family_prefix_patterns]


def _matches_fallback(slug: str, area: str, tables: NamingTables) -> bool:
    keys = (slug, _without_azure(slug))
    return any(
        _prefix_matches(key, prefix)
        for prefix in fallback_prefixes(area, tables)
        for key in keys
    )


def select_members(
    documents: Iterable[ComposedDocument], area: str, tables: NamingTables
) -> list[ComposedDocument]:
    """Documents of one family: primary brand-prefix rule, then fallback prefixes."""
    documents = list(documents)
    members = [d for d in documents if belongs_to_family(d.slug, area, tables)]
    if members:
        return members

    return [d for d in documents if _matches_fallback(d.slug, area, tables)]


def family_of(document: ComposedDocument, known_areas: Iterable[str], tables: NamingTables) -> str:
    """Area a document belongs to.

    The document's own area wins. Otherwise the known area with the longest
    matching prefix, and finally the first segment of the slug.
    """
    if document.area:
        return document.area

    best, best_len = "", -1
    for area in known_areas:
        prefix = family_prefix(area, tables)
        if belongs_to_family(document.slug, area, tables) and len(prefix) > best_len:
            best, best_len = area, len(prefix)
    if best:
        return best

    for area in known_areas:
        if _matches_fallback(document.slug, area, tables):
            return area

    key = _without_azure(document.slug)
    return key.split("-", 1)[0] if key else document.slug


def group_families(
    documents: Iterable[ComposedDocument], tables: NamingTables
) -> dict[str, list[ComposedDocument]]:
    """Partition documents into families; every document lands in exactly one.

    Areas that differ only by case share one family (and one output file);
    the first spelling seen names it.
    """
    documents = list(documents)
    known = sorted({d.area for d in documents if d.area} | set(tables.brand_mappings))
    families: dict[str, list[ComposedDocument]] = {}
    spellings: dict[str, str] = {}
    for doc in documents:
        area = family_of(doc, known, tables)
        name = spellings.setdefault(area.lower(), area)
        families.setdefault(name, []).append(doc)
    return families


# ---------------------------------------------------------------------------
# Reading composed pages back from disk
# ---------------------------------------------------------------------------

def read_composed_document(path: Path) -> ComposedDocument:
    """Load a composed page; command and area come from its ``@mcpcli`` comment."""
    path = Path(path)
    content = path.read_text(encoding="utf-8")
    slug = path.name
    for suffix in (".complete.md", ".md"):
        if slug.endswith(suffix):
            slug = slug[: -len(suffix)]
            break

    match = MCPCLI_COMMENT.search(content)
    command = match.group(1).strip() if match else ""
    area = command.split()[0] if command else ""
    return ComposedDocument(slug=slug, content=content, command=command, area=area)


def tool_summary(document: ComposedDocument) -> tuple[str, str]:
    """(heading, description) of a tool page: first heading and first prose line."""
    heading, description = document.slug, ""
    for line in document.body.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("#"):
            if heading == document.slug:
                heading = stripped.lstrip("#").strip()
            continue
        if stripped.startswith("<!--"):
            continue
        description = stripped
        break
    return heading, description


def set_heading(body: str, heading: str) -> str:
    """Make ``heading`` the H2 of a tool body, replacing its first heading.

    Leading H1s go too, so the family page keeps a single H1.
    """
    body, count = re.subn(
        r"^#{1,6}[ \t]+.*$", lambda _: f"## {heading}", body, count=1, flags=re.MULTILINE
    )
    return body if count else f"## {heading}\n\n{body.lstrip()}"


def clean_heading(response: str) -> str:
    """First non-empty line of a model reply, without Markdown markers or backticks."""
    for line in extract_markdown(response).splitlines():
        line = line.strip().lstrip("#").replace("`", "").strip()
        if line:
            return line
    return ""


def estimate_tokens(text: str) -> int:
    words = len(text.split())
    return math.ceil(words / 0.75) if words else 0


def extract_markdown(response: str) -> str:
    """Markdown from a model response, unwrapping a fenced block if present."""
    match = re.search(r"```(?:markdown|md)?\s*\n(.*?)```", response, re.DOTALL)
    text = match.group(1) if match else response
    return text.strip()


# ---------------------------------------------------------------------------
# Stitching
# ---------------------------------------------------------------------------

def stitch(metadata: str, bodies: Iterable[str], related: str) -> str:
    """Join sections with single blank lines; trailing whitespace trimmed."""
    sections = [metadata.strip()]
    sections += [body.strip() for body in bodies if body.strip()]
    sections.append(related.strip())
    return "\n\n".join(s for s in sections if s).rstrip() + "\n"


def sort_members(documents: Iterable[ComposedDocument]) -> list[ComposedDocument]:
    return sorted(documents, key=lambda d: d.slug.lower())


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

def display_name(area: str, tables: NamingTables) -> str:
    mapping = tables.brand_for(area)
    if mapping is not None and mapping.brand_name:
        return mapping.brand_name
    return area.replace("-", " ").title()


def fallback_metadata(meta: FamilyMetadata) -> str:
    return (
        "---\n"
        f"title: {meta.display_name} tools for the Azure MCP Server\n"
        f"description: Use the Azure MCP Server {meta.display_name} tools from your AI assistant.\n"
        "ms.topic: reference\n"
        f"ms.date: {meta.generated_at.split(' ', 1)[0]}\n"
        f"mcp-cli.version: {meta.version or 'unknown'}\n"
        f"generated: {meta.generated_at} UTC\n"
        f"tool_count: {meta.tool_count}\n"
        "---\n\n"
        f"# {meta.display_name} tools for the Azure MCP Server\n"
    )


def fallback_related(meta: FamilyMetadata) -> str:
    return (
        "## Related content\n\n"
        "- [What are the Azure MCP Server tools?](index.md)\n"
        f"- [Get started using Azure MCP Server with {meta.display_name}](../get-started.md)\n"
    )


class FamilyAssembler:
    """Builds ``FamilyDocument``s; the text generator is optional (static fallbacks)."""

    def __init__(
        self,
        tables: NamingTables,
        version: str,
        generated_at: str,
        text_generator: Optional[TextGenerator] = None,
    ):
        self.tables = tables
        self.version = version
        self.generated_at = generated_at
        self.text_generator = text_generator
        self.detector = PromptInjectionDetector()

    def family_metadata(self, area: str, members: list[ComposedDocument]) -> FamilyMetadata:
        return FamilyMetadata(
            family=area,
            display_name=display_name(area, self.tables),
            tool_count=len(members),
            version=self.version,
            generated_at=self.generated_at,
        )

    def _tool_list(self, members: list[ComposedDocument]) -> str:
        lines = []
        for doc in members:
            heading, description = tool_summary(doc)
            label = doc.command or heading
            lines.append(f"- {label}: {self.detector.sanitize_text(description)}")
        return "\n".join(lines)

    def _ask(self, system: str, user: str, task: str) -> Optional[str]:
        if self.text_generator is None:
            return None
        try:
            text = extract_markdown(self.text_generator.complete(system, user, task=task))
        except GenerationError as e:
            logger.warning("%s failed, using fallback: %s", task, e)
            return None
        return text or None

    def metadata_block(self, meta: FamilyMetadata, members: list[ComposedDocument]) -> tuple[str, bool]:
        """Returns (markdown, used_fallback)."""
        user = fill(FAMILY_METADATA_USER, {
            "FAMILY_NAME": meta.display_name,
            "TOOL_COUNT": str(meta.tool_count),
            "CLI_VERSION": meta.version or "unknown",
            "TOOL_LIST": self._tool_list(members),
        })
        text = self._ask(FAMILY_METADATA_SYSTEM, user, "family-metadata")
        if text is None:
            return fallback_metadata(meta), True
        if not has_frontmatter(text):
            # Keep the file contract: every page opens with frontmatter
            header = fallback_metadata(meta).split("\n\n# ", 1)[0]
            return header + "\n\n" + text, False
        return add_missing_keys(text, {
            "mcp-cli.version": meta.version or "unknown",
            "generated": f"{meta.generated_at} UTC",
        }), False

    def h2_heading(self, meta: FamilyMetadata, doc: ComposedDocument) -> tuple[str, bool]:
        """Returns (heading text, used_fallback); the fallback is the page's own heading."""
        heading, description = tool_summary(doc)
        if not doc.command or not description:
            return heading, True
        user = fill(FAMILY_H2_USER, {
            "FAMILY_NAME": meta.display_name,
            "COMMAND": doc.command,
            "DESCRIPTION": self.detector.sanitize_text(description),
        })
        text = self._ask(FAMILY_H2_SYSTEM, user, "family-h2")
        cleaned = clean_heading(text) if text else ""
        if not cleaned:
            return heading, True
        return cleaned, False

    def related_block(self, meta: FamilyMetadata, members: list[ComposedDocument]) -> tuple[str, bool]:
        user = fill(FAMILY_RELATED_USER, {
            "FAMILY_NAME": meta.display_name,
            "TOOL_LIST": self._tool_list(members),
        })
        text = self._ask(FAMILY_RELATED_SYSTEM, user, "family-related")
        if text is None:
            return fallback_related(meta), True
        return strip_frontmatter(text), False

    def assemble(self, documents: Iterable[ComposedDocument], area: str) -> FamilyDocument:
        """Select the family members of `area` from `documents` and build the page."""
        return self.build(area, select_members(documents, area, self.tables))

    def build(self, area: str, members: Iterable[ComposedDocument]) -> FamilyDocument:
        """Build the page for an already-grouped member list."""
        members = sort_members(members)
        meta = self.family_metadata(area, members)

        metadata, meta_fallback = self.metadata_block(meta, members)
        bodies, heading_fallbacks = [], 0
        for doc in members:
            heading, fallback = self.h2_heading(meta, doc)
            heading_fallbacks += fallback
            bodies.append(set_heading(doc.body, heading))
        related, related_fallback = self.related_block(meta, members)
        content = stitch(metadata, bodies, related)

        logger.info(
            "Family %s: %d tools, ~%d tokens (metadata fallback=%s, heading fallbacks=%d, related fallback=%s)",
            area, len(members), estimate_tokens(content), meta_fallback, heading_fallbacks, related_fallback,
        )
        return FamilyDocument(
            family=area,
            content=content,
            members=tuple(doc.slug for doc in members),
        )


def assemble_family(
    documents: Iterable[ComposedDocument],
    area: str,
    tables: NamingTables,
    version: str = "unknown",
    generated_at: str = "",
    text_generator: Optional[TextGenerator] = None,
) -> FamilyDocument:
    return FamilyAssembler(tables, version, generated_at, text_generator).assemble(documents, area)
