"""
AI improvement pass over composed tool pages.

Fixed template labels ("Example prompts include:", the annotation hint
link, ...) must survive the rewrite byte for byte, so they are swapped for
opaque tokens before the call and restored afterwards. If the model
mangles a token the original page is kept.
"""

import logging
import re
from dataclasses import dataclass

from tool_docs.composer import ANNOTATION_HINT_LINK
from tool_docs.frontmatter import parse_frontmatter
from tool_docs.llm_client import GenerationError, TextGenerator
from tool_docs.models import ComposedDocument
from tool_docs.prompts import IMPROVE_SYSTEM, IMPROVE_USER, fill

logger = logging.getLogger(__name__)

TEMPLATE_LABELS = (
    "Example prompts include:",
    "Example prompts:",
    "Required options:",
    "Optional options:",
    "Required parameters:",
    "Optional parameters:",
    "**Prerequisites**:",
    "**Success verification**:",
    ANNOTATION_HINT_LINK,
    ANNOTATION_HINT_LINK.replace("(index.md", "(../index.md"),
    ANNOTATION_HINT_LINK.replace("(index.md", "(../../index.md"),
)

LEAKED_TOKEN = re.compile(r"(<<<TPL_LABEL_\d+>>>|__TPL_LABEL_\d+__|\*\*TPL_LABEL_\d+\*\*)")

_LABEL_LINE = re.compile(
    r"^([ \t]*)(" + "|".join(re.escape(label) for label in TEMPLATE_LABELS) + r")[ \t]*$",
    re.MULTILINE,
)


def protect_labels(content: str) -> tuple[str, dict[str, str]]:
    """Replace whole-line template labels with ``<<<TPL_LABEL_n>>>`` tokens."""
    label_map: dict[str, str] = {}

    def _swap(match: re.Match) -> str:
        token = f"<<<TPL_LABEL_{len(label_map)}>>>"
        label_map[token] = match.group(2)
        return match.group(1) + token

    return _LABEL_LINE.sub(_swap, content), label_map


def restore_labels(content: str, label_map: dict[str, str]) -> str:
    for token, label in label_map.items():
        content = content.replace(token, label)
    return content


def normalize_labels(content: str) -> str:
    """Undo cosmetic rewrites such as ``**Example prompts include:**`` or ``### Example prompts``."""
    for label in TEMPLATE_LABELS:
        core = label.replace("*", "").rstrip(":")
        pattern = re.compile(
            rf"^([ \t]*)(?:\*\*|###\s+)?{re.escape(core)}(?:\*\*)?:?(?:\*\*)?[ \t]*$",
            re.MULTILINE | re.IGNORECASE,
        )
        content = pattern.sub(lambda m: m.group(1) + label, content)
    return content


def leaked_tokens(content: str) -> list[str]:
    return LEAKED_TOKEN.findall(content)


@dataclass(frozen=True)
class ImproveResult:
    document: ComposedDocument
    improved: bool
    message: str = ""


class ToolPageImprover:
    """Rewrites a composed page body through the LLM, keeping its frontmatter."""

    def __init__(self, text_generator: TextGenerator):
        self.text_generator = text_generator

    def run(self, document: ComposedDocument) -> ImproveResult:
        metadata, body = parse_frontmatter(document.content)
        header = document.content[: len(document.content) - len(body)] if metadata is not None else ""

        protected, label_map = protect_labels(body)
        try:
            response = self.text_generator.complete(
                IMPROVE_SYSTEM, fill(IMPROVE_USER, {"CONTENT": protected}), task="improve"
            )
        except GenerationError as e:
            return ImproveResult(document, False, str(e))

        improved = normalize_labels(restore_labels(_strip_fences(response), label_map))
        leaked = leaked_tokens(improved)
        if leaked:
            logger.warning("Leaked label tokens in %s: %s", document.slug, ", ".join(leaked))
            return ImproveResult(document, False, f"leaked tokens: {', '.join(leaked)}")

        new_doc = ComposedDocument(
            slug=document.slug,
            content=header + improved.strip() + "\n",
            command=document.command,
            area=document.area,
        )
        return ImproveResult(new_doc, True)

    def improve(self, document: ComposedDocument) -> ComposedDocument:
        return self.run(document).document


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:markdown|md)?\s*\n?", "", text)
        text = re.sub(r"\n?```\s*$", "", text)
    return text
