"""
Deterministic section generators: annotations and parameter tables.

Both are pure transforms of a ``ToolRecord``; no network, no clock (the
generation timestamp is passed in so a whole run shares one value).
"""

import re
from typing import Optional

from tool_docs.frontmatter import include_frontmatter
from tool_docs.models import Fragment, FragmentKind, Option, ToolRecord
from tool_docs.naming import NamingTables
from tool_docs.slug import annotation_file_name, parameter_file_name
from tool_docs.text_cleanup import ensure_ends_period, normalize_parameter, replace_static_text

CHECK = "✅"
CROSS = "❌"

NO_PARAMETERS_TEXT = "This tool doesn't have any tool-specific parameters."


def title_case_key(key: str) -> str:
    """'openWorld' → 'Open World', 'localRequired' → 'Local Required'."""
    spaced = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", " ", key)
    return " ".join(word[:1].upper() + word[1:] for word in spaced.split())


class AnnotationGenerator:
    """Renders the tool annotation hints line."""

    kind = FragmentKind.ANNOTATIONS

    def __init__(self, version: str, generated_at: str):
        self.version = version
        self.generated_at = generated_at

    def render(self, tool: ToolRecord) -> Optional[str]:
        if tool.metadata is None:
            return None
        parts = []
        for key, value in tool.metadata.items():
            mark = CHECK if value is not None and value.value else CROSS
            parts.append(f"{title_case_key(key)}: {mark}")
        return " | ".join(parts)

    def generate(self, tool: ToolRecord, slug: str) -> Optional[Fragment]:
        line = self.render(tool)
        if line is None:
            return None
        header = include_frontmatter(
            tool.command, annotation_file_name(slug), self.version, self.generated_at
        )
        return Fragment(self.kind, slug, header + line + "\n")


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------

def required_text(option: Option) -> str:
    text = "Required" if option.required else "Optional"
    return text + "*" if option.conditionally_required else text


def filter_common_parameters(options, tables: NamingTables) -> list[Option]:
    """Drop shared parameters (subscription, tenant, retry knobs…) unless required."""
    return [
        opt for opt in options
        if opt.name and (opt.name.lstrip("-").lower() not in tables.common_parameters or opt.required)
    ]


def sort_parameters(options, tables: NamingTables) -> list[Option]:
    """Required first, then by natural-language name, case-insensitively."""
    return sorted(
        options,
        key=lambda opt: (not opt.required, normalize_parameter(opt.name, tables).lower()),
    )


class ParameterGenerator:
    """Renders the parameter table for one tool."""

    kind = FragmentKind.PARAMETERS

    def __init__(self, tables: NamingTables, version: str, generated_at: str):
        self.tables = tables
        self.version = version
        self.generated_at = generated_at

    def rows(self, tool: ToolRecord) -> list[str]:
        options = sort_parameters(filter_common_parameters(tool.options, self.tables), self.tables)
        rows = []
        for opt in options:
            flag = opt.name if opt.name.startswith("--") else f"--{opt.name}"
            description = ensure_ends_period(replace_static_text(opt.description, self.tables))
            description = description.replace("|", "\\|").replace("\n", " ")
            rows.append(
                f"| **{normalize_parameter(opt.name, self.tables)}** (`{flag}`) "
                f"| {required_text(opt)} | {description} |"
            )
        return rows

    def render(self, tool: ToolRecord) -> Optional[str]:
        if not tool.options:
            return None
        rows = self.rows(tool)
        if not rows:
            return NO_PARAMETERS_TEXT + "\n"

        lines = [
            "| Parameter | Required or optional | Description |",
            "|-----------|----------------------|-------------|",
            *rows,
        ]
        if any(opt.conditionally_required for opt in tool.options):
            lines += ["", "\\* At least one of the parameters marked with an asterisk is required."]
        return "\n".join(lines) + "\n"

    def generate(self, tool: ToolRecord, slug: str) -> Optional[Fragment]:
        table = self.render(tool)
        if table is None:
            return None
        header = include_frontmatter(
            tool.command, parameter_file_name(slug), self.version, self.generated_at
        )
        return Fragment(self.kind, slug, header + table)
