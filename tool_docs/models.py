"""
Typed records shared by every pipeline stage.

Tool records are loaded once from the CLI JSON dump and never mutated.
Generated artifacts (fragments, composed and family documents) are also
frozen; a stage that "changes" a document produces a new record.
"""

import enum
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from tool_docs.frontmatter import strip_frontmatter

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    MISSING_INPUT = "missing_input"
    MISSING_FRAGMENT = "missing_fragment"
    SERVICE_FAILURE = "service_failure"
    MALFORMED_FRONTMATTER = "malformed_frontmatter"
    INCOMPLETE_PROMPTS = "incomplete_prompts"


class InputError(Exception):
    """Fatal: the source JSON or a required lookup table is missing or malformed."""

    kind = ErrorKind.MISSING_INPUT


class FragmentKind(str, enum.Enum):
    ANNOTATIONS = "annotations"
    PARAMETERS = "parameters"
    EXAMPLES = "examples"

    @property
    def file_suffix(self) -> str:
        """Suffix used in fragment file names ({slug}-{suffix}.md)."""
        return "example-prompts" if self is FragmentKind.EXAMPLES else self.value


# ---------------------------------------------------------------------------
# Tool records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Option:
    name: str
    type: str = "string"
    required: bool = False
    description: str = ""
    conditionally_required: bool = False


@dataclass(frozen=True)
class MetadataValue:
    value: bool
    description: str = ""


# Order matters: annotation lines are rendered in this sequence.
METADATA_KEYS = (
    ("destructive", "destructive"),
    ("idempotent", "idempotent"),
    ("openWorld", "open_world"),
    ("readOnly", "read_only"),
    ("secret", "secret"),
    ("localRequired", "local_required"),
)


@dataclass(frozen=True)
class ToolMetadata:
    destructive: Optional[MetadataValue] = None
    idempotent: Optional[MetadataValue] = None
    open_world: Optional[MetadataValue] = None
    read_only: Optional[MetadataValue] = None
    secret: Optional[MetadataValue] = None
    local_required: Optional[MetadataValue] = None

    def items(self) -> list[tuple[str, Optional[MetadataValue]]]:
        """(json_key, value) pairs in rendering order."""
        return [(json_key, getattr(self, attr)) for json_key, attr in METADATA_KEYS]


@dataclass(frozen=True)
class ToolRecord:
    command: str
    name: str = ""
    description: str = ""
    options: tuple[Option, ...] = ()
    metadata: Optional[ToolMetadata] = None

    @property
    def area(self) -> str:
        tokens = self.command.split()
        return tokens[0] if tokens else ""

    @property
    def display_name(self) -> str:
        """Heading text: explicit name, else the command without its area."""
        if self.name:
            return self.name
        tokens = self.command.split()
        return " ".join(tokens[1:]) or self.command


# ---------------------------------------------------------------------------
# Generated artifacts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Fragment:
    kind: FragmentKind
    slug: str
    content: str


@dataclass(frozen=True)
class ComposedDocument:
    slug: str
    content: str
    command: str = ""
    area: str = ""

    @property
    def body(self) -> str:
        return strip_frontmatter(self.content)


@dataclass(frozen=True)
class FamilyMetadata:
    family: str
    display_name: str
    tool_count: int
    version: str
    generated_at: str


@dataclass(frozen=True)
class FamilyDocument:
    family: str
    content: str
    members: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Per-unit results
# ---------------------------------------------------------------------------

GENERATED = "generated"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass(frozen=True)
class UnitResult:
    """Outcome of one (unit, stage) task."""

    unit: str
    stage: str
    status: str
    message: str = ""
    error_kind: Optional[ErrorKind] = None
    path: Optional[Path] = None


@dataclass
class StageSummary:
    stage: str
    results: list[UnitResult] = field(default_factory=list)

    def count(self, status: str) -> int:
        return sum(1 for r in self.results if r.status == status)


# ---------------------------------------------------------------------------
# Loading the CLI JSON dump
# ---------------------------------------------------------------------------

def _parse_metadata(raw: Optional[dict]) -> Optional[ToolMetadata]:
    if not isinstance(raw, dict) or not raw:
        return None
    values = {}
    for json_key, attr in METADATA_KEYS:
        entry = raw.get(json_key)
        if isinstance(entry, dict) and "value" in entry:
            values[attr] = MetadataValue(
                value=bool(entry["value"]),
                description=str(entry.get("description") or ""),
            )
        elif isinstance(entry, bool):
            values[attr] = MetadataValue(value=entry)
    return ToolMetadata(**values)


def tool_from_dict(entry: dict) -> ToolRecord:
    conditional = {
        str(name).lstrip("-") for name in entry.get("conditionalRequiredParameters") or []
    }
    options = []
    for opt in entry.get("option") or []:
        if not isinstance(opt, dict) or not opt.get("name"):
            continue
        name = str(opt["name"])
        options.append(Option(
            name=name,
            type=str(opt.get("type") or "string"),
            required=bool(opt.get("required", False)),
            description=str(opt.get("description") or ""),
            conditionally_required=name.lstrip("-") in conditional,
        ))
    return ToolRecord(
        command=str(entry["command"]).strip(),
        name=str(entry.get("name") or ""),
        description=str(entry.get("description") or ""),
        options=tuple(options),
        metadata=_parse_metadata(entry.get("metadata")),
    )


def load_cli_output(path: Path) -> tuple[list[ToolRecord], Optional[str]]:
    """Load tool records (and the optional top-level version) from a CLI JSON dump.

    Raises:
        InputError: file missing, invalid JSON, or no ``results``/``tools`` array.
    """
    path = Path(path)
    if not path.is_file():
        raise InputError(f"CLI output file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise InputError(f"Could not parse CLI output {path}: {e}") from e

    if not isinstance(data, dict):
        raise InputError(f"CLI output {path} must be a JSON object")
    entries = data.get("results")
    if entries is None:
        entries = data.get("tools")
    if not isinstance(entries, list):
        raise InputError(f"CLI output {path} has no 'results' or 'tools' array")

    tools = []
    for idx, entry in enumerate(entries):
        if not isinstance(entry, dict) or not str(entry.get("command") or "").strip():
            logger.warning("Skipping entry %d without a command", idx)
            continue
        tools.append(tool_from_dict(entry))

    version = data.get("version")
    return tools, str(version) if version else None
