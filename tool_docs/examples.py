"""
Example-prompt generation.

The model is asked for a JSON object ``{"tool name": ["prompt", ...]}``.
Models often wrap it in reasoning text or code fences, so extraction tries
several strategies before giving up. Parsed prompts are then checked for
mentions of every required parameter; failures are reported, not fatal.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

from tool_docs.frontmatter import example_prompts_frontmatter
from tool_docs.llm_client import GenerationError, TextGenerator
from tool_docs.models import Fragment, FragmentKind, ToolRecord
from tool_docs.naming import NamingTables
from tool_docs.prompts import (
    EXAMPLE_PROMPTS_SYSTEM,
    EXAMPLE_PROMPTS_USER,
    fill,
    unresolved_placeholders,
)
from tool_docs.security import PromptInjectionDetector
from tool_docs.text_cleanup import clean_ai_text

logger = logging.getLogger(__name__)

DEFAULT_PROMPT_COUNT = 5


def extract_json(response: str) -> str:
    """Isolate the JSON object in a model response ("" when none is found).

    Strategies, in order:
    1. A ```json fenced block
    2. The last ``` block whose content starts with ``{``
    3. The last balanced ``{...}`` object, found by brace matching backwards
    """
    if not response:
        return ""
    text = response.strip()

    match = re.search(r"```json\s*(.*?)```", text, re.DOTALL)
    if match and match.group(1).strip():
        return match.group(1).strip()

    blocks = re.findall(r"```[^\n`]*\n?(.*?)```", text, re.DOTALL)
    if blocks and blocks[-1].strip().startswith("{"):
        return blocks[-1].strip()

    end = text.rfind("}")
    if end >= 0:
        depth = 0
        for idx in range(end, -1, -1):
            if text[idx] == "}":
                depth += 1
            elif text[idx] == "{":
                depth -= 1
                if depth == 0:
                    return text[idx:end + 1].strip()

    return ""


def parse_prompts(response: str) -> Optional[tuple[str, list[str]]]:
    """Return (tool name, prompts) from the first entry of the JSON object."""
    json_text = extract_json(response)
    if not json_text:
        logger.warning("No JSON found in example-prompt response")
        return None

    # Models sometimes leave trailing commas
    json_text = re.sub(r",\s*([\]}])", r"\1", json_text)
    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        logger.warning("Example-prompt JSON parse failed: %s", e)
        return None

    if not isinstance(data, dict) or not data:
        return None
    name, prompts = next(iter(data.items()))
    if not isinstance(prompts, list):
        return None
    cleaned = [clean_ai_text(str(p)).strip() for p in prompts if str(p).strip()]
    return str(name), cleaned


def split_command(command: str) -> tuple[str, str]:
    """(action verb, resource type) from 'area resource... verb'."""
    tokens = command.split()
    if len(tokens) < 2:
        return "manage", "resource"
    return tokens[-1], " ".join(tokens[1:-1]) or "resource"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PromptCheck:
    prompt: str
    missing: tuple[str, ...] = ()

    @property
    def valid(self) -> bool:
        return bool(self.prompt.strip()) and not self.missing


def required_parameters(tool: ToolRecord, tables: Optional[NamingTables] = None) -> list[str]:
    """Required option names a prompt must mention; common parameters excluded."""
    common = tables.common_parameters if tables is not None else frozenset()
    names = [o.name.lstrip("-") for o in tool.options if o.required and o.name]
    return [n for n in names if n.lower() not in common]


def _spellings(name: str, tables: Optional[NamingTables]) -> set[str]:
    lowered = name.lower()
    forms = {lowered, lowered.replace("-", " ").replace("_", " "), lowered.replace("-", "_")}
    if tables is not None:
        natural = tables.parameter_names.get(name) or tables.parameter_names.get(lowered)
        if natural:
            forms.add(natural.lower())
    return forms


def validate_prompts(
    prompts: list[str], tool: ToolRecord, tables: Optional[NamingTables] = None
) -> list[PromptCheck]:
    """Check that every prompt mentions every required parameter (case-insensitive)."""
    required = required_parameters(tool, tables)
    checks = []
    for prompt in prompts:
        text = prompt.lower()
        missing = tuple(
            name for name in required
            if not any(form in text for form in _spellings(name, tables))
        )
        checks.append(PromptCheck(prompt, missing))
    return checks


def describe_invalid(checks: list[PromptCheck]) -> str:
    """Report line for prompts that failed validation ("" when all passed)."""
    invalid = [c for c in checks if not c.valid]
    if not invalid:
        return ""
    missing = sorted({name for c in invalid for name in c.missing})
    message = f"{len(invalid)} of {len(checks)} prompts missing required parameters"
    return f"{message}: {', '.join(missing)}" if missing else message


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExamplePromptResult:
    fragment: Optional[Fragment]
    user_prompt: str
    raw_response: str = ""
    error: str = ""
    checks: tuple[PromptCheck, ...] = ()

    @property
    def invalid_prompts(self) -> list[PromptCheck]:
        return [c for c in self.checks if not c.valid]


class ExamplePromptGenerator:
    """LLM-backed generator for the example-prompts fragment."""

    kind = FragmentKind.EXAMPLES

    def __init__(
        self,
        text_generator: TextGenerator,
        version: str,
        generated_at: str,
        prompt_count: int = DEFAULT_PROMPT_COUNT,
        tables: Optional[NamingTables] = None,
    ):
        self.text_generator = text_generator
        self.version = version
        self.generated_at = generated_at
        self.prompt_count = prompt_count
        self.tables = tables
        self.detector = PromptInjectionDetector()

    def prompt_values(self, tool: ToolRecord) -> dict[str, str]:
        if self.detector.detect_injection(tool.description):
            logger.warning(
                "[Security] Suspicious text in %s description: %s",
                tool.command, ", ".join(self.detector.matched_patterns(tool.description)),
            )
        action, resource = split_command(tool.command)
        required = [o for o in tool.options if o.required]
        optional = [o for o in tool.options if not o.required]
        params = "\n".join(
            f"- {o.name} ({'Required' if o.required else 'Optional'}): "
            f"{self.detector.sanitize_text(o.description) or 'No description'}"
            for o in required + optional
        )
        return {
            "TOOL_NAME": tool.name or "Unknown",
            "TOOL_COMMAND": tool.command or "unknown",
            "TOOL_DESCRIPTION": self.detector.sanitize_text(tool.description) or "No description available",
            "ACTION_VERB": action,
            "RESOURCE_TYPE": resource,
            "PROMPT_COUNT": str(self.prompt_count),
            "PARAMETERS": params or "- None",
        }

    def build_user_prompt(self, tool: ToolRecord) -> str:
        return fill(EXAMPLE_PROMPTS_USER, self.prompt_values(tool)) + "\n\nGenerate the prompts now."

    def render(self, tool: ToolRecord, prompts: list[str]) -> str:
        required = [o.name for o in tool.options if o.required]
        lines = [
            f"<!-- @mcpcli {tool.command} -->",
            f"<!-- Required parameters: {len(required)} - {', '.join(required) or 'none'} -->",
            "",
            *(f'- "{p}"' for p in prompts),
        ]
        return example_prompts_frontmatter(self.version, self.generated_at) + "\n".join(lines) + "\n"

    def run(self, tool: ToolRecord, slug: str) -> ExamplePromptResult:
        """Generate with diagnostics; never raises for service failures."""
        values = self.prompt_values(tool)
        user_prompt = fill(EXAMPLE_PROMPTS_USER, values) + "\n\nGenerate the prompts now."
        # Only the template is checked; tool text may legitimately contain braces
        leftover = unresolved_placeholders(EXAMPLE_PROMPTS_USER, values)
        if leftover:
            return ExamplePromptResult(None, user_prompt, error=f"unresolved placeholders: {leftover}")

        try:
            raw = self.text_generator.complete(EXAMPLE_PROMPTS_SYSTEM, user_prompt, task="examples")
        except GenerationError as e:
            return ExamplePromptResult(None, user_prompt, error=str(e))

        parsed = parse_prompts(raw)
        if parsed is None or not parsed[1]:
            return ExamplePromptResult(None, user_prompt, raw, error="no prompts in response")

        _, prompts = parsed
        checks = validate_prompts(prompts, tool, self.tables)
        if any(not c.valid for c in checks):
            logger.warning("Example prompts for %s: %s", tool.command, describe_invalid(checks))
        fragment = Fragment(self.kind, slug, self.render(tool, prompts))
        return ExamplePromptResult(fragment, user_prompt, raw, checks=tuple(checks))

    def generate(self, tool: ToolRecord, slug: str) -> Optional[Fragment]:
        result = self.run(tool, slug)
        if result.error:
            logger.warning("Example prompts for %s: %s", tool.command, result.error)
        return result.fragment
