"""
Prompt templates for the LLM-backed stages.

User templates use single-brace ``{PLACEHOLDER}`` tokens filled in one
regex pass, so literal JSON braces in the templates need no escaping.
"""

import re

# ---------------------------------------------------------------------------
# Example prompts
# ---------------------------------------------------------------------------

EXAMPLE_PROMPTS_SYSTEM = """
You write example prompts that a user would type into an AI assistant to
invoke one Azure MCP Server tool.

RULES:
- Each prompt is a single natural sentence a real user would say.
- Every required parameter appears in every prompt with a realistic value.
- Optional parameters appear in some prompts but not all.
- Vary phrasing and intent; never repeat the same sentence structure.
- Do not mention the CLI command or the tool name literally.

OUTPUT:
Return ONLY a JSON object mapping the tool name to a list of prompt strings:
{"tool-name": ["prompt one", "prompt two"]}
"""

EXAMPLE_PROMPTS_USER = """
Generate {PROMPT_COUNT} example prompts for this tool.

Tool name: {TOOL_NAME}
Command: {TOOL_COMMAND}
Description: {TOOL_DESCRIPTION}
Action: {ACTION_VERB}
Resource type: {RESOURCE_TYPE}

Parameters:
{PARAMETERS}
"""

# ---------------------------------------------------------------------------
# Tool page improvement
# ---------------------------------------------------------------------------

IMPROVE_SYSTEM = """
You are a technical editor for Microsoft Learn reference pages.

Improve the clarity and grammar of the Markdown you receive while keeping
its structure. Keep every heading, table, link and HTML comment. Tokens of
the form <<<TPL_LABEL_n>>> are placeholders: copy them exactly, in place,
and never rewrite, bold, or remove them.

Return ONLY the improved Markdown, with no commentary and no code fences.
"""

IMPROVE_USER = """
Improve this tool reference section:

{CONTENT}
"""

# ---------------------------------------------------------------------------
# Family pages
# ---------------------------------------------------------------------------

FAMILY_METADATA_SYSTEM = """
You write the opening of a Microsoft Learn article that documents a family
of Azure MCP Server tools.

Produce a YAML frontmatter block (title, description, ms.topic: reference,
ms.date) followed by an H1 title and a two to three sentence introduction.
Return ONLY Markdown.
"""

FAMILY_METADATA_USER = """
Service family: {FAMILY_NAME}
Number of tools: {TOOL_COUNT}
Azure MCP CLI version: {CLI_VERSION}

Tools in this family:
{TOOL_LIST}
"""

FAMILY_H2_SYSTEM = """
You write the H2 heading for one tool section of a Microsoft Learn article
about a family of Azure MCP Server tools. The heading is action oriented,
in sentence case, at most eight words, and says what the tool does, for
example "Create a secret" or "List node pools".
Return ONLY the heading text, without Markdown syntax or backticks.
"""

FAMILY_H2_USER = """
Service family: {FAMILY_NAME}
Command: {COMMAND}
Description: {DESCRIPTION}
"""

FAMILY_RELATED_SYSTEM = """
You write the closing "Related content" section of a Microsoft Learn
article about a family of Azure MCP Server tools. Start with the H2
heading "## Related content" and list three to five links as bullets.
Return ONLY Markdown.
"""

FAMILY_RELATED_USER = """
Service family: {FAMILY_NAME}

Tools in this family:
{TOOL_LIST}
"""

_TOKEN = re.compile(r"\{([A-Z_]+)\}")
_UNRESOLVED = re.compile(r"\{[A-Z_]+\}|\{\{[#/]?\w+[^}]*\}\}")


def fill(template: str, values: dict[str, str]) -> str:
    """Replace ``{KEY}`` tokens in ``template`` in a single pass.

    Substituted values are never rescanned, so catalog text that happens to
    contain ``{SOMETHING}`` reaches the model verbatim.
    """
    return _TOKEN.sub(lambda m: values.get(m.group(1), m.group(0)), template).strip()


def unresolved_placeholders(template: str, values: dict[str, str]) -> list[str]:
    """Tokens in ``template`` that ``values`` does not cover."""
    return [m.group(0) for m in _UNRESOLVED.finditer(template) if m.group(0)[1:-1] not in values]
