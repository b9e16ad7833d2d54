"""
Slug derivation: CLI command → canonical per-tool file base name.

    "keyvault secret create"  →  "azure-key-vault-secret-create"
    "aks nodepool get"        →  "azure-kubernetes-service-node-pool-get"

Pure functions; the result depends only on the command and the lookup
tables. Two commands in the same area whose cleaned remainders coincide
map to the same slug, which the curated tables are expected to avoid.
"""

from tool_docs.naming import NamingTables

AZURE_PREFIX = "azure-"
UNKNOWN_SLUG = "unknown"


def resolve_brand_prefix(area: str, tables: NamingTables) -> str:
    """File prefix for an area token, always starting with ``azure-``.

    Resolution order:
    1. Brand table (exact, case-sensitive key) with a non-empty file name
    2. Compound-word expansion of the lowercased area
    3. The lowercased area itself
    """
    mapping = tables.brand_for(area)
    if mapping is not None and mapping.file_name:
        prefix = mapping.file_name
    else:
        lowered = area.lower()
        prefix = tables.compound_words.get(lowered, lowered)

    if not prefix.startswith(AZURE_PREFIX):
        prefix = AZURE_PREFIX + prefix
    return prefix


def _clean_remainder(tokens: list[str], tables: NamingTables) -> list[str]:
    cleaned = []
    joined = "-".join(tokens).lower()
    for part in joined.split("-"):
        if not part:
            continue
        expansion = tables.compound_words.get(part)
        if expansion is not None:
            for sub in expansion.split("-"):
                sub = sub.lower()
                if sub and sub not in tables.stop_words:
                    cleaned.append(sub)
        elif part not in tables.stop_words:
            cleaned.append(part)
    return cleaned


def build_base_file_name(command: str, tables: NamingTables) -> str:
    tokens = (command or "").split()
    if not tokens:
        return UNKNOWN_SLUG

    prefix = resolve_brand_prefix(tokens[0], tables)
    if len(tokens) == 1:
        return prefix

    cleaned = _clean_remainder(tokens[1:], tables)
    if not cleaned:
        return prefix
    return f"{prefix}-{'-'.join(cleaned)}"


# ---------------------------------------------------------------------------
# Per-stage file names
# ---------------------------------------------------------------------------

def annotation_file_name(slug: str) -> str:
    return f"{slug}-annotations.md"


def parameter_file_name(slug: str) -> str:
    return f"{slug}-parameters.md"


def example_prompts_file_name(slug: str) -> str:
    return f"{slug}-example-prompts.md"


def input_prompt_file_name(slug: str) -> str:
    return f"{slug}-input-prompt.md"


def raw_output_file_name(slug: str) -> str:
    return f"{slug}-raw-output.txt"


def tool_file_name(slug: str) -> str:
    return f"{slug}.md"


def complete_file_name(slug: str) -> str:
    return f"{slug}.complete.md"
