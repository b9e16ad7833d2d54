"""
Frontmatter handling for generated Markdown.

A frontmatter block opens on the very first line with ``---`` and closes on
the nearest later line that is exactly ``---``. Anything else (no opening
delimiter, or an opening delimiter that is never closed) is not frontmatter
and the content passes through untouched.
"""

from datetime import datetime, timezone
from typing import Optional, Dict

DELIMITER = "---"


def _split_block(content: str) -> Optional[tuple[list[str], str]]:
    """Return (frontmatter lines, remainder) or None when there is no valid block."""
    lines = content.splitlines(keepends=True)
    if not lines or lines[0].rstrip("\r\n") != DELIMITER:
        return None

    for idx in range(1, len(lines)):
        if lines[idx].rstrip("\r\n") == DELIMITER:
            block = [line.rstrip("\r\n") for line in lines[1:idx]]
            return block, "".join(lines[idx + 1:])

    return None


def has_frontmatter(content: str) -> bool:
    return _split_block(content) is not None


def is_malformed(content: str) -> bool:
    """An opening delimiter on the first line that is never closed."""
    lines = content.splitlines()
    return bool(lines) and lines[0] == DELIMITER and _split_block(content) is None


def strip_frontmatter(content: str) -> str:
    """Remove leading frontmatter blocks and left-trim what follows.

    Stacked blocks (a fragment's frontmatter left at the top of a body) are
    all removed, so the result never starts with a block and stripping
    again is a no-op. Content without a well-formed block is unchanged.
    """
    split = _split_block(content)
    while split is not None:
        content = split[1].lstrip()
        split = _split_block(content)
    return content


def add_missing_keys(content: str, entries: Dict[str, str]) -> str:
    """Append ``key: value`` lines for keys the leading block lacks."""
    split = _split_block(content)
    if split is None:
        return content

    block, body = split
    present = {line.split(":", 1)[0].strip() for line in block if ":" in line}
    extra = [f"{key}: {value}" for key, value in entries.items() if key not in present]
    if not extra:
        return content
    return "\n".join([DELIMITER, *block, *extra, DELIMITER]) + "\n" + body


def parse_frontmatter(content: str) -> tuple[Optional[Dict], str]:
    """
    Parse a leading frontmatter block.

    Returns:
        (metadata_dict, body_content); metadata is None when there is no block.
    """
    split = _split_block(content)
    if split is None:
        return None, content

    block, body = split
    # Simple key: value parsing, values may contain further colons
    metadata = {}
    for line in block:
        if ":" in line and not line.lstrip().startswith("#"):
            key, value = line.split(":", 1)
            metadata[key.strip()] = value.strip().strip('"\'')

    return metadata, body.lstrip()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def generation_timestamp(now: Optional[datetime] = None) -> str:
    """UTC timestamp shared by every file written in one run."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%d %H:%M:%S")


def include_frontmatter(command: str, file_name: str, version: str, generated_at: str) -> str:
    """Frontmatter for annotation and parameter include files."""
    date = generated_at.split(" ", 1)[0]
    include_dir = "annotations" if file_name.endswith("-annotations.md") else "parameters"
    return (
        f"{DELIMITER}\n"
        "ms.topic: include\n"
        f"ms.date: {date}\n"
        f"mcp-cli.version: {version or 'unknown'}\n"
        f"generated: {generated_at} UTC\n"
        f"# [!INCLUDE [{command}](../includes/tools/{include_dir}/{file_name})]\n"
        f"# azmcp {command}\n"
        f"{DELIMITER}\n\n"
    )


def example_prompts_frontmatter(version: str, generated_at: str) -> str:
    return (
        f"{DELIMITER}\n"
        "ms.topic: include\n"
        f"ms.date: {generated_at} UTC\n"
        f"mcp-cli.version: {version or 'unknown'}\n"
        f"{DELIMITER}\n\n"
    )
