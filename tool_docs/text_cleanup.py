"""Text normalization helpers for parameter names, descriptions and LLM output."""

import html
import re

from tool_docs.naming import NamingTables

ACRONYMS = {
    "id": "ID",
    "ids": "IDs",
    "uri": "URI",
    "url": "URL",
    "urls": "URLs",
    "ai": "AI",
    "api": "API",
    "apis": "APIs",
    "cpu": "CPU",
    "gpu": "GPU",
    "ip": "IP",
    "sql": "SQL",
    "vm": "VM",
    "vms": "VMs",
    "dns": "DNS",
    "sku": "SKU",
    "skus": "SKUs",
    "tls": "TLS",
    "ssl": "SSL",
    "http": "HTTP",
    "https": "HTTPS",
    "json": "JSON",
    "xml": "XML",
    "yaml": "YAML",
    "oauth": "OAuth",
    "cdn": "CDN",
    "rg": "Resource group",
}

_KNOWN_ACRONYMS = frozenset(v for v in ACRONYMS.values() if v != "Resource group")

_SMART_QUOTES = str.maketrans({
    "‘": "'",
    "’": "'",
    "“": '"',
    "”": '"',
})


def normalize_parameter(name: str, tables: NamingTables) -> str:
    """Turn ``--resource-group-id`` style names into "Resource group ID"."""
    if not name:
        return "Unknown"
    name = name[2:] if name.startswith("--") else name

    direct = tables.parameter_names.get(name)
    if direct is not None:
        return direct

    words = []
    for idx, word in enumerate(name.split("-")):
        if not word:
            continue
        word = ACRONYMS.get(word.lower(), word)
        if word in _KNOWN_ACRONYMS:
            words.append(word)
        elif idx == 0 or not words:
            words.append(word[0].upper() + word[1:])
        else:
            words.append(word.lower())

    if not words:
        return "Unknown"
    return " ".join(words).replace(".", "")


def ensure_ends_period(text: str) -> str:
    if not text:
        return text
    text = text.strip()
    if text.endswith((".", "?", "!")):
        return text
    return text + "."


def replace_static_text(text: str, tables: NamingTables) -> str:
    """Replace whole-word occurrences of known terms, longest key first."""
    if not text or not tables.text_replacements:
        return text

    lookup = {k.lower(): v for k, v in tables.text_replacements.items()}
    keys = sorted(tables.text_replacements, key=len, reverse=True)
    pattern = re.compile(
        "|".join(rf"(?<![A-Za-z0-9_-]){re.escape(k)}(?![A-Za-z0-9_-])" for k in keys),
        re.IGNORECASE,
    )
    return pattern.sub(lambda m: lookup.get(m.group(0).lower(), m.group(0)), text)


def clean_ai_text(text: str) -> str:
    """Replace smart quotes and HTML entities produced by models."""
    if not text:
        return text
    return html.unescape(text.translate(_SMART_QUOTES))
