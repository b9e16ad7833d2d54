"""
Lookup tables that drive file naming and text normalization.

Everything is loaded once per run into an immutable ``NamingTables`` that is
passed explicitly to the slug builder and the generators.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from tool_docs.models import InputError

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(__file__).resolve().parent / "data"

BRAND_MAPPING_FILE = "brand-to-server-mapping.json"
COMPOUND_WORDS_FILE = "compound-words.json"
STOP_WORDS_FILE = "stop-words.json"
COMMON_PARAMETERS_FILE = "common-parameters.json"
NL_PARAMETERS_FILE = "nl-parameters.json"
TEXT_REPLACEMENTS_FILE = "static-text-replacement.json"
FAMILY_PREFIX_PATTERNS_FILE = "family-prefix-patterns.json"

DEFAULT_FAMILY_PREFIX_PATTERNS = ("ai-{area}", "azure-{area}")


@dataclass(frozen=True)
class BrandMapping:
    """One row of the brand table, keyed by ``mcp_server_name`` (the area token)."""

    brand_name: str
    mcp_server_name: str
    short_name: str = ""
    file_name: str = ""


def _frozen(mapping: Optional[dict] = None) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class NamingTables:
    brand_mappings: Mapping[str, BrandMapping] = field(default_factory=_frozen)
    compound_words: Mapping[str, str] = field(default_factory=_frozen)
    stop_words: frozenset = frozenset()
    common_parameters: frozenset = frozenset()
    parameter_names: Mapping[str, str] = field(default_factory=_frozen)
    text_replacements: Mapping[str, str] = field(default_factory=_frozen)
    family_prefix_patterns: tuple[str, ...] = DEFAULT_FAMILY_PREFIX_PATTERNS

    @classmethod
    def build(
        cls,
        brands: Optional[dict[str, str]] = None,
        compound_words: Optional[dict[str, str]] = None,
        stop_words=(),
        **extra,
    ) -> "NamingTables":
        """Convenience constructor from plain area → file prefix pairs."""
        mappings = {
            area: BrandMapping(brand_name=area, mcp_server_name=area, file_name=prefix)
            for area, prefix in (brands or {}).items()
        }
        return cls(
            brand_mappings=_frozen(mappings),
            compound_words=_frozen({k.lower(): v for k, v in (compound_words or {}).items()}),
            stop_words=frozenset(w.lower() for w in stop_words),
            **extra,
        )

    def brand_for(self, area: str) -> Optional[BrandMapping]:
        return self.brand_mappings.get(area)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _read_json(path: Path, required: bool):
    if not path.is_file():
        if required:
            raise InputError(f"Required lookup table not found: {path}")
        logger.warning("Optional lookup table not found: %s", path)
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        if required:
            raise InputError(f"Malformed lookup table {path}: {e}") from e
        logger.warning("Ignoring malformed lookup table %s: %s", path, e)
        return None


def _expect(data, kind: type, path: Path, required: bool):
    if data is None:
        return kind()
    if not isinstance(data, kind):
        message = f"Lookup table {path} must be a JSON {kind.__name__}"
        if required:
            raise InputError(message)
        logger.warning(message)
        return kind()
    return data


def _pairs(rows: list, key: str, value: str) -> dict[str, str]:
    """Collect {key: value} from rows like [{"parameter": ..., "naturalLanguage": ...}]."""
    pairs = {}
    for row in rows:
        if not isinstance(row, dict):
            continue
        # Accept both camelCase and PascalCase column names
        k = row.get(key) or row.get(key[:1].upper() + key[1:])
        v = row.get(value) or row.get(value[:1].upper() + value[1:])
        if k and v is not None:
            pairs[str(k)] = str(v)
    return pairs


def load_naming_tables(data_dir: Optional[Path] = None) -> NamingTables:
    """Load every lookup table from ``data_dir`` (package defaults when None).

    Raises:
        InputError: a required table is missing or malformed.
    """
    data_dir = Path(data_dir) if data_dir else DEFAULT_DATA_DIR

    brand_path = data_dir / BRAND_MAPPING_FILE
    brand_rows = _expect(_read_json(brand_path, True), list, brand_path, True)
    brands = {}
    for row in brand_rows:
        if not isinstance(row, dict) or not row.get("mcpServerName"):
            continue
        mapping = BrandMapping(
            brand_name=str(row.get("brandName") or ""),
            mcp_server_name=str(row["mcpServerName"]),
            short_name=str(row.get("shortName") or ""),
            file_name=str(row.get("fileName") or ""),
        )
        brands[mapping.mcp_server_name] = mapping

    compound_path = data_dir / COMPOUND_WORDS_FILE
    compound = _expect(_read_json(compound_path, True), dict, compound_path, True)

    stop_path = data_dir / STOP_WORDS_FILE
    stop_words = _expect(_read_json(stop_path, True), list, stop_path, True)

    common_path = data_dir / COMMON_PARAMETERS_FILE
    common_rows = _expect(_read_json(common_path, False), list, common_path, False)
    common = set()
    for row in common_rows:
        name = row.get("name") if isinstance(row, dict) else row
        if name:
            common.add(str(name).lstrip("-").lower())

    nl_path = data_dir / NL_PARAMETERS_FILE
    nl_rows = _expect(_read_json(nl_path, False), list, nl_path, False)

    text_path = data_dir / TEXT_REPLACEMENTS_FILE
    text_rows = _expect(_read_json(text_path, False), list, text_path, False)

    patterns_path = data_dir / FAMILY_PREFIX_PATTERNS_FILE
    patterns = _expect(_read_json(patterns_path, False), list, patterns_path, False)

    tables = NamingTables(
        brand_mappings=_frozen(brands),
        compound_words=_frozen({str(k).lower(): str(v) for k, v in compound.items()}),
        stop_words=frozenset(str(w).lower() for w in stop_words),
        common_parameters=frozenset(common),
        parameter_names=_frozen(_pairs(nl_rows, "parameter", "naturalLanguage")),
        text_replacements=_frozen(_pairs(text_rows, "parameter", "naturalLanguage")),
        family_prefix_patterns=tuple(str(p) for p in patterns) or DEFAULT_FAMILY_PREFIX_PATTERNS,
    )
    logger.info(
        "Loaded lookup tables from %s: %d brands, %d compound words, %d stop words",
        data_dir, len(tables.brand_mappings), len(tables.compound_words), len(tables.stop_words),
    )
    return tables
