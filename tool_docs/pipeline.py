"""
Stage orchestration for a documentation run.

Stages, in dependency order:

  raw          tool record → raw page with fragment placeholders
  annotations  tool record → {slug}-annotations.md
  parameters   tool record → {slug}-parameters.md
  examples     tool record → {slug}-example-prompts.md       (LLM)
  compose      raw page + fragments → {slug}.complete.md
  improve      composed page → improved {slug}.complete.md  (LLM)
  families     composed/improved pages → {family}.md         (LLM optional)

Within a stage every unit owns its own output file, so units run
concurrently in a bounded thread pool. A failing unit is recorded in the
run report and never stops its siblings.
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Iterable, Optional

from tool_docs.composer import compose, load_fragments, load_template, render_raw_tool
from tool_docs.examples import DEFAULT_PROMPT_COUNT, ExamplePromptGenerator, describe_invalid
from tool_docs.family import FamilyAssembler, group_families, read_composed_document
from tool_docs.frontmatter import generation_timestamp, is_malformed
from tool_docs.improver import ToolPageImprover
from tool_docs.llm_client import TextGenerator
from tool_docs.models import (
    FAILED,
    GENERATED,
    SKIPPED,
    ErrorKind,
    FragmentKind,
    StageSummary,
    ToolRecord,
    UnitResult,
)
from tool_docs.naming import NamingTables
from tool_docs.sections import AnnotationGenerator, ParameterGenerator
from tool_docs.security import PathValidator
from tool_docs.slug import (
    annotation_file_name,
    build_base_file_name,
    complete_file_name,
    example_prompts_file_name,
    input_prompt_file_name,
    parameter_file_name,
    raw_output_file_name,
    tool_file_name,
)

logger = logging.getLogger(__name__)

STAGES = ("raw", "annotations", "parameters", "examples", "compose", "improve", "families")

CLI_VERSION_FILE = "cli-version.json"


# ---------------------------------------------------------------------------
# Version and layout
# ---------------------------------------------------------------------------

def read_cli_version(path: Path) -> Optional[str]:
    """Version from ``cli-version.json``: JSON ``{"version": ...}`` or plain text."""
    path = Path(path)
    if not path.is_file():
        return None
    text = path.read_text(encoding="utf-8").strip()
    if not text:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return text.splitlines()[0].strip()
    if isinstance(data, dict):
        version = data.get("version")
        return str(version) if version else None
    if isinstance(data, str):
        return data
    return None


def resolve_version(override: Optional[str], json_version: Optional[str], input_path: Path) -> str:
    """--version → input JSON ``version`` → sibling cli-version.json → "unknown"."""
    return (
        override
        or json_version
        or read_cli_version(Path(input_path).parent / CLI_VERSION_FILE)
        or "unknown"
    )


@dataclass(frozen=True)
class OutputLayout:
    root: Path

    @property
    def annotations(self) -> Path:
        return self.root / "annotations"

    @property
    def parameters(self) -> Path:
        return self.root / "parameters"

    @property
    def examples(self) -> Path:
        return self.root / "example-prompts"

    @property
    def examples_debug(self) -> Path:
        return self.root / "example-prompts-debug"

    @property
    def raw(self) -> Path:
        return self.root / "raw"

    @property
    def tools(self) -> Path:
        return self.root / "tools"

    @property
    def improved(self) -> Path:
        return self.root / "tools-improved"

    @property
    def families(self) -> Path:
        return self.root / "families"

    @property
    def reports(self) -> Path:
        return self.root / "reports"

    def fragment_dirs(self) -> dict[FragmentKind, Path]:
        return {
            FragmentKind.ANNOTATIONS: self.annotations,
            FragmentKind.PARAMETERS: self.parameters,
            FragmentKind.EXAMPLES: self.examples,
        }


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Run report
# ---------------------------------------------------------------------------

@dataclass
class RunReport:
    stages: dict[str, StageSummary] = field(default_factory=dict)
    missing_brand_areas: list[str] = field(default_factory=list)

    def add(self, summary: StageSummary) -> None:
        self.stages[summary.stage] = summary

    def totals(self) -> dict[str, int]:
        return {
            status: sum(s.count(status) for s in self.stages.values())
            for status in (GENERATED, SKIPPED, FAILED)
        }

    def print_summary(self) -> None:
        print("\n" + "=" * 70)
        print("[Summary] GENERATION COMPLETE")
        print("=" * 70)
        for name, summary in self.stages.items():
            print(
                f"   {name:<12} generated: {summary.count(GENERATED):>4}  "
                f"skipped: {summary.count(SKIPPED):>4}  failed: {summary.count(FAILED):>4}"
            )
            for result in summary.results:
                if result.message and (result.status != GENERATED or result.error_kind):
                    print(f"      {result.status}: {result.unit} ({result.message})")
        totals = self.totals()
        print(f"   Total  Generated: {totals[GENERATED]}  Skipped: {totals[SKIPPED]}  Failed: {totals[FAILED]}")
        if self.missing_brand_areas:
            print(f"   Areas without brand mapping: {', '.join(self.missing_brand_areas)}")

    def to_markdown(self, generated_at: str, version: str) -> str:
        lines = [
            "---",
            f"generated: {generated_at} UTC",
            f"mcp-cli.version: {version}",
            "---",
            "",
            "# Generation summary",
            "",
            "| Stage | Generated | Skipped | Failed |",
            "|-------|-----------|---------|--------|",
        ]
        for name, summary in self.stages.items():
            lines.append(
                f"| {name} | {summary.count(GENERATED)} | {summary.count(SKIPPED)} | {summary.count(FAILED)} |"
            )
        problems = [
            r for s in self.stages.values() for r in s.results
            if r.status != GENERATED or r.error_kind
        ]
        if problems:
            lines += ["", "## Skipped, failed and incomplete units", ""]
            for r in problems:
                kind = f" [{r.error_kind.value}]" if r.error_kind else ""
                lines.append(f"- {r.stage}: `{r.unit}` {r.status}{kind}: {r.message}")
        return "\n".join(lines) + "\n"

    def write(self, layout: OutputLayout, generated_at: str, version: str) -> None:
        _write(layout.reports / "generation-summary.md", self.to_markdown(generated_at, version))
        _write(
            layout.reports / "missing-brand-mappings.txt",
            "".join(f"{area}\n" for area in self.missing_brand_areas),
        )


def missing_brand_areas(tools: Iterable[ToolRecord], tables: NamingTables) -> list[str]:
    """Areas with no brand-table row; their slugs fall back to compound/plain names."""
    return sorted({t.area for t in tools if t.area and tables.brand_for(t.area) is None})


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class Pipeline:
    """Runs the selected stages over a loaded tool catalog."""

    def __init__(
        self,
        tools: list[ToolRecord],
        tables: NamingTables,
        output_dir: Path,
        version: str = "unknown",
        text_generator: Optional[TextGenerator] = None,
        template: Optional[str] = None,
        max_workers: int = 4,
        prompt_count: int = DEFAULT_PROMPT_COUNT,
        generated_at: Optional[str] = None,
    ):
        self.tools = tools
        self.tables = tables
        self.layout = OutputLayout(Path(output_dir))
        self.version = version or "unknown"
        self.text_generator = text_generator
        self.template = template or load_template(None)
        self.max_workers = max(1, max_workers)
        self.prompt_count = prompt_count
        self.generated_at = generated_at or generation_timestamp()

        # One unit per slug: the first command wins, later ones are skipped
        self.units: list[tuple[ToolRecord, str]] = []
        self.duplicates: list[tuple[ToolRecord, str, str]] = []
        seen: dict[str, str] = {}
        for tool in tools:
            slug = build_base_file_name(tool.command, tables)
            if slug in seen:
                logger.warning(
                    "Slug collision: '%s' and '%s' both map to %s; skipping '%s'",
                    seen[slug], tool.command, slug, tool.command,
                )
                self.duplicates.append((tool, slug, seen[slug]))
                continue
            seen[slug] = tool.command
            self.units.append((tool, slug))

    # ---- stage runner ----------------------------------------------------

    def _map(self, stage: str, units: list, task: Callable, label: Callable) -> StageSummary:
        summary = StageSummary(stage)
        if not units:
            return summary

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {pool.submit(task, unit): unit for unit in units}
            for future in as_completed(futures):
                unit = futures[future]
                try:
                    summary.results.append(future.result())
                except Exception as e:
                    logger.exception("%s failed for %s", stage, label(unit))
                    summary.results.append(UnitResult(
                        unit=label(unit),
                        stage=stage,
                        status=FAILED,
                        message=f"{type(e).__name__}: {e}",
                        error_kind=ErrorKind.SERVICE_FAILURE,
                    ))

        summary.results.sort(key=lambda r: r.unit)
        return summary

    def _duplicate_results(self, stage: str) -> list[UnitResult]:
        return [
            UnitResult(tool.command, stage, SKIPPED, f"duplicate slug {slug} (kept '{first}')")
            for tool, slug, first in self.duplicates
        ]

    def _tool_stage(self, stage: str, task: Callable) -> StageSummary:
        summary = self._map(stage, self.units, task, label=lambda unit: unit[1])
        summary.results += self._duplicate_results(stage)
        summary.results.sort(key=lambda r: r.unit)
        return summary

    # ---- per-tool stages -------------------------------------------------

    def _raw(self, unit) -> UnitResult:
        tool, slug = unit
        content = render_raw_tool(tool, self.template, self.version, self.generated_at)
        path = _write(self.layout.raw / tool_file_name(slug), content)
        return UnitResult(slug, "raw", GENERATED, path=path)

    def _annotations(self, unit) -> UnitResult:
        tool, slug = unit
        fragment = AnnotationGenerator(self.version, self.generated_at).generate(tool, slug)
        if fragment is None:
            return UnitResult(slug, "annotations", SKIPPED, "no metadata")
        path = _write(self.layout.annotations / annotation_file_name(slug), fragment.content)
        return UnitResult(slug, "annotations", GENERATED, path=path)

    def _parameters(self, unit) -> UnitResult:
        tool, slug = unit
        fragment = ParameterGenerator(self.tables, self.version, self.generated_at).generate(tool, slug)
        if fragment is None:
            return UnitResult(slug, "parameters", SKIPPED, "no options")
        path = _write(self.layout.parameters / parameter_file_name(slug), fragment.content)
        return UnitResult(slug, "parameters", GENERATED, path=path)

    def _examples(self, unit) -> UnitResult:
        tool, slug = unit
        generator = ExamplePromptGenerator(
            self.text_generator, self.version, self.generated_at, self.prompt_count, self.tables
        )
        result = generator.run(tool, slug)

        _write(self.layout.examples_debug / input_prompt_file_name(slug), result.user_prompt + "\n")
        if result.raw_response:
            _write(self.layout.examples_debug / raw_output_file_name(slug), result.raw_response)

        if result.fragment is None:
            return UnitResult(slug, "examples", FAILED, result.error, ErrorKind.SERVICE_FAILURE)
        path = _write(self.layout.examples / example_prompts_file_name(slug), result.fragment.content)
        if result.invalid_prompts:
            return UnitResult(slug, "examples", GENERATED, describe_invalid(list(result.checks)),
                              ErrorKind.INCOMPLETE_PROMPTS, path)
        return UnitResult(slug, "examples", GENERATED, path=path)

    def _compose(self, unit) -> UnitResult:
        tool, slug = unit
        raw_path = self.layout.raw / tool_file_name(slug)
        if raw_path.is_file():
            raw = raw_path.read_text(encoding="utf-8")
        else:
            raw = render_raw_tool(tool, self.template, self.version, self.generated_at)

        fragments, missing = load_fragments(slug, self.layout.fragment_dirs())
        document = compose(raw, slug, fragments, command=tool.command, area=tool.area)
        path = _write(self.layout.tools / complete_file_name(slug), document.content)

        malformed = [k.value for k, f in fragments.items() if f is not None and is_malformed(f.content)]
        if malformed:
            logger.warning("Unclosed frontmatter in %s fragments of %s; used as-is", ", ".join(malformed), slug)
            return UnitResult(slug, "compose", GENERATED, f"malformed frontmatter: {', '.join(malformed)}",
                              ErrorKind.MALFORMED_FRONTMATTER, path)
        if missing:
            names = ", ".join(kind.value for kind in missing)
            return UnitResult(slug, "compose", GENERATED, f"missing: {names}",
                              ErrorKind.MISSING_FRAGMENT, path)
        return UnitResult(slug, "compose", GENERATED, path=path)

    def _improve(self, unit) -> UnitResult:
        tool, slug = unit
        source = self.layout.tools / complete_file_name(slug)
        if not source.is_file():
            return UnitResult(slug, "improve", SKIPPED, "no composed page", ErrorKind.MISSING_FRAGMENT)

        document = read_composed_document(source)
        result = ToolPageImprover(self.text_generator).run(document)
        path = _write(self.layout.improved / complete_file_name(slug), result.document.content)
        if not result.improved:
            return UnitResult(slug, "improve", SKIPPED, f"kept original: {result.message}",
                              ErrorKind.SERVICE_FAILURE, path)
        return UnitResult(slug, "improve", GENERATED, path=path)

    # ---- families --------------------------------------------------------

    def composed_documents(self) -> list:
        """Best available page per tool: improved, else composed."""
        documents = []
        for tool, slug in self.units:
            for directory in (self.layout.improved, self.layout.tools):
                path = directory / complete_file_name(slug)
                if path.is_file():
                    doc = read_composed_document(path)
                    if not doc.area:
                        doc = replace(doc, command=tool.command, area=tool.area)
                    documents.append(doc)
                    break
        return documents

    def _family(self, item) -> UnitResult:
        area, members = item
        is_valid, error, family = PathValidator.validate_area(area)
        if not is_valid:
            return UnitResult(area, "families", SKIPPED, error)

        assembler = FamilyAssembler(self.tables, self.version, self.generated_at, self.text_generator)
        document = assembler.build(area, members)
        path = _write(self.layout.families / f"{family}.md", document.content)
        return UnitResult(area, "families", GENERATED, f"{len(document.members)} tools", path=path)

    # ---- entry -----------------------------------------------------------

    def run_stage(self, stage: str) -> StageSummary:
        if stage in ("examples", "improve") and self.text_generator is None:
            print(f"[{stage}] No LLM configured, skipping")
            summary = StageSummary(stage)
            summary.results = [
                UnitResult(slug, stage, SKIPPED, "no LLM configured", ErrorKind.SERVICE_FAILURE)
                for _, slug in self.units
            ] + self._duplicate_results(stage)
            return summary

        if stage == "families":
            families = group_families(self.composed_documents(), self.tables)
            print(f"[families] Assembling {len(families)} family pages...")
            return self._map(stage, sorted(families.items()), self._family, label=lambda item: item[0])

        task = {
            "raw": self._raw,
            "annotations": self._annotations,
            "parameters": self._parameters,
            "examples": self._examples,
            "compose": self._compose,
            "improve": self._improve,
        }[stage]
        print(f"[{stage}] Processing {len(self.units)} tools...")
        return self._tool_stage(stage, task)

    def run(self, stages: Iterable[str] = STAGES) -> RunReport:
        report = RunReport(missing_brand_areas=missing_brand_areas(self.tools, self.tables))
        self.layout.root.mkdir(parents=True, exist_ok=True)

        for stage in stages:
            if stage not in STAGES:
                raise ValueError(f"Unknown stage: {stage}")
            report.add(self.run_stage(stage))

        report.write(self.layout, self.generated_at, self.version)
        return report
