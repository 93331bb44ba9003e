"""Plan verification: task status counts and per-spec coverage."""

import logging
from collections import Counter, defaultdict
from pathlib import Path
from typing import Optional

from fresher.exceptions import FresherError
from fresher.models.plan import (
    CoverageEntry,
    FeatureState,
    FeatureStatus,
    HierarchicalReport,
    Task,
    VerifyReport,
)
from fresher.utils.plan_parser import (
    count_cross_cutting_tasks,
    count_tasks,
    extract_requirements,
    has_hierarchical_plan,
    list_feature_files,
    parse_current_focus,
    parse_feature_text,
    parse_plan,
)

logger = logging.getLogger(__name__)


def spec_name_from_ref(spec_ref: str, spec_dir: Optional[Path] = None) -> str:
    """Normalise a task reference like ``specs/foo.md`` to the spec name ``foo``."""
    name = spec_ref.strip().replace("\\", "/")
    if name.startswith("./"):
        name = name[2:]
    prefixes = ["specs/"]
    if spec_dir is not None:
        spec_prefix = Path(spec_dir).as_posix().strip("/")
        if spec_prefix and spec_prefix not in (".", "specs"):
            prefixes.insert(0, f"{spec_prefix}/")
    for prefix in prefixes:
        if name.startswith(prefix):
            name = name[len(prefix):]
            break
    if name.endswith(".md"):
        name = name[: -len(".md")]
    return name


def coverage_percent(task_count: int, requirement_count: int) -> float:
    """Tasks per requirement as a percentage, capped at 100."""
    if requirement_count <= 0:
        return 0.0
    return min(100.0, task_count / requirement_count * 100.0)


def analyze_coverage(spec_dir: Path, tasks: list[Task]) -> list[CoverageEntry]:
    """Coverage of each spec document by plan tasks, sorted by spec name."""
    requirements_by_spec: dict[str, int] = defaultdict(int)
    for requirement in extract_requirements(spec_dir):
        requirements_by_spec[requirement.spec_name] += 1

    tasks_by_spec: Counter[str] = Counter()
    for task in tasks:
        for spec_ref in task.spec_refs:
            tasks_by_spec[spec_name_from_ref(spec_ref, spec_dir)] += 1

    coverage = [
        CoverageEntry(
            spec_name=spec_name,
            requirement_count=req_count,
            task_count=tasks_by_spec.get(spec_name, 0),
            coverage_percent=coverage_percent(tasks_by_spec.get(spec_name, 0), req_count),
        )
        for spec_name, req_count in requirements_by_spec.items()
    ]
    coverage.sort(key=lambda entry: entry.spec_name)
    return coverage


def generate_report(plan_path: Path, spec_dir: Path) -> VerifyReport:
    """Build the full verification report from the documents on disk."""
    tasks = parse_plan(plan_path)
    total, pending, completed, in_progress = count_tasks(tasks)
    tasks_with_refs = sum(1 for t in tasks if t.spec_refs)

    report = VerifyReport(
        total_tasks=total,
        pending_tasks=pending,
        completed_tasks=completed,
        in_progress_tasks=in_progress,
        tasks_with_refs=tasks_with_refs,
        orphan_tasks=total - tasks_with_refs,
        coverage=analyze_coverage(spec_dir, tasks),
        tasks=tasks,
    )
    logger.debug(
        f"Verified {plan_path}: {total} tasks, {pending} pending, "
        f"{len(report.coverage)} specs"
    )
    return report


def generate_hierarchical_report(impl_dir: Path) -> HierarchicalReport:
    """Per-feature progress of an ``impl/`` plan, plus its README index."""
    impl_dir = Path(impl_dir)
    if not has_hierarchical_plan(impl_dir):
        raise FresherError(f"{impl_dir / 'README.md'} not found")

    features: list[FeatureStatus] = []
    for path in list_feature_files(impl_dir):
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"Skipping unreadable feature file {path}: {e}")
            continue
        features.append(parse_feature_text(path.stem, content, str(path)))
    features.sort(key=lambda f: f.name)

    readme = (impl_dir / "README.md").read_text(encoding="utf-8", errors="replace")
    cross_cutting = count_cross_cutting_tasks(readme)

    total = sum(f.total_tasks for f in features) + cross_cutting.total
    completed = sum(f.completed_tasks for f in features) + cross_cutting.completed
    pending = sum(f.pending_tasks for f in features) + cross_cutting.pending

    return HierarchicalReport(
        impl_dir=str(impl_dir),
        total_tasks=total,
        completed_tasks=completed,
        pending_tasks=pending,
        is_complete=pending == 0,
        current_focus=parse_current_focus(readme),
        features=features,
        cross_cutting=cross_cutting,
    )


def select_next_focus(report: HierarchicalReport) -> Optional[FeatureStatus]:
    """The feature already in progress, else the one with the fewest pending tasks."""
    for feature in report.features:
        if feature.status == FeatureState.IN_PROGRESS:
            return feature
    candidates = [f for f in report.features if f.pending_tasks > 0]
    if not candidates:
        return None
    return min(candidates, key=lambda f: f.pending_tasks)
