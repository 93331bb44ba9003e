"""Line-pattern extraction of tasks and requirements from markdown documents.

Everything here is recomputed from the files on every call. The plan is
edited by the agent between iterations, so a cached copy would be stale.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from fresher.models.plan import (
    CrossCuttingTasks,
    FeatureState,
    FeatureStatus,
    Requirement,
    RequirementType,
    Task,
    TaskStatus,
)

logger = logging.getLogger(__name__)

PRIORITY_PATTERN = re.compile(r"^##\s+Priority\s+(\d+)")
CHECKBOX_PATTERN = re.compile(r"^(\s*)-\s*\[([ xX~])\]\s+(.+)$")
REFS_PATTERN = re.compile(r"\(refs?:\s*([^)]+)\)")
DEPENDENCIES_PATTERN = re.compile(r"Dependencies:\s*(.+)")
COMPLEXITY_PATTERN = re.compile(r"Complexity:\s*(low|medium|high)")

# Quick pending check used for termination
PENDING_CHECKBOX_PATTERN = re.compile(r"^\s*-\s*\[\s\]")
COMPLETED_CHECKBOX_PATTERN = re.compile(r"^\s*-\s*\[[xX]\]")
IN_PROGRESS_CHECKBOX_PATTERN = re.compile(r"^\s*-\s*\[~\]")
# Numbered section-header plans: "### 1.2 Create project structure" (done when marked ✅ or ✓)
NUMBERED_HEADER_PATTERN = re.compile(r"^###\s+\d+\.\d+\s+.+$")
DONE_MARKERS = ("✅", "✓")

RFC2119_PATTERN = re.compile(
    r"\b(MUST|MUST NOT|REQUIRED|SHALL|SHALL NOT|SHOULD|SHOULD NOT|RECOMMENDED|MAY|OPTIONAL)\b"
)
SECTION_PATTERN = re.compile(r"^###\s+(.+)$")
SPEC_CHECKBOX_PATTERN = re.compile(r"^(\s*)-\s*\[([ xX])\]\s+(.+)$")

# Hierarchical plan markers: "**Spec:** [name](specs/foo.md)" in a feature file,
# "**Active:** [feature]" or a "## Current Focus" link in impl/README.md
FEATURE_SPEC_REF_PATTERN = re.compile(r"\*\*Spec:\*\*\s*\[.*?\]\((.*?)\)")
ACTIVE_FOCUS_PATTERN = re.compile(r"\*\*Active:\*\*\s*\[(.*?)\]")
FOCUS_SECTION_PATTERN = re.compile(r"##\s*Current Focus[\s\S]*?\[(.*?)\.md\]")
CROSS_CUTTING_HEADING = "## Cross-Cutting"

_STATUS_BY_MARKER = {
    " ": TaskStatus.PENDING,
    "x": TaskStatus.COMPLETED,
    "X": TaskStatus.COMPLETED,
    "~": TaskStatus.IN_PROGRESS,
}


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_plan_text(content: str) -> list[Task]:
    """Extract checklist tasks from implementation plan text."""
    tasks: list[Task] = []
    current_priority: Optional[int] = None

    for line_num, line in enumerate(content.splitlines(), start=1):
        priority_match = PRIORITY_PATTERN.match(line)
        if priority_match:
            current_priority = int(priority_match.group(1))
            continue

        checkbox_match = CHECKBOX_PATTERN.match(line)
        if checkbox_match:
            description = checkbox_match.group(3)
            refs_match = REFS_PATTERN.search(description)
            spec_refs = _split_list(refs_match.group(1)) if refs_match else []
            tasks.append(
                Task(
                    description=REFS_PATTERN.sub("", description).strip(),
                    status=_STATUS_BY_MARKER[checkbox_match.group(2)],
                    spec_refs=spec_refs,
                    line_number=line_num,
                    priority=current_priority,
                )
            )
            continue

        if not tasks:
            continue

        # Metadata lines nested under the most recent task
        last_task = tasks[-1]
        deps_match = DEPENDENCIES_PATTERN.search(line)
        if deps_match:
            deps = deps_match.group(1).strip()
            if deps.lower() != "none":
                last_task.dependencies = _split_list(deps)
        complexity_match = COMPLEXITY_PATTERN.search(line)
        if complexity_match:
            last_task.complexity = complexity_match.group(1)

    return tasks


def parse_plan(plan_path: Path) -> list[Task]:
    """Extract tasks from a plan file. A missing file has no tasks."""
    try:
        content = Path(plan_path).read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return []
    return parse_plan_text(content)


def count_tasks(tasks: list[Task]) -> tuple[int, int, int, int]:
    """Return (total, pending, completed, in_progress)."""
    pending = sum(1 for t in tasks if t.status == TaskStatus.PENDING)
    completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
    in_progress = sum(1 for t in tasks if t.status == TaskStatus.IN_PROGRESS)
    return len(tasks), pending, completed, in_progress


def _text_has_pending(content: str) -> bool:
    for line in content.splitlines():
        if PENDING_CHECKBOX_PATTERN.match(line):
            return True
        if NUMBERED_HEADER_PATTERN.match(line) and not any(m in line for m in DONE_MARKERS):
            return True
    return False


def _read(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None


def list_feature_files(impl_dir: Path) -> list[Path]:
    """Feature files of a hierarchical plan: impl/*.md except the README index."""
    return sorted(
        p for p in Path(impl_dir).glob("*.md") if p.is_file() and p.name != "README.md"
    )


def has_hierarchical_plan(impl_dir: Path) -> bool:
    return (Path(impl_dir) / "README.md").is_file()


def _plan_documents(plan_path: Path, impl_dir: Optional[Path]) -> list[Path]:
    if impl_dir is not None and has_hierarchical_plan(impl_dir):
        impl_dir = Path(impl_dir)
        return list_feature_files(impl_dir) + [impl_dir / "README.md"]
    return [Path(plan_path)]


def has_pending_tasks(plan_path: Path, impl_dir: Optional[Path] = None) -> bool:
    """Whether the plan still has work left.

    Pending work is a ``- [ ]`` checkbox or a numbered ``### N.N`` heading not
    marked done. When ``impl_dir`` holds a README.md index, the hierarchical
    plan in that directory is checked instead of ``plan_path``. A missing plan
    has nothing pending.
    """
    for document in _plan_documents(plan_path, impl_dir):
        content = _read(document)
        if content is not None and _text_has_pending(content):
            return True
    return False


def has_completed_tasks(plan_path: Path, impl_dir: Optional[Path] = None) -> bool:
    """Whether the plan records at least one finished task."""
    for document in _plan_documents(plan_path, impl_dir):
        content = _read(document)
        if content is None:
            continue
        for line in content.splitlines():
            if COMPLETED_CHECKBOX_PATTERN.match(line):
                return True
            if NUMBERED_HEADER_PATTERN.match(line) and any(m in line for m in DONE_MARKERS):
                return True
    return False


def is_plan_complete(plan_path: Path, impl_dir: Optional[Path] = None) -> bool:
    """No pending work and some finished work; an empty plan is not complete."""
    return not has_pending_tasks(plan_path, impl_dir) and has_completed_tasks(
        plan_path, impl_dir
    )


def parse_feature_text(name: str, content: str, file: str = "") -> FeatureStatus:
    """Count the checkboxes of one feature file. ``[~]`` tasks count as pending here."""
    pending = completed = in_progress = 0
    spec_ref: Optional[str] = None

    for line in content.splitlines():
        if PENDING_CHECKBOX_PATTERN.match(line):
            pending += 1
        elif COMPLETED_CHECKBOX_PATTERN.match(line):
            completed += 1
        elif IN_PROGRESS_CHECKBOX_PATTERN.match(line):
            in_progress += 1

        if spec_ref is None:
            ref_match = FEATURE_SPEC_REF_PATTERN.search(line)
            if ref_match:
                spec_ref = ref_match.group(1)

    total = pending + completed + in_progress
    if total > 0 and completed == total:
        status = FeatureState.COMPLETE
    elif completed > 0 or in_progress > 0:
        status = FeatureState.IN_PROGRESS
    else:
        status = FeatureState.PENDING

    return FeatureStatus(
        name=name,
        file=file,
        status=status,
        total_tasks=total,
        completed_tasks=completed,
        pending_tasks=pending + in_progress,
        spec_ref=spec_ref,
    )


def parse_current_focus(readme: str) -> Optional[str]:
    active_match = ACTIVE_FOCUS_PATTERN.search(readme)
    if active_match:
        return active_match.group(1)
    section_match = FOCUS_SECTION_PATTERN.search(readme)
    if section_match:
        return section_match.group(1)
    return None


def count_cross_cutting_tasks(readme: str) -> CrossCuttingTasks:
    """Checkboxes in an index that has a Cross-Cutting section.

    Table rows (the feature status overview) are ignored.
    """
    if CROSS_CUTTING_HEADING not in readme:
        return CrossCuttingTasks()

    pending = completed = 0
    for line in readme.splitlines():
        if "|" in line:
            continue
        if PENDING_CHECKBOX_PATTERN.match(line):
            pending += 1
        elif COMPLETED_CHECKBOX_PATTERN.match(line):
            completed += 1
    return CrossCuttingTasks(total=pending + completed, completed=completed, pending=pending)


def extract_requirements_text(spec_name: str, content: str) -> list[Requirement]:
    """Extract requirements from one spec document's text.

    A line can yield more than one requirement, e.g. a heading that also
    contains a MUST.
    """
    requirements: list[Requirement] = []
    for line_num, line in enumerate(content.splitlines(), start=1):
        section_match = SECTION_PATTERN.match(line)
        if section_match:
            requirements.append(
                Requirement(
                    spec_name=spec_name,
                    req_type=RequirementType.SECTION,
                    text=section_match.group(1),
                    line_number=line_num,
                )
            )

        checkbox_match = SPEC_CHECKBOX_PATTERN.match(line)
        if checkbox_match:
            requirements.append(
                Requirement(
                    spec_name=spec_name,
                    req_type=RequirementType.TASK,
                    text=checkbox_match.group(3),
                    line_number=line_num,
                )
            )

        if RFC2119_PATTERN.search(line):
            requirements.append(
                Requirement(
                    spec_name=spec_name,
                    req_type=RequirementType.RFC2119,
                    text=line,
                    line_number=line_num,
                )
            )
    return requirements


def extract_requirements(spec_dir: Path) -> list[Requirement]:
    """Extract requirements from every ``*.md`` file directly under spec_dir."""
    spec_dir = Path(spec_dir)
    if not spec_dir.is_dir():
        return []

    requirements: list[Requirement] = []
    for path in sorted(spec_dir.glob("*.md")):
        if not path.is_file():
            continue
        content = _read(path)
        if content is None:
            logger.warning(f"Skipping unreadable spec file: {path}")
            continue
        requirements.extend(extract_requirements_text(path.stem, content))
    return requirements
