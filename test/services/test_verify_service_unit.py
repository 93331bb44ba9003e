"""Unit tests for the coverage analyzer and verify report."""

import pytest

from fresher.exceptions import FresherError
from fresher.models.plan import Task, TaskStatus
from fresher.services.verify_service import (
    analyze_coverage,
    coverage_percent,
    generate_hierarchical_report,
    generate_report,
    select_next_focus,
    spec_name_from_ref,
)


def _task(*refs: str) -> Task:
    return Task(description="t", status=TaskStatus.PENDING, spec_refs=list(refs), line_number=1)


class TestSpecNameFromRef:
    @pytest.mark.parametrize(
        "ref, expected",
        [
            ("specs/state.md", "state"),
            ("./specs/state.md", "state"),
            ("state.md", "state"),
            ("state", "state"),
            ("docs/state.md", "docs/state"),
        ],
    )
    def test_default_prefix(self, ref, expected):
        assert spec_name_from_ref(ref) == expected

    def test_configured_spec_dir(self):
        assert spec_name_from_ref("docs/specs/loop.md", "docs/specs") == "loop"
        assert spec_name_from_ref("specs/loop.md", "docs/specs") == "loop"


class TestCoveragePercent:
    @pytest.mark.parametrize(
        "tasks, reqs, expected",
        [(0, 4, 0.0), (1, 4, 25.0), (4, 4, 100.0), (9, 4, 100.0), (3, 0, 0.0)],
    )
    def test_bounded(self, tasks, reqs, expected):
        assert coverage_percent(tasks, reqs) == expected


class TestAnalyzeCoverage:
    def test_per_spec_counts_sorted(self, tmp_path):
        specs = tmp_path / "specs"
        specs.mkdir()
        (specs / "streaming.md").write_text("### A\n### B\n### C\n### D\n", encoding="utf-8")
        (specs / "hooks.md").write_text("### Exit codes\nHooks MUST be executable.\n", encoding="utf-8")

        coverage = analyze_coverage(
            specs, [_task("specs/streaming.md"), _task("specs/hooks.md", "specs/streaming.md"), _task()]
        )

        assert [c.spec_name for c in coverage] == ["hooks", "streaming"]
        assert coverage[0].requirement_count == 2
        assert coverage[0].task_count == 1
        assert coverage[0].coverage_percent == 50.0
        assert coverage[1].coverage_percent == 50.0
        assert all(0.0 <= c.coverage_percent <= 100.0 for c in coverage)

    def test_spec_without_requirements_is_not_listed(self, tmp_path):
        specs = tmp_path / "specs"
        specs.mkdir()
        (specs / "prose.md").write_text("Just words.\n", encoding="utf-8")
        assert analyze_coverage(specs, [_task("specs/prose.md")]) == []


class TestGenerateReport:
    def test_totals(self, tmp_path):
        specs = tmp_path / "specs"
        specs.mkdir()
        (specs / "core.md").write_text("### One\n### Two\n", encoding="utf-8")
        plan = tmp_path / "IMPLEMENTATION_PLAN.md"
        plan.write_text(
            "## Priority 1\n"
            "- [x] Scaffold (refs: specs/core.md)\n"
            "- [~] Parser (refs: specs/core.md)\n"
            "- [ ] Docs\n",
            encoding="utf-8",
        )

        report = generate_report(plan, specs)

        assert report.total_tasks == 3
        assert report.completed_tasks == 1
        assert report.in_progress_tasks == 1
        assert report.pending_tasks == 1
        assert report.tasks_with_refs == 2
        assert report.orphan_tasks == 1
        assert report.coverage[0].spec_name == "core"
        assert report.coverage[0].coverage_percent == 100.0
        assert report.tasks[0].priority == 1


@pytest.fixture
def impl_dir(tmp_path):
    impl = tmp_path / "impl"
    impl.mkdir()
    (impl / "README.md").write_text(
        "# Implementation Plan\n\n"
        "**Active:** [streaming](streaming.md)\n\n"
        "## Cross-Cutting\n"
        "- [x] CI\n"
        "- [ ] Release\n",
        encoding="utf-8",
    )
    (impl / "streaming.md").write_text("- [x] framing\n- [ ] render\n- [ ] summary\n", encoding="utf-8")
    (impl / "hooks.md").write_text("- [ ] runner\n", encoding="utf-8")
    (impl / "state.md").write_text("- [x] store\n", encoding="utf-8")
    return impl


class TestHierarchicalReport:
    def test_totals_include_cross_cutting(self, impl_dir):
        report = generate_hierarchical_report(impl_dir)

        assert [f.name for f in report.features] == ["hooks", "state", "streaming"]
        assert report.total_tasks == 7
        assert report.completed_tasks == 3
        assert report.pending_tasks == 4
        assert not report.is_complete
        assert report.current_focus == "streaming"
        assert report.cross_cutting.total == 2

    def test_complete_when_nothing_pending(self, tmp_path):
        impl = tmp_path / "impl"
        impl.mkdir()
        (impl / "README.md").write_text("# Index\n", encoding="utf-8")
        (impl / "state.md").write_text("- [x] store\n", encoding="utf-8")
        report = generate_hierarchical_report(impl)
        assert report.is_complete
        assert select_next_focus(report) is None

    def test_missing_index(self, tmp_path):
        with pytest.raises(FresherError, match="README.md not found"):
            generate_hierarchical_report(tmp_path)

    def test_next_focus_prefers_in_progress(self, impl_dir):
        assert select_next_focus(generate_hierarchical_report(impl_dir)).name == "streaming"

    def test_next_focus_smallest_pending(self, impl_dir):
        (impl_dir / "streaming.md").write_text("- [ ] a\n- [ ] b\n", encoding="utf-8")
        assert select_next_focus(generate_hierarchical_report(impl_dir)).name == "hooks"
