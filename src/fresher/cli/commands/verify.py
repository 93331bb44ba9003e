"""Verify command for fresher CLI."""

import json
from pathlib import Path
from typing import Optional

import click

from fresher.config import load_config
from fresher.exceptions import FresherError
from fresher.models.plan import FeatureState, HierarchicalReport, TaskStatus, VerifyReport
from fresher.services.verify_service import (
    generate_hierarchical_report,
    generate_report,
    select_next_focus,
)
from fresher.utils.plan_parser import has_hierarchical_plan

MAX_PENDING_SHOWN = 10
BAR_WIDTH = 20


def _bar(percent: float) -> str:
    filled = int(percent / 100 * BAR_WIDTH)
    return f"[{'█' * filled}{'░' * (BAR_WIDTH - filled)}]"


def _coverage_color(percent: float) -> str:
    if percent >= 80:
        return "green"
    if percent >= 50:
        return "yellow"
    return "red"


def print_report(report: VerifyReport) -> None:
    click.secho("Implementation Plan Verification", bold=True)
    click.echo("=" * 40)
    click.echo()

    done_percent = report.completed_tasks * 100 // report.total_tasks if report.total_tasks else 0
    click.secho("Task Summary", bold=True)
    click.echo(f"  Total tasks:     {click.style(str(report.total_tasks), fg='cyan')}")
    click.echo(
        f"  Completed:       "
        f"{click.style(f'{report.completed_tasks} ({done_percent}%)', fg='green')}"
    )
    click.echo(f"  In Progress:     {click.style(str(report.in_progress_tasks), fg='yellow')}")
    click.echo(f"  Pending:         {click.style(str(report.pending_tasks), fg='red')}")
    click.echo()

    click.secho("Traceability", bold=True)
    click.echo(f"  Tasks with refs: {click.style(str(report.tasks_with_refs), fg='cyan')}")
    orphan_color = "yellow" if report.orphan_tasks else "green"
    click.echo(f"  Orphan tasks:    {click.style(str(report.orphan_tasks), fg=orphan_color)}")
    click.echo()

    if report.coverage:
        click.secho("Spec Coverage", bold=True)
        for entry in report.coverage:
            percent = click.style(
                f"{entry.coverage_percent:.0f}%", fg=_coverage_color(entry.coverage_percent)
            )
            click.echo(
                f"  {entry.spec_name:20} {_bar(entry.coverage_percent)} {percent} "
                f"({entry.requirement_count} reqs, {entry.task_count} tasks)"
            )
        click.echo()

    pending = [t for t in report.tasks if t.status == TaskStatus.PENDING]
    if pending:
        click.secho("Pending Tasks", bold=True)
        for task in pending[:MAX_PENDING_SHOWN]:
            priority = f"P{task.priority}" if task.priority is not None else "P?"
            click.echo(
                f"  {click.style(f'[{priority}]', dim=True)} "
                f"{click.style('○', fg='red')} {task.description}"
            )
        if len(pending) > MAX_PENDING_SHOWN:
            click.secho(f"  ... and {len(pending) - MAX_PENDING_SHOWN} more...", dim=True)
        click.echo()

    if report.total_tasks > 0 and report.pending_tasks == 0:
        click.echo(f"{click.style('✓', fg='green')} All tasks completed!")
    elif report.total_tasks == 0:
        click.secho("No tasks found in the plan.", fg="yellow")
    else:
        click.echo(f"{report.pending_tasks} task(s) remaining.")


_FEATURE_ICONS = {
    FeatureState.COMPLETE: "✅",
    FeatureState.IN_PROGRESS: "🔄",
    FeatureState.PENDING: "⏳",
}


def print_hierarchical_report(report: HierarchicalReport) -> None:
    click.secho("Implementation Plan Verification (Hierarchical)", bold=True)
    click.echo("=" * 50)
    click.echo()

    click.secho("Feature Summary", bold=True)
    for feature in report.features:
        percent = feature.completion_percent
        progress = f"{percent:.0f}% ({feature.completed_tasks}/{feature.total_tasks})"
        if percent >= 100:
            progress = click.style(progress, fg="green")
        elif percent >= 50:
            progress = click.style(progress, fg="yellow")
        click.echo(f"  {feature.name:20} {_bar(percent)} {progress} {_FEATURE_ICONS[feature.status]}")
    click.echo()

    if report.current_focus:
        click.secho("Current Focus", bold=True)
        click.echo(f"  Active: {click.style(report.current_focus, fg='cyan')}")
        focus_name = report.current_focus.removesuffix(".md")
        focused = next((f for f in report.features if f.name == focus_name), None)
        if focused is not None and focused.pending_tasks > 0:
            click.echo(f"  {click.style(str(focused.pending_tasks), fg='yellow')} pending tasks remaining")
        click.echo()

    cross = report.cross_cutting
    if cross.total > 0:
        click.secho("Cross-Cutting Tasks", bold=True)
        click.echo(
            f"  Total: {cross.total}, "
            f"Completed: {click.style(str(cross.completed), fg='green')}, "
            f"Pending: {click.style(str(cross.pending), fg='yellow' if cross.pending else 'green')}"
        )
        click.echo()

    done_percent = report.completed_tasks * 100 // report.total_tasks if report.total_tasks else 0
    click.secho("Task Summary", bold=True)
    click.echo(f"  Total tasks:     {click.style(str(report.total_tasks), fg='cyan')}")
    click.echo(
        f"  Completed:       "
        f"{click.style(f'{report.completed_tasks} ({done_percent}%)', fg='green')}"
    )
    click.echo(f"  Pending:         {click.style(str(report.pending_tasks), fg='red')}")
    click.echo()

    if report.is_complete:
        click.echo(f"{click.style('✓', fg='green')} All tasks completed!")
        return

    features_left = sum(1 for f in report.features if f.pending_tasks > 0)
    next_focus = select_next_focus(report)
    if next_focus is not None:
        click.echo(
            f"{click.style('→', fg='yellow')} {report.pending_tasks} tasks remaining "
            f"across {features_left} features"
        )
        click.echo(
            f"  Next focus: {click.style(next_focus.name, fg='cyan')} "
            f"({next_focus.pending_tasks} pending)"
        )
    else:
        click.echo(f"{click.style('→', fg='yellow')} {report.pending_tasks} tasks remaining")


@click.command()
@click.option("--json", "json_output", is_flag=True, help="Print the report as JSON")
@click.option(
    "-p",
    "--plan-file",
    default=None,
    help="Plan file to verify (default: paths.plan_file from config)",
)
def verify(json_output: bool, plan_file: Optional[str]):
    """Report plan progress and how well the plan covers the specs."""
    try:
        config = load_config(Path.cwd())
        impl_dir = Path(config.paths.impl_dir)

        # An explicit --plan-file always gets the single-file report
        if plan_file is None and has_hierarchical_plan(impl_dir):
            hierarchical = generate_hierarchical_report(impl_dir)
            if json_output:
                click.echo(hierarchical.model_dump_json(indent=2))
            else:
                print_hierarchical_report(hierarchical)
            return

        plan_path = Path(plan_file or config.paths.plan_file)

        if not plan_path.is_file():
            if json_output:
                click.echo(
                    json.dumps({"error": "Plan file not found", "path": str(plan_path)}, indent=2)
                )
            else:
                click.echo(f"Plan file not found: {plan_path}", err=True)
                click.echo(
                    f"\nRun {click.style('fresher plan', fg='cyan')} first to create an "
                    "implementation plan.",
                    err=True,
                )
            return

        report = generate_report(plan_path, Path(config.paths.spec_dir))
    except FresherError as e:
        raise click.ClickException(str(e))

    if json_output:
        click.echo(report.model_dump_json(indent=2))
    else:
        print_report(report)
