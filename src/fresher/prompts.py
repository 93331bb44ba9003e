"""Prompts handed to the agent at the start of every iteration.

A project can replace the built-in prompt for a mode with
``.fresher/PROMPT.<mode>.md``. Both the built-in and custom prompts may use
the placeholders below; anything else in braces is left untouched.

    {spec_dir} {src_dir} {plan_file} {impl_dir}
    {test_command} {build_command} {lint_command}
"""

import logging
import re
from pathlib import Path

from fresher.config import Config
from fresher.constants import FRESHER_DIR, PROMPT_FILE_TEMPLATE
from fresher.models.state import LoopMode

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{([a-z_]+)\}")

PLANNING_PROMPT = """# Planning Mode

You are analyzing specifications against the current codebase to create an implementation plan.

## Your Task

1. **Read all specifications** in `{spec_dir}/`
2. **Explore the codebase** in `{src_dir}/` to understand what exists
3. **Identify gaps** between specs and implementation
4. **Write the plan** to `{plan_file}` (or a hierarchical `{impl_dir}/` directory with an `{impl_dir}/README.md` index for large projects)

## Constraints

- DO NOT implement anything
- DO NOT make commits
- DO NOT modify source code
- ONLY output the implementation plan

## Plan Format

```markdown
# Implementation Plan

## Priority 1: Critical Path
- [ ] Task description (refs: {spec_dir}/foo.md)
  - Dependencies: none
  - Complexity: low/medium/high

## Priority 2: Core Features
...
```

## Important

- Assume specs describe INTENT, not reality
- Always verify against actual code before concluding something is implemented
- Tasks should be small enough to complete in one building iteration
- Include spec references for traceability
"""

BUILDING_PROMPT = """# Building Mode

You are implementing tasks from the existing implementation plan.

## Your Task

1. **Read the plan**: `{impl_dir}/README.md` if it exists, otherwise `{plan_file}`
2. **Pick the first unchecked task** (`- [ ]`)
3. **Investigate** relevant code (don't assume it is not implemented)
4. **Implement** the task completely
5. **Validate** with tests and builds
6. **Update** the plan: change `- [ ]` to `- [x]` and note discoveries
7. **Commit** the change

## Constraints

- ONE task per iteration
- Must pass all validation before committing
- Update `.fresher/AGENTS.md` if you discover operational knowledge

## Validation

- Tests: `{test_command}`
- Build: `{build_command}`
- Lint: `{lint_command}`

If validation fails, fix the issues and re-run. Do not commit until passing.

## Important

- Quality over speed: one well-implemented task is better than several broken ones
- If stuck on a task, document the blocker in the plan and move on
"""

_DEFAULT_PROMPTS = {
    LoopMode.PLANNING: PLANNING_PROMPT,
    LoopMode.BUILDING: BUILDING_PROMPT,
}


def prompt_override_path(mode: LoopMode, project_dir: Path) -> Path:
    return Path(project_dir) / FRESHER_DIR / PROMPT_FILE_TEMPLATE.format(mode=mode.value)


def prompt_variables(config: Config) -> dict[str, str]:
    not_configured = "(not configured)"
    return {
        "spec_dir": config.paths.spec_dir,
        "src_dir": config.paths.src_dir,
        "plan_file": config.paths.plan_file,
        "impl_dir": config.paths.impl_dir,
        "test_command": config.commands.test or not_configured,
        "build_command": config.commands.build or not_configured,
        "lint_command": config.commands.lint or not_configured,
    }


def render_prompt(template: str, variables: dict[str, str]) -> str:
    """Substitute known placeholders; unknown ``{...}`` text is kept verbatim."""

    def _replace(match: re.Match) -> str:
        return variables.get(match.group(1), match.group(0))

    return PLACEHOLDER_PATTERN.sub(_replace, template)


def get_prompt(mode: LoopMode, project_dir: Path, config: Config) -> str:
    override = prompt_override_path(mode, project_dir)
    if override.is_file():
        logger.info(f"Using custom prompt {override}")
        template = override.read_text(encoding="utf-8")
    else:
        template = _DEFAULT_PROMPTS[mode]
    return render_prompt(template, prompt_variables(config))
