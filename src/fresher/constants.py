"""Constants for the fresher loop runner.

This module defines the fixed names used throughout fresher: on-disk layout
of the ``.fresher/`` directory, the agent CLI invocation, hook exit codes and
the environment variable prefix shared by configuration and hooks.

Fresher runs an external coding agent (Claude Code) once per iteration with a
fresh context, deciding after each iteration whether another one is needed.
"""

from pathlib import Path

# =============================================================================
# Project Directory Layout
# =============================================================================
# Everything fresher owns inside a project lives under this directory
FRESHER_DIR = Path(".fresher")

# Persisted run state (JSON), rewritten atomically after every mutation
STATE_FILE = FRESHER_DIR / ".state"

# Lifecycle hook scripts: .fresher/hooks/{started,next_iteration,finished}
HOOKS_DIR = FRESHER_DIR / "hooks"

# Optional project config and prompt overrides
CONFIG_FILE = FRESHER_DIR / "config.toml"
AGENTS_FILE = FRESHER_DIR / "AGENTS.md"
PROMPT_FILE_TEMPLATE = "PROMPT.{mode}.md"

# Default document locations (overridable through config)
DEFAULT_PLAN_FILE = "IMPLEMENTATION_PLAN.md"
DEFAULT_SPEC_DIR = "specs"
DEFAULT_SRC_DIR = "src"
DEFAULT_IMPL_DIR = "impl"
DEFAULT_LOG_DIR = ".fresher/logs"

# =============================================================================
# Agent CLI Configuration
# =============================================================================
CLAUDE_COMMAND = "claude"
DEFAULT_MODEL = "sonnet"
DEFAULT_MAX_TURNS = 50

# Rendering limits for the live transcript
TOOL_RESULT_PREVIEW_CHARS = 200
BASH_COMMAND_PREVIEW_CHARS = 100

# Bytes requested per read from the agent's stdout pipe
STREAM_CHUNK_SIZE = 8192

# Seconds to wait for the stream reader after the agent exits
READER_JOIN_TIMEOUT = 5.0

# =============================================================================
# Hook Configuration
# =============================================================================
HOOK_STARTED = "started"
HOOK_NEXT_ITERATION = "next_iteration"
HOOK_FINISHED = "finished"

# Exit codes understood from hook scripts; anything else is an error
HOOK_CONTINUE = 0
HOOK_SKIP = 1
HOOK_ABORT = 2

DEFAULT_HOOK_TIMEOUT = 30

# =============================================================================
# Environment
# =============================================================================
# Prefix for config overrides and for variables exported to hooks
ENV_PREFIX = "FRESHER_"

# Markers set by container entrypoints; see utils/environment.py
CONTAINER_MARKER_VARS = ("FRESHER_IN_DOCKER", "DEVCONTAINER")

VERSION = "0.1.0"
