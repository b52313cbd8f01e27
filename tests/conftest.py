"""
Shared pytest fixtures for Quire tests.

This file is automatically loaded by pytest. Fixtures defined here are
available to all test files without explicit imports.
"""

import os as _os
import pathlib as _pathlib
import typing as _typing

import click.testing as _click_testing
import pytest as _pytest

import quire.config as config

# =============================================================================
# Environment Isolation
# =============================================================================


@_pytest.fixture
def isolated_env(
    tmp_path: _pathlib.Path,
    monkeypatch: _pytest.MonkeyPatch,
) -> _pathlib.Path:
    """
    Isolate tests from QUIRE_* environment variables and user config.

    Points QUIRE_CONFIG_DIR at an empty temporary directory and changes
    into a fresh working directory.

    Returns:
        The user config directory (config.yaml may be written there).
    """
    for key in list(_os.environ):
        if key.startswith("QUIRE_"):
            monkeypatch.delenv(key)

    user_config_dir = tmp_path / "user-config"
    user_config_dir.mkdir()
    monkeypatch.setenv("QUIRE_CONFIG_DIR", str(user_config_dir))

    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)

    return user_config_dir


@_pytest.fixture
def clean_settings(isolated_env: _pathlib.Path) -> config.Settings:
    """Settings instance isolated from environment and .env file."""
    return config.Settings.construct_without_dotenv()


@_pytest.fixture
def cli_runner(isolated_env: _pathlib.Path) -> _click_testing.CliRunner:
    """Click test runner with an isolated environment."""
    return _click_testing.CliRunner()


# =============================================================================
# Template Trees
# =============================================================================


@_pytest.fixture
def write_file(tmp_path: _pathlib.Path) -> _typing.Callable[..., _pathlib.Path]:
    """
    Helper that writes a file below a base directory, creating parents.

    Usage:
        def test_something(write_file, tmp_path):
            write_file(tmp_path / "root", "commands/x.md", "Body")
    """

    def _write(base: _pathlib.Path, relative: str, content: str) -> _pathlib.Path:
        path = base / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


SAMPLE_FILES: dict[str, str] = {
    "commands/create-pr.md": """---
description: Create a pull request
allowed-tools: [Bash, Read]
see-also: [commit]
---

# Create PR

Current status: !`git status`
Title: $ARGUMENTS

Follow the logging guide in [[structured-logging]].
""",
    "commands/commit.md": """# Commit changes

Commit with message $1 on branch {{branch}}.
""",
    "commands/git/Push_Branch.md": """---
description: Push the current branch
references: [missing-doc]
---

Push $1 to origin.
""",
    "skills/structured-logging/SKILL.md": """---
name: structured-logging
description: Write structured logs
author: Jane Doe
version: 1.2
see-also: [code-review]
---

# Structured logging

Use key=value pairs in every log line.
""",
    "skills/code-review.md": """---
description: Review code with these criteria
references: [structured-logging]
---

Check correctness first. Open a PR with [[create-pr]] when done.
""",
}


@_pytest.fixture
def template_root(
    tmp_path: _pathlib.Path,
    write_file: _typing.Callable[..., _pathlib.Path],
) -> _pathlib.Path:
    """
    A template tree with three commands and two skills.

    - create-pr: header, shell + argument placeholders, references commit
      and structured-logging
    - commit: no header, positional + named placeholders
    - git:push-branch: nested command with a broken reference
    - structured-logging: directory skill with author/version
    - code-review: flat skill referencing back (reference cycle)
    """
    root = tmp_path / "templates"
    for relative, content in SAMPLE_FILES.items():
        write_file(root, relative, content)
    return root
