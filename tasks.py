"""Invoke tasks for syncing, testing, linting, and building assetroute.

Every task shells out to `uv` so local runs match the CI setup.
"""

from __future__ import annotations

import shlex
import shutil
from collections.abc import Sequence
from pathlib import Path

from invoke import Collection, Context, task

PROJECT_ROOT = Path(__file__).parent
DIST_DIR = PROJECT_ROOT / "dist"
SOURCE_DIRS = ("src", "tests")


def _uv(ctx: Context, args: Sequence[str], *, dry_run: bool = False) -> None:
    """Run ``uv`` with ``args``, or just print the command on a dry run."""
    command = shlex.join(("uv", *args))
    if dry_run:
        print(f"[dry-run] {command}")
        return
    ctx.run(command, echo=True, pty=True)


@task(help={"dev": "Install the dev extra (pytest, ruff, mypy, invoke)."})
def sync(ctx: Context, dev: bool = True) -> None:
    """Create or refresh the virtual environment."""
    args = ["sync"]
    if dev:
        args.extend(["--extra", "dev"])
    _uv(ctx, args)


@task(help={"clean": "Empty dist/ before building."})
def build(ctx: Context, clean: bool = False) -> None:
    """Build the sdist and wheel into dist/."""
    if clean and DIST_DIR.exists():
        shutil.rmtree(DIST_DIR)
    _uv(ctx, ["build"])


@task(
    help={
        "k": "pytest -k expression.",
        "path": "Test file or directory (defaults to tests/).",
        "options": "Extra flags forwarded to pytest.",
    }
)
def tests(ctx: Context, k: str = "", path: str = "tests", options: str = "") -> None:
    """Run the pytest suite.

    Args:
        ctx: Invoke execution context.
        k: Select tests by keyword expression.
        path: Where pytest starts collecting.
        options: Additional pytest arguments, split shell-style.
    """
    args: list[str] = ["run", "pytest"]
    if k:
        args.extend(["-k", k])
    if options:
        args.extend(shlex.split(options))
    args.append(path)
    _uv(ctx, args)


@task(help={"fix": "Let ruff apply fixes.", "check_format": "Also run ruff format --check."})
def lint(ctx: Context, fix: bool = False, check_format: bool = False) -> None:
    """Lint the sources with ruff."""
    if check_format:
        _uv(ctx, ["run", "ruff", "format", "--check", *SOURCE_DIRS])
    args = ["run", "ruff", "check", *SOURCE_DIRS]
    if fix:
        args.append("--fix")
    _uv(ctx, args)


@task
def mypy(ctx: Context) -> None:
    """Type-check the package."""
    _uv(ctx, ["run", "mypy", "src"])


@task(help={"dry_run": "Print the version change without writing pyproject.toml."})
def bump_version(ctx: Context, part: str = "patch", dry_run: bool = False) -> None:
    """Bump the project version (major, minor, or patch)."""
    args = ["version", "--bump", part]
    if dry_run:
        args.append("--dry-run")
    _uv(ctx, args)


@task
def ci(ctx: Context) -> None:
    """Run lint, type checks, and tests in CI order."""
    ctx.invoke(lint, check_format=True)
    ctx.invoke(mypy)
    ctx.invoke(tests)


namespace = Collection(sync, build, tests, lint, mypy, bump_version, ci)
