"""Invoke tasks for developing Cain.

Every task shells out to ``uv`` so local runs match the CI environment.
"""

from __future__ import annotations

import shlex
import shutil
from collections.abc import Sequence
from pathlib import Path

from invoke import Collection, Context, task
from invoke.exceptions import Exit

PROJECT_ROOT = Path(__file__).parent
DIST_DIR = PROJECT_ROOT / "dist"
SOURCES = ("src", "tests")


def _uv(ctx: Context, args: Sequence[str], *, echo: bool = True) -> None:
    """Run ``uv`` with ``args`` inside the project environment.

    Args:
        ctx: Invoke execution context.
        args: Arguments following the ``uv`` executable.
        echo: Whether to print the command before running it.
    """
    ctx.run(shlex.join(("uv", *args)), echo=echo, pty=True)


@task
def sync(ctx: Context, dev: bool = True) -> None:
    """Install Cain and, by default, its development extra."""
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
        "k": "pytest -k expression for test selection.",
        "path": "File or directory to test (defaults to tests/).",
    }
)
def tests(ctx: Context, k: str = "", path: str = "tests") -> None:
    """Run the pytest suite.

    Args:
        ctx: Invoke execution context.
        k: Expression forwarded to ``pytest -k``.
        path: Test target handed to pytest.
    """
    args = ["run", "pytest"]
    if k:
        args.extend(["-k", k])
    args.append(path)
    _uv(ctx, args)


@task(help={"fix": "Apply Ruff auto-fixes."})
def lint(ctx: Context, fix: bool = False) -> None:
    """Check formatting and lint rules with Ruff."""
    _uv(ctx, ["run", "ruff", "format", "--check", *SOURCES])
    args = ["run", "ruff", "check", *SOURCES]
    if fix:
        args.append("--fix")
    _uv(ctx, args)


@task
def mypy(ctx: Context) -> None:
    """Type-check the package."""
    _uv(ctx, ["run", "mypy", "src"])


@task(help={"command": "Snapshot executable to look for."})
def monolith(ctx: Context, command: str = "monolith") -> None:
    """Verify that the webpage snapshot tool is installed."""
    location = shutil.which(command)
    if location is None:
        raise Exit(f"{command} not found on PATH; install it to record webpages.", code=1)
    ctx.run(shlex.join((location, "--version")), echo=True)


@task
def ci(ctx: Context) -> None:
    """Run the same checks as CI."""
    ctx.invoke(lint)
    ctx.invoke(mypy)
    ctx.invoke(tests)


namespace = Collection(sync, build, tests, lint, mypy, monolith, ci)
