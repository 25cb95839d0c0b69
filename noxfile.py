"""Nox sessions for the uc-helper test suite and lint."""

import nox

nox.options.sessions = ["tests", "lint"]
PYTHON = "3.11"
PACKAGES = ("uc_helper", "tetrio_api", "bots", "scripts")


@nox.session(python=PYTHON)
def tests(session):
    """Run pytest with coverage; extra args select tests, e.g. ``-- tests/test_players.py``."""
    session.install("-e", ".[dev]")
    session.run(
        "pytest",
        *(f"--cov={package}" for package in PACKAGES),
        "--cov-branch",
        "--cov-report=term-missing",
        "--cov-fail-under=80",
        *session.posargs,
    )


@nox.session(python=PYTHON)
def lint(session):
    """Check lint and formatting; pass ``-- --fix`` to apply lint fixes."""
    session.install("ruff>=0.1.0")
    session.run("ruff", "check", *PACKAGES, "tests", "noxfile.py", *session.posargs)
    session.run("ruff", "format", "--check", *PACKAGES, "tests", "noxfile.py")
