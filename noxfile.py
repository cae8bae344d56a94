"""Nox sessions for the verification bot."""

import nox

nox.options.sessions = ["tests", "lint"]
PYTHON = "3.11"
PACKAGES = ["bots", "kosen_verifier"]


@nox.session(python=PYTHON)
def tests(session):
    """Run the test suite with coverage over both packages."""
    session.install("-e", ".[dev]")
    session.run(
        "pytest",
        *[f"--cov={package}" for package in PACKAGES],
        "--cov-report=term-missing",
        "--cov-fail-under=80",
        "-v",
        *session.posargs,
    )


@nox.session(python=PYTHON)
def lint(session):
    """Check style with ruff."""
    session.install("ruff>=0.1.0")
    session.run("ruff", "check", *PACKAGES, "tests", "noxfile.py")
    session.run("ruff", "format", "--check", *PACKAGES, "tests", "noxfile.py")


@nox.session(python=PYTHON)
def format_code(session):
    """Apply ruff formatting and autofixes."""
    session.install("ruff>=0.1.0")
    session.run("ruff", "format", *PACKAGES, "tests", "noxfile.py")
    session.run("ruff", "check", "--fix", *PACKAGES, "tests", "noxfile.py")
