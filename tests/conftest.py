"""Shared pytest helpers."""

from pathlib import Path

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(relative_path: str) -> str:
    """Read a fixture file under tests/fixtures/."""
    return (FIXTURES_DIR / relative_path).read_text(encoding="utf-8")
