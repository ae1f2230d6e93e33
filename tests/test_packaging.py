"""
Tests that packaging picks up every subpackage.
"""

from pathlib import Path

from setuptools import find_namespace_packages


ROOT = Path(__file__).resolve().parent.parent


def test_subpackages_without_init_are_discovered():
    packages = set(find_namespace_packages(where=str(ROOT), include=["prototype_gen*"]))
    assert {
        "prototype_gen",
        "prototype_gen.io",
        "prototype_gen.pipeline",
        "prototype_gen.session",
        "prototype_gen.utils",
    } <= packages


def test_pyproject_enables_namespace_discovery():
    text = (ROOT / "pyproject.toml").read_text(encoding="utf-8")
    assert "namespaces = true" in text
