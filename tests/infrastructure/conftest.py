"""Pytest fixtures for package structure tests."""

from pathlib import Path

import pytest


@pytest.fixture
def package_root():
    """Return the aws_modules package directory."""
    return Path(__file__).parent.parent.parent / "aws_modules"


@pytest.fixture
def python_files_in_package(package_root):
    """Return all Python files in the aws_modules package."""
    return [f for f in package_root.rglob("*.py") if "__pycache__" not in str(f)]
