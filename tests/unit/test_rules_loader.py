"""
Tests for the rules.yaml loader.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from inkwell.components.redirects import RedirectConfig
from inkwell.rules.loader import load_rules


@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent.parent


def test_project_rules_load(project_root: Path) -> None:
    rules = load_rules(project_root / "rules.yaml")

    assert rules.redirects.default_status_code == 301
    assert rules.redirects.max_chain_depth == 10
    assert rules.cache.enabled
    assert rules.cache.max_entries == 10000


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_rules(tmp_path / "nope.yaml")


def test_empty_file_means_defaults(tmp_path: Path) -> None:
    path = tmp_path / "rules.yaml"
    path.write_text("")

    rules = load_rules(path)

    assert rules.redirects.gone_status_code == 410
    assert rules.storage.timeout_seconds == 5.0


def test_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / "rules.yaml"
    path.write_text("redirects: [unclosed")

    with pytest.raises(ValueError, match="Invalid YAML"):
        load_rules(path)


def test_invalid_values(tmp_path: Path) -> None:
    path = tmp_path / "rules.yaml"
    path.write_text("redirects:\n  default_status_code: 303\n")

    with pytest.raises(ValueError, match="Rules validation failed"):
        load_rules(path)


def test_schemes_are_lowercased(tmp_path: Path) -> None:
    path = tmp_path / "rules.yaml"
    path.write_text("redirects:\n  allowed_url_schemes: [HTTPS]\n")

    config = RedirectConfig.from_rules(load_rules(path).redirects)

    assert config.allowed_url_schemes == frozenset({"https"})
