"""
Tests for the prefetch-pool command line interface
"""

import json

import pytest
from click.testing import CliRunner

from prefetch_pool.cli import cli


VALID_POLICY = """
sweep_interval: 30
pools:
  - key: home_feed
    kind: native
    capacity: 2
  - key: level_end
    kind: interstitial
    capacity: 1
"""


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def policy_file(tmp_path):
    path = tmp_path / "pools.yaml"
    path.write_text(VALID_POLICY)
    return str(path)


def test_help(runner):
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "validate" in result.output
    assert "run" in result.output


def test_validate_lists_pools(runner, policy_file):
    result = runner.invoke(cli, ["validate", policy_file])

    assert result.exit_code == 0
    assert "✅ 2 pool(s)" in result.output
    assert "home_feed: kind=native capacity=2" in result.output
    assert "stale_age=3600.0s" in result.output
    assert "Sweep interval: 30.0s" in result.output


def test_validate_reports_errors(runner, tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("pools:\n  - key: a\n    capacity: 0\n")

    result = runner.invoke(cli, ["validate", str(path)])

    assert result.exit_code == 1
    assert "❌ [PF1005]" in result.output


def test_dry_run(runner, policy_file):
    result = runner.invoke(cli, [
        "run", policy_file, "--duration", "0.1", "--consume-every", "0.05", "--json-stats"
    ])

    assert result.exit_code == 0, result.output
    assert "🧪" in result.output
    assert "📥 home_feed" in result.output
    assert "📤 home_feed: consumed home_feed-1" in result.output

    stats = json.loads(result.output.split("📊 Pool Statistics:")[1])
    assert set(stats["pools"]) == {"home_feed", "level_end"}
    assert stats["running"] is True
