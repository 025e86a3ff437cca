"""
CLI Test Suite

Coverage:
  ledgerdao config   : resolved configuration as JSON
  ledgerdao simulate : scenario replay, --strict exit status, input errors
"""

import json
import os
import sys

import pytest
from click.testing import CliRunner

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from ledgerdao import __version__
from ledgerdao.cli.governance import cli


QUIET_TOML = """
[governance]
quorum = 2
voting_delay_ms = 1000
voting_period_ms = 10000

[logging]
level = "ERROR"
console_output = false
"""


def scenario(steps):
    return {
        "organization": {"id": "dao", "name": "Builders", "token_type": "pass",
                         "creator": "alice", "creator_token": "a1"},
        "tokens": [
            {"token_id": "a1", "owner": "alice", "token_type": "pass"},
            {"token_id": "b1", "owner": "bob", "token_type": "pass"},
        ],
        "steps": steps,
    }


PASSING_STEPS = [
    {"action": "propose", "token": "a1", "name": "Signal", "now": 0},
    {"action": "vote", "proposal": 1, "token": "a1", "vote": "for", "now": 1000},
    {"action": "vote", "proposal": 1, "token": "b1", "vote": "abstain", "now": 1000},
    {"action": "resolve", "proposal": 1, "now": 11000},
]

FAILING_STEPS = [
    {"action": "propose", "token": "a1", "name": "Signal", "now": 0},
    {"action": "resolve", "proposal": 1, "now": 5000},
]


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    for key in ("LEDGERDAO_CONFIG", "LEDGERDAO_QUORUM", "LEDGERDAO_LOG_LEVEL",
                "LEDGERDAO_CREATION_POLICY", "LEDGERDAO_ADMINS"):
        monkeypatch.delenv(key, raising=False)
    config = tmp_path / "ledgerdao.toml"
    config.write_text(QUIET_TOML, encoding="utf-8")
    return tmp_path


def write_scenario(directory, steps, name="scenario.json"):
    path = directory / name
    path.write_text(json.dumps(scenario(steps)), encoding="utf-8")
    return str(path)


class TestConfigCommand:

    def test_prints_resolved_config(self, workspace):
        result = CliRunner().invoke(
            cli, ["config", "--config", str(workspace / "ledgerdao.toml")]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["governance"]["quorum"] == 2
        assert data["logging"]["level"] == "ERROR"

    def test_invalid_config(self, workspace):
        bad = workspace / "bad.toml"
        bad.write_text("[governance]\nquorum = -3\n", encoding="utf-8")
        result = CliRunner().invoke(cli, ["config", "-c", str(bad)])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestSimulateCommand:

    def _run(self, workspace, steps, *extra):
        path = write_scenario(workspace, steps)
        return CliRunner().invoke(
            cli,
            ["simulate", path, "--config", str(workspace / "ledgerdao.toml"), *extra],
        )

    def test_passing_scenario(self, workspace):
        result = self._run(workspace, PASSING_STEPS)
        assert result.exit_code == 0, result.output
        report = json.loads(result.output)
        assert [s["ok"] for s in report["steps"]] == [True] * 4
        assert report["proposals"][0]["status"] == "EXECUTED"
        assert report["organizations"][0]["quorum"] == 2

    def test_failed_step_is_reported(self, workspace):
        result = self._run(workspace, FAILING_STEPS)
        assert result.exit_code == 0
        assert "VotingNotEndedError" in result.output
        assert "1 step(s) failed" in result.output

    def test_strict_exit_status(self, workspace):
        result = self._run(workspace, FAILING_STEPS, "--strict")
        assert result.exit_code == 1

    def test_strict_passes_clean_run(self, workspace):
        result = self._run(workspace, PASSING_STEPS, "--strict")
        assert result.exit_code == 0

    def test_malformed_json(self, workspace):
        path = workspace / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        result = CliRunner().invoke(
            cli, ["simulate", str(path), "-c", str(workspace / "ledgerdao.toml")]
        )
        assert result.exit_code == 1
        assert "Invalid scenario JSON" in result.output

    def test_malformed_scenario(self, workspace):
        result = self._run(workspace, [{"action": "veto"}])
        assert result.exit_code == 1
        assert "Invalid scenario" in result.output

    def test_non_integer_timestamp(self, workspace):
        result = self._run(workspace, [
            {"action": "propose", "token": "a1", "name": "Signal", "now": "soon"},
        ])
        assert result.exit_code == 1
        assert "Invalid scenario" in result.output
        assert "'now'" in result.output
        assert isinstance(result.exception, SystemExit)

    def test_scenario_must_be_object(self, workspace):
        path = workspace / "list.json"
        path.write_text("[]", encoding="utf-8")
        result = CliRunner().invoke(
            cli, ["simulate", str(path), "-c", str(workspace / "ledgerdao.toml")]
        )
        assert result.exit_code == 1
        assert "expected an object" in result.output

    def test_non_finite_amount_is_step_failure(self, workspace):
        result = self._run(workspace, [
            {"action": "propose", "token": "a1", "name": "Grant", "kind": "funding",
             "recipient": "bob", "amount": "Infinity", "now": 0},
        ], "--strict")
        assert result.exit_code == 1
        assert "InvalidProposalShapeError" in result.output

    def test_setup_failure(self, workspace):
        path = workspace / "scenario.json"
        data = scenario([])
        data["organization"]["creator"] = "mallory"
        path.write_text(json.dumps(data), encoding="utf-8")
        result = CliRunner().invoke(
            cli, ["simulate", str(path), "-c", str(workspace / "ledgerdao.toml")]
        )
        assert result.exit_code == 1
        assert "NotAuthorizedError" in result.output

    def test_missing_scenario_file(self, workspace):
        result = CliRunner().invoke(cli, ["simulate", str(workspace / "nope.json")])
        assert result.exit_code == 2
