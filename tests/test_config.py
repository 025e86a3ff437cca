"""
Configuration Test Suite

Coverage:
  Defaults   : constants loaded from .env fallbacks
  TOML       : section parsing, missing file, malformed file
  Env vars   : LEDGERDAO_* overrides and config path resolution
  Validation : out-of-range governance / logging values
  Scenario   : JSON scenario replay through the controller
"""

import logging
import os
import sys

import pytest
from rich.highlighter import NullHighlighter
from rich.logging import RichHandler

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from ledgerdao.config import GovernanceConfig, load_config
from ledgerdao.constants import (
    ConfigBool,
    LOG_DATE_FORMAT,
    LOG_FORMAT,
    DEFAULT_CREATION_POLICY,
    DEFAULT_QUORUM,
    DEFAULT_VOTING_DELAY_MS,
    DEFAULT_VOTING_PERIOD_MS,
    parse_bool,
)
from ledgerdao.exceptions import ConfigurationError
from ledgerdao.logger import (
    LedgerDAOLogHighlighter,
    LogManager,
    TerminalSafeFormatter,
    configure_logging,
    get_logger,
)
from ledgerdao.simulation import ScenarioError, ScenarioRunner, replay_scenario


ENV_KEYS = (
    "LEDGERDAO_CONFIG",
    "LEDGERDAO_QUORUM",
    "LEDGERDAO_VOTING_DELAY_MS",
    "LEDGERDAO_VOTING_PERIOD_MS",
    "LEDGERDAO_CREATION_POLICY",
    "LEDGERDAO_ADMINS",
    "LEDGERDAO_LOG_LEVEL",
    "LEDGERDAO_LOG_FILE",
)

SAMPLE_TOML = """
[governance]
quorum = 5
voting_delay_ms = 2000
voting_period_ms = 30000
creation_policy = "admin"
admins = ["0xroot"]

[logging]
level = "debug"
console_output = false
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


def write_config(tmp_path, text=SAMPLE_TOML, name="ledgerdao.toml"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


# ══════════════════════════════════════════════════════════════════════
#  CONSTANTS
# ══════════════════════════════════════════════════════════════════════


class TestConstants:
    """Defaults and .env wrappers."""

    def test_governance_defaults(self):
        assert DEFAULT_QUORUM == 3
        assert DEFAULT_VOTING_DELAY_MS == 86_400_000
        assert DEFAULT_VOTING_PERIOD_MS == 604_800_000
        assert DEFAULT_CREATION_POLICY == "open"

    def test_parse_bool(self):
        assert parse_bool(" TRUE ") is True
        assert parse_bool("false") is False
        assert parse_bool("maybe") == "maybe"
        assert parse_bool("") == ""

    def test_config_bool(self):
        flag = ConfigBool(True, False)
        assert flag == True  # noqa: E712
        assert str(flag) == "True"
        assert flag.default() is False


# ══════════════════════════════════════════════════════════════════════
#  LOADER
# ══════════════════════════════════════════════════════════════════════


class TestLoadConfig:
    """TOML loading and env overrides."""

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = load_config(str(tmp_path / "absent.toml"))
        assert cfg.governance.quorum == DEFAULT_QUORUM
        assert cfg.governance.creation_policy == "open"
        assert cfg.governance.admins == []
        assert cfg.logging.file is None

    def test_loads_sections(self, tmp_path):
        cfg = load_config(str(write_config(tmp_path)))
        assert cfg.governance.quorum == 5
        assert cfg.governance.voting_delay_ms == 2000
        assert cfg.governance.voting_period_ms == 30000
        assert cfg.governance.creation_policy == "admin"
        assert cfg.governance.admins == ["0xroot"]
        assert cfg.logging.level == "DEBUG"
        assert cfg.logging.console_output is False

    def test_default_path_in_cwd(self, tmp_path):
        write_config(tmp_path)
        assert load_config().governance.quorum == 5

    def test_config_env_var_path(self, tmp_path, monkeypatch):
        path = write_config(tmp_path, name="other.toml")
        monkeypatch.setenv("LEDGERDAO_CONFIG", str(path))
        assert load_config().governance.creation_policy == "admin"

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LEDGERDAO_QUORUM", "9")
        monkeypatch.setenv("LEDGERDAO_VOTING_PERIOD_MS", "45000")
        monkeypatch.setenv("LEDGERDAO_ADMINS", "0xa, 0xb,,")
        monkeypatch.setenv("LEDGERDAO_LOG_LEVEL", "warning")
        cfg = load_config(str(write_config(tmp_path)))
        assert cfg.governance.quorum == 9
        assert cfg.governance.voting_period_ms == 45000
        assert cfg.governance.voting_delay_ms == 2000
        assert cfg.governance.admins == ["0xa", "0xb"]
        assert cfg.logging.level == "WARNING"

    def test_env_applies_without_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LEDGERDAO_CREATION_POLICY", "admin")
        cfg = load_config(str(tmp_path / "absent.toml"))
        assert cfg.governance.creation_policy == "admin"

    def test_invalid_toml(self, tmp_path):
        path = write_config(tmp_path, text="[governance\nquorum = ")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            load_config(str(path))

    @pytest.mark.parametrize("body, message", [
        ("[governance]\nquorum = -1\n", "quorum"),
        ("[governance]\nvoting_delay_ms = -5\n", "voting_delay_ms"),
        ("[governance]\nvoting_period_ms = 0\n", "voting_period_ms"),
        ("[governance]\ncreation_policy = \"anyone\"\n", "creation_policy"),
        ("[logging]\nlevel = \"LOUD\"\n", "log level"),
    ])
    def test_validation(self, tmp_path, body, message):
        path = write_config(tmp_path, text=body)
        with pytest.raises(ConfigurationError, match=message):
            load_config(str(path))

    @pytest.mark.parametrize("body, message", [
        ("[governance]\nquorum = \"three\"\n", "quorum must be an integer"),
        ("[governance]\nvoting_period_ms = true\n", "voting_period_ms must be an integer"),
        ("[governance]\nadmins = \"0xroot\"\n", "admins must be a list"),
        ("governance = 5\n", r"\[governance\] must be a table"),
        ("[logging]\nconsole_output = \"yes\"\n", "console_output must be true or false"),
    ])
    def test_malformed_values(self, tmp_path, body, message):
        path = write_config(tmp_path, text=body)
        with pytest.raises(ConfigurationError, match=message):
            load_config(str(path))

    def test_malformed_env_value(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LEDGERDAO_VOTING_DELAY_MS", "a day")
        with pytest.raises(ConfigurationError, match="LEDGERDAO_VOTING_DELAY_MS"):
            load_config(str(write_config(tmp_path)))

    def test_organization_kwargs(self, tmp_path):
        cfg = load_config(str(write_config(tmp_path)))
        assert cfg.organization_kwargs() == {
            "quorum": 5,
            "voting_delay": 2000,
            "voting_period": 30000,
        }

    def test_to_dict_round_trip(self, tmp_path):
        cfg = load_config(str(write_config(tmp_path)))
        again = GovernanceConfig.from_dict(cfg.to_dict())
        assert again.to_dict() == cfg.to_dict()


# ══════════════════════════════════════════════════════════════════════
#  SCENARIO REPLAY
# ══════════════════════════════════════════════════════════════════════


def make_scenario(**overrides):
    scenario = {
        "organization": {
            "id": "dao", "name": "Builders", "token_type": "pass",
            "creator": "alice", "creator_token": "a1",
            "quorum": 3, "voting_delay": 1000, "voting_period": 10000,
        },
        "tokens": [
            {"token_id": "a1", "owner": "alice", "token_type": "pass",
             "attributes": {"origin": "genesis"}},
            {"token_id": "b1", "owner": "bob", "token_type": "pass"},
            {"token_id": "b2", "owner": "bob", "token_type": "pass"},
            {"token_id": "c1", "owner": "carol", "token_type": "pass"},
        ],
        "steps": [
            {"action": "deposit", "amount": "100", "sender": "carol"},
            {"action": "propose", "token": "a1", "name": "Grant", "kind": "funding",
             "recipient": "grantee", "amount": "100", "now": 0},
            {"action": "vote", "proposal": 1, "token": "b1", "vote": "for", "now": 1000},
            {"action": "vote", "proposal": 1, "token": "b2", "vote": "against", "now": 1000},
            {"action": "vote", "proposal": 1, "token": "b2", "vote": "for", "now": 1000},
            {"action": "vote", "proposal": 1, "token": "a1", "vote": "for", "now": 1000},
            {"action": "vote", "proposal": 1, "token": "c1", "vote": "against", "now": 1000},
            {"action": "resolve", "proposal": 1, "now": 11000},
        ],
    }
    scenario.update(overrides)
    return scenario


class TestScenarioReplay:
    """ScenarioRunner end to end."""

    def test_funding_scenario(self):
        runner = ScenarioRunner(make_scenario())
        report = runner.run()

        errors = [(s["step"], s.get("error")) for s in runner.failed_steps]
        assert errors == [(3, "ConflictingVoteDirectionError")]
        assert report["steps"][4]["result"] == "FOR"
        assert report["steps"][-1]["result"] == "EXECUTED"
        assert report["payouts"] == {"grantee": "100"}
        assert report["organizations"][0]["treasury"]["balance"] == "0"
        assert report["proposals"][0]["tally"] == {"FOR": 3, "AGAINST": 1, "ABSTAIN": 0}
        assert report["registry"] == ["dao"]

    def test_scoped_children(self):
        scenario = make_scenario(
            children=[{"id": "dao-genesis", "name": "Genesis", "attribute": "origin",
                       "value": "genesis", "creator": "alice", "creator_token": "a1",
                       "quorum": 1}],
            steps=[
                {"action": "propose", "organization": "dao-genesis", "token": "a1",
                 "name": "Scoped", "now": 0},
                {"action": "vote", "organization": "dao-genesis", "proposal": 1,
                 "token": "b1", "vote": "for", "now": 1000},
                {"action": "vote", "organization": "dao-genesis", "proposal": 1,
                 "token": "a1", "vote": "for", "now": 1000},
                {"action": "resolve", "organization": "dao-genesis", "proposal": 1,
                 "now": 11000},
            ],
        )
        runner = ScenarioRunner(scenario)
        report = runner.run()
        assert runner.failed_steps[0]["error"] == "ScopeMismatchError"
        assert report["steps"][-1]["result"] == "EXECUTED"
        assert report["registry"] == ["dao", "dao-genesis"]

    def test_config_parameters_apply(self, tmp_path):
        cfg = load_config(str(write_config(
            tmp_path, text="[governance]\nquorum = 1\nvoting_delay_ms = 0\n"
        )))
        scenario = make_scenario()
        for key in ("quorum", "voting_delay", "voting_period"):
            scenario["organization"].pop(key)
        runner = ScenarioRunner(scenario, cfg)
        runner.run()
        org = runner.organizations["dao"]
        assert org.quorum == 1
        assert org.voting_delay == 0

    def test_unknown_action(self):
        with pytest.raises(ScenarioError, match="Unknown action"):
            replay_scenario(make_scenario(steps=[{"action": "veto"}]))

    def test_unknown_token(self):
        with pytest.raises(ScenarioError, match="Unknown token"):
            replay_scenario(make_scenario(steps=[
                {"action": "propose", "token": "zz", "name": "x", "now": 0},
            ]))

    def test_missing_organization(self):
        with pytest.raises(ScenarioError, match="organization"):
            replay_scenario({"tokens": [], "steps": []})

    @pytest.mark.parametrize("step, message", [
        ({"action": "propose", "token": "a1", "name": "x", "now": "soon"}, "'now'"),
        ({"action": "vote", "proposal": "first", "token": "a1", "vote": "for",
          "now": 1000}, "'proposal'"),
        ({"action": "resolve", "proposal": 1, "now": None}, "'now'"),
        ({"action": "cancel", "proposal": 1, "identity": "alice", "now": True}, "'now'"),
    ])
    def test_non_integer_fields(self, step, message):
        with pytest.raises(ScenarioError, match=message):
            replay_scenario(make_scenario(steps=[step]))

    def test_non_integer_organization_parameter(self):
        scenario = make_scenario()
        scenario["organization"]["quorum"] = "many"
        with pytest.raises(ScenarioError, match="'quorum'"):
            replay_scenario(scenario)

    @pytest.mark.parametrize("scenario, message", [
        ([], "scenario: expected an object"),
        (make_scenario(steps={}), "steps: expected a list"),
        ({"organization": "dao"}, "organization: expected an object"),
    ])
    def test_wrong_container_types(self, scenario, message):
        with pytest.raises(ScenarioError, match=message):
            replay_scenario(scenario)

    def test_step_must_be_object(self):
        with pytest.raises(ScenarioError, match="step 0"):
            replay_scenario(make_scenario(steps=["deposit"]))

    def test_bad_amounts_are_step_errors(self):
        runner = ScenarioRunner(make_scenario(steps=[
            {"action": "deposit", "amount": "plenty"},
            {"action": "propose", "token": "a1", "name": "Grant", "kind": "funding",
             "recipient": "grantee", "amount": "Infinity", "now": 0},
            {"action": "propose", "token": "a1", "name": "Odd", "kind": "grant", "now": 0},
        ]))
        runner.run()
        assert [s["error"] for s in runner.failed_steps] == [
            "InvalidAmountError",
            "InvalidProposalShapeError",
            "InvalidProposalShapeError",
        ]


# ══════════════════════════════════════════════════════════════════════
#  LOGGING
# ══════════════════════════════════════════════════════════════════════


@pytest.fixture
def restore_logging():
    yield
    configure_logging()


class TestLogging:
    """LogManager handlers and output sanitizing."""

    def test_file_output(self, tmp_path, restore_logging):
        log_file = tmp_path / "logs" / "gov.log"
        configure_logging(log_level="INFO", log_file=log_file,
                          console_output=False, file_output=True)
        get_logger("ledgerdao.tests").info("Proposal #7 EXECUTED")
        for handler in logging.getLogger().handlers:
            handler.flush()
        text = log_file.read_text(encoding="utf-8")
        assert "Proposal #7 EXECUTED" in text
        assert "ledgerdao.tests" in text

    def test_file_output_is_sanitized(self, tmp_path, restore_logging):
        log_file = tmp_path / "gov.log"
        configure_logging(log_file=log_file, console_output=False, file_output=True)
        get_logger("ledgerdao.tests").warning("name \x1b[31mred\x1b[0m\rdone")
        for handler in logging.getLogger().handlers:
            handler.flush()
        text = log_file.read_text(encoding="utf-8")
        assert "\x1b" not in text
        assert "name reddone" in text

    @pytest.mark.parametrize("highlighting, highlighter", [
        (True, LedgerDAOLogHighlighter),
        (False, NullHighlighter),
    ])
    def test_console_highlighting(self, highlighting, highlighter, restore_logging):
        configure_logging(log_level="DEBUG", highlighting=highlighting, file_output=False)
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], RichHandler)
        assert isinstance(handlers[0].highlighter, highlighter)
        assert logging.getLogger().level == logging.DEBUG

    def test_no_handlers_when_disabled(self, restore_logging):
        configure_logging(console_output=False, file_output=False)
        assert logging.getLogger().handlers == []

    def test_sanitize(self):
        assert TerminalSafeFormatter.sanitize("a\x1b[2Jb\x07c\tok") == "abc\tok"
        assert TerminalSafeFormatter.sanitize("") == ""

    def test_invalid_formats_fall_back(self):
        assert LogManager.validate_log_format("(asctime)s") == str(LOG_FORMAT.default())
        assert LogManager.validate_date_format("not a date") == str(LOG_DATE_FORMAT.default())
        assert LogManager.validate_date_format("%Y-%m-%d") == "%Y-%m-%d"
