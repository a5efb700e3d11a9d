"""Tests for the composition root: settings, build_engine and periodic sweeps."""

import os
import subprocess
import sys
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from pydantic import ValidationError

from ticketguard.config import ActionType, AlertType, Priority, Settings, TicketStatus
from ticketguard.main import TicketGuardEngine, build_engine
from ticketguard.sla.domain.entities import SLATracking, TicketSnapshot
from ticketguard.sla.domain.value_objects import DEFAULT_SLA_CONFIGURATIONS
from ticketguard.sla.infrastructure.repositories import InMemoryTicketRepository
from ticketguard.verification.domain.entities import TicketAction

SRC_DIR = Path(__file__).resolve().parents[2] / "src"
CREATED = datetime(2024, 1, 8, 9, 0, tzinfo=timezone.utc)

RULES_ONLY_CONFIG = """
sla_configurations:
  HIGH:
    response_time_minutes: 30
    resolution_time_hours: 8
    escalation_time_hours: 4
alert_rules:
  - id: escalations
    name: Escalations
    conditions:
      - type: ESCALATION_REQUIRED
    actions:
      - type: NOTIFICATION
"""


def _make_ticket(ticket_id: str = "T-1", **changes) -> TicketSnapshot:
    ticket = TicketSnapshot(
        id=ticket_id,
        priority=Priority.HIGH,
        status=TicketStatus.OPEN,
        created_at=CREATED,
        sla_tracking=SLATracking.from_configuration(DEFAULT_SLA_CONFIGURATIONS[Priority.HIGH]),
    )
    return replace(ticket, **changes)


def _settings(**overrides) -> Settings:
    fields = {"sweep_interval_seconds": 0, "environment": "development"}
    fields.update(overrides)
    return Settings(**fields)


@pytest.fixture
def repo() -> InMemoryTicketRepository:
    return InMemoryTicketRepository([_make_ticket()])


@pytest.fixture
def engine(repo, channel, executor) -> TicketGuardEngine:
    return build_engine(
        _settings(),
        ticket_repository=repo,
        action_executor=executor,
        notification_channel=channel,
    )


class TestSettings:
    def test_defaults(self):
        settings = _settings()
        assert settings.business_timezone == "UTC"
        assert settings.primary_security_policy_id == "customer-identity-verification"
        assert settings.decision_cache_ttl_seconds == 60.0

    @pytest.mark.parametrize("overrides", [
        {"environment": "qa"},
        {"sweep_interval_seconds": 5},
        {"business_day_end_hour": 25},
    ])
    def test_invalid_settings(self, overrides):
        with pytest.raises(ValidationError):
            _settings(**overrides)

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("TICKETGUARD_GATE_RETENTION_HOURS", "6")
        assert Settings().gate_retention_hours == 6.0

    def test_import_does_not_validate_environment(self):
        env = dict(os.environ, TICKETGUARD_ENVIRONMENT="prod")
        env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC_DIR), env.get("PYTHONPATH")]))
        result = subprocess.run(
            [sys.executable, "-c", "import ticketguard.main, ticketguard.sla.domain.value_objects"],
            env=env,
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0, result.stderr

    def test_bad_environment_fails_only_when_settings_are_built(self, monkeypatch):
        monkeypatch.setenv("TICKETGUARD_ENVIRONMENT", "prod")
        with pytest.raises(ValidationError):
            Settings()
        assert build_engine(_settings()).settings.environment == "development"


class TestBuildEngine:
    def test_defaults_wire_in_memory_collaborators(self):
        engine = build_engine(_settings())
        assert isinstance(engine.ticket_repository, InMemoryTicketRepository)
        assert engine.scheduler is None
        assert len(engine.policy_engine.get_security_policies()) == 4

    def test_config_file_drives_policies_and_rules(self, tmp_path):
        path = tmp_path / "sla.yaml"
        path.write_text(RULES_ONLY_CONFIG)
        engine = build_engine(_settings(sla_config_path=path))

        assert engine.sla_service.get_sla_configuration(Priority.HIGH).response_time_minutes == 30
        assert [r.id for r in engine.alert_service.get_alert_rules()] == ["escalations"]

    def test_config_reload_replaces_alert_rules(self, tmp_path):
        path = tmp_path / "sla.yaml"
        path.write_text(RULES_ONLY_CONFIG)
        engine = build_engine(_settings(sla_config_path=path))

        path.write_text("")
        assert engine.config_manager.reload()
        assert {r.id for r in engine.alert_service.get_alert_rules()} == {
            "high-priority-sla-breach", "response-time-warning"
        }
        assert engine.sla_service.get_sla_configuration(Priority.HIGH).response_time_minutes == 15


class TestRunSweep:
    def test_sweep_evaluates_tickets_and_alerts(self, engine, repo, channel):
        report = engine.run_sweep(CREATED + timedelta(hours=3))

        assert report.sla.tickets_evaluated == 1
        assert report.sla.escalations == 1
        assert report.deferred_actions_run == 0
        assert repo.get_ticket("T-1").sla_tracking.sla_breached
        assert AlertType.SLA_BREACH in {a.type for a in engine.alert_service.get_active_alerts()}
        assert channel.calls

    def test_deferred_actions_run_on_later_sweep(self, engine):
        engine.run_sweep(CREATED + timedelta(hours=3))
        report = engine.run_sweep(CREATED + timedelta(hours=3, minutes=10))
        assert report.deferred_actions_run == 1

    def test_sweep_purges_cache_and_closed_gates(self, repo, channel, executor):
        engine = build_engine(
            _settings(decision_cache_ttl_seconds=0, gate_retention_hours=1),
            ticket_repository=repo,
            action_executor=executor,
            notification_channel=channel,
        )
        gates = engine.gate_manager
        assert gates.execute_action(
            TicketAction(type=ActionType.RESOLVE, ticket_id="T-1", user_id="agent-1"), now=CREATED
        ).blocked
        gates.update_verification_progress(
            "T-1", "agent-1", {"customerName": True, "username": True}, now=CREATED
        )
        assert len(executor.performed) == 1

        report = engine.run_sweep(CREATED + timedelta(hours=2))
        assert report.cache_entries_purged == 2
        assert report.gates_swept == 1
        assert gates.get_gate("T-1", "agent-1") is None

    def test_sweep_prunes_alert_history(self, engine):
        engine.run_sweep(CREATED + timedelta(hours=3))
        for alert in engine.alert_service.get_active_alerts():
            engine.alert_service.acknowledge_alert(alert.id, "agent-1", now=CREATED + timedelta(hours=3))

        engine.ticket_repository.update_status("T-1", TicketStatus.RESOLVED)
        report = engine.run_sweep(CREATED + timedelta(days=31))
        assert report.sla.tickets_evaluated == 0
        assert report.alerts_pruned == 3


class TestLifecycle:
    def test_start_and_shutdown_scheduler(self, repo):
        engine = build_engine(_settings(sweep_interval_seconds=3600), ticket_repository=repo)
        engine.start(watch_config=False)
        try:
            assert engine.scheduler is not None
            assert engine.scheduler.is_running
        finally:
            engine.shutdown()
        assert engine.scheduler is None

    def test_start_without_interval(self, engine):
        engine.start()
        assert engine.scheduler is None
        engine.shutdown()
