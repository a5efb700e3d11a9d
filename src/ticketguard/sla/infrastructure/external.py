"""
SLA External Integrations
==========================

- YAML config file loading with watchdog hot-reload
- APScheduler for periodic sweeps
"""

import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import yaml
from apscheduler.schedulers.background import BackgroundScheduler
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from ticketguard.alerts.domain.value_objects import AlertRule, DEFAULT_ALERT_RULES
from ticketguard.config import Priority
from ticketguard.core.exceptions import ConfigurationException
from ticketguard.sla.application.services import ISLAConfigProvider
from ticketguard.sla.domain.value_objects import SLAConfiguration, SLAPolicyTable
from ticketguard.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

ReloadCallback = Callable[["SLAConfigManager"], None]


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for SLA config file changes."""

    def __init__(self, config_manager: "SLAConfigManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        """Handle file modification event."""
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info("Config file changed", extra={"path": str(event.src_path)})
            self.config_manager.reload()


class SLAConfigManager(ISLAConfigProvider):
    """
    Thread-safe SLA configuration manager with hot-reload support.

    The YAML file has two optional sections:

    ``sla_configurations``
        mapping of priority -> SLA configuration; priorities left out keep
        the built-in defaults.
    ``alert_rules``
        list of alert rules replacing the default rule set.

    A missing file means built-in defaults. A reload that fails to parse
    keeps the previous configuration.
    """

    def __init__(self, on_reload: Optional[ReloadCallback] = None):
        self._policy_table = SLAPolicyTable()
        self._alert_rules: Tuple[AlertRule, ...] = DEFAULT_ALERT_RULES
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None
        self._on_reload = on_reload

    def load(self, path: Path) -> SLAPolicyTable:
        """
        Initial configuration load.

        Raises ConfigurationException if the file exists but is invalid.
        """
        self._path = Path(path)
        try:
            policy_table, alert_rules = self._load_from_file(self._path)
        except (yaml.YAMLError, ValidationError, ValueError) as e:
            raise ConfigurationException(
                f"Invalid SLA configuration file: {self._path}",
                {"error": str(e)}
            ) from e

        with self._lock:
            self._policy_table = policy_table
            self._alert_rules = alert_rules
        return policy_table

    def _load_from_file(self, path: Path) -> Tuple[SLAPolicyTable, Tuple[AlertRule, ...]]:
        """Load and parse the YAML config file."""
        if not path.exists():
            logger.warning(
                "SLA config file not found, using defaults",
                extra={"path": str(path)}
            )
            return SLAPolicyTable(), DEFAULT_ALERT_RULES

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError("SLA config file must contain a mapping")

        configurations: Dict[Priority, SLAConfiguration] = {}
        for priority, raw in (data.get("sla_configurations") or {}).items():
            priority = Priority(str(priority).upper())
            fields = {k: v for k, v in (raw or {}).items() if k != "priority"}
            configurations[priority] = SLAConfiguration(priority=priority, **fields)

        raw_rules: Optional[List[dict]] = data.get("alert_rules")
        alert_rules = (
            DEFAULT_ALERT_RULES if raw_rules is None
            else tuple(AlertRule(**rule) for rule in raw_rules)
        )

        return SLAPolicyTable(configurations=configurations), alert_rules

    def reload(self) -> bool:
        """Reload configuration from file."""
        if self._path is None:
            return False

        try:
            policy_table, alert_rules = self._load_from_file(self._path)
        except (OSError, yaml.YAMLError, ValidationError, ValueError) as e:
            logger.error(
                "Failed to reload SLA config, keeping previous configuration",
                extra={"path": str(self._path), "error": str(e)}
            )
            return False

        with self._lock:
            self._policy_table = policy_table
            self._alert_rules = alert_rules
        logger.info("SLA configuration reloaded successfully")

        if self._on_reload is not None:
            try:
                self._on_reload(self)
            except Exception as e:
                logger.error("SLA config reload callback failed", extra={"error": str(e)})
        return True

    def start_watching(self) -> None:
        """
        Start watching the configuration file for changes.

        Skips watching if the file doesn't exist or the platform has no
        file-system notifications.
        """
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                "Config file doesn't exist, skipping file watch",
                extra={"path": str(self._path)}
            )
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(
                handler,
                str(self._path.parent),
                recursive=False
            )
            self._observer.start()
            logger.info("Started watching config file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning(
                "File watching not available, using static config",
                extra={"error": str(e)}
            )
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching the configuration file (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    def get_policy_table(self) -> SLAPolicyTable:
        with self._lock:
            return self._policy_table

    @property
    def alert_rules(self) -> Tuple[AlertRule, ...]:
        with self._lock:
            return self._alert_rules


class SLAScheduler:
    """
    Wrapper for APScheduler driving the periodic sweep.

    Owned by the embedding service; the engine never starts it on its own.
    """

    def __init__(self, interval_seconds: int = 60):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[BackgroundScheduler] = None
        self._running = False

    def start(self, job_func: Callable[[], object]) -> None:
        """Start the scheduler with the given job function."""
        if self._running:
            logger.warning("Sweep scheduler already running")
            return

        self._scheduler = BackgroundScheduler(timezone="UTC")

        self._scheduler.add_job(
            job_func,
            "interval",
            seconds=self.interval_seconds,
            id="ticketguard_sweep",
            name="TicketGuard Sweep Job",
            misfire_grace_time=60,
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )

        self._scheduler.start()
        self._running = True

        logger.info(
            "Sweep scheduler started",
            extra={"interval_seconds": self.interval_seconds}
        )

    def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=True)

        self._running = False
        logger.info("Sweep scheduler stopped")

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running
