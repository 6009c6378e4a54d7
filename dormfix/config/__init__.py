"""
DormFix config: frozen dataclasses loaded from env.

load_postgres_config(), load_triage_config(), load_scheduling_config(),
load_notification_config().
"""
from dormfix.config.notifications import NotificationConfig, load_notification_config
from dormfix.config.postgres import PostgresConfig, load_postgres_config
from dormfix.config.scheduling import SchedulingConfig, load_scheduling_config
from dormfix.config.triage import TriageConfig, load_triage_config

__all__ = [
    "PostgresConfig",
    "load_postgres_config",
    "TriageConfig",
    "load_triage_config",
    "SchedulingConfig",
    "load_scheduling_config",
    "NotificationConfig",
    "load_notification_config",
]
