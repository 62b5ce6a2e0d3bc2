"""Convenience imports for Alembic metadata discovery."""

from civicsense.models.report import Report, ReportUpdate
from civicsense.models.sla_config import SLAConfig
from civicsense.models.priority_rule import PriorityRule
from civicsense.models.rate_limit import RateLimitRecord
from civicsense.models.escalation import Escalation
from civicsense.models.audit_log import AuditLog
from civicsense.models.feedback import CitizenFeedback
from civicsense.models.scheduler_lock import SchedulerLock  # noqa: F401
