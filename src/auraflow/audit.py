"""Structured audit events for authentication activity."""

from collections.abc import Callable, Mapping
from typing import Any

import structlog

audit_logger = structlog.get_logger("auraflow.audit")

AuditSink = Callable[[str, Mapping[str, Any]], None]


def log_event(kind: str, attributes: Mapping[str, Any]) -> None:
    """Emit an audit event. Formatting, masking and storage belong to the log pipeline."""
    audit_logger.info(kind, audit=True, **attributes)
