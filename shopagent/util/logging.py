"""Structured logging utility for the store action pipeline."""

import logging
from typing import Any, Dict, List

SENSITIVE_FIELDS = ['access_token', 'token', 'secret', 'password', 'attachment', 'api_key']


class StructuredLogger:
    """Structured logger for validation, execution, history and undo/redo operations."""

    def __init__(self, name: str = "shopagent"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status in ("failed", "rejected", "error"):
            self.logger.warning(message)
        else:
            self.logger.info(message)

    # Validation
    def log_validation(self, candidate_count: int, accepted_count: int, errors: List[str], source: str = "api"):
        """Log the outcome of validating a candidate action list."""
        log_details = {
            "candidate_count": candidate_count,
            "accepted_count": accepted_count,
            "error_count": len(errors),
            "source": source
        }
        if errors:
            # Keep only the first few error lines, each truncated
            log_details["errors"] = [str(e)[:100] for e in errors[:5]]

        status = "validated" if not errors else "rejected"
        self.log_operation("validation", status, log_details)

    # Execution
    def log_action_executed(self, index: int, kind: str, success: bool, error: str = None):
        """Log a single action dispatch against the store."""
        log_details = {"index": index, "kind": kind}
        if error:
            log_details["error"] = error[:200]

        self.log_operation(f"execute.{kind}", "success" if success else "failed", log_details)

    def log_batch_completed(self, history_id: str, success_count: int, failure_count: int, store_domain: str):
        """Log the end of a batch execution."""
        log_details = {
            "history_id": history_id,
            "success_count": success_count,
            "failure_count": failure_count,
            "store": store_domain
        }
        self.log_operation("execute.batch", "completed", log_details)

    def log_snapshot_degraded(self, collection: str, reason: str, phase: str):
        """Log a collection read that fell back to an empty slice."""
        log_details = {"collection": collection, "phase": phase, "reason": reason[:200]}
        self.log_operation("snapshot.read", "degraded", log_details)

    # History
    def log_history_transition(self, entry_id: str, from_status: str, to_status: str, applied: bool = True):
        """Log a history entry status transition."""
        log_details = {"entry_id": entry_id, "from": from_status, "to": to_status}
        self.log_operation("history.status", "success" if applied else "rejected", log_details)

    def log_replay(self, operation: str, entry_id: str, results: List[Dict[str, Any]]):
        """Log an undo or redo replay summary."""
        flag = "undone" if operation == "undo" else "redone"
        replayed = sum(1 for r in results if r.get(flag))
        log_details = {
            "entry_id": entry_id,
            "actions": len(results),
            "replayed": replayed,
            "skipped_or_failed": len(results) - replayed
        }
        self.log_operation(f"history.{operation}", "completed", log_details)

    # Collaborators
    def log_store_retry(self, endpoint: str, retry_after: float):
        """Log a rate-limited store request that will be retried."""
        self.log_operation("store.rate_limited", "retrying", {"endpoint": endpoint, "retry_after_sec": retry_after})

    def log_generator_call(self, model: str, action_count: int, duration_ms: int, status: str = "success"):
        """Log an action generator round trip."""
        log_details = {"model": model, "action_count": action_count, "duration_ms": duration_ms}
        self.log_operation("generator.generate", status, log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def audit_event(event_type: str, identifiers: Dict[str, Any], payload: Dict[str, Any] = None, sensitive_fields: List[str] = None):
    """General audit event logging with privacy controls."""
    log_details = identifiers.copy() if identifiers else {}

    if payload:
        log_details["payload"] = sanitize_payload(payload, sensitive_fields=sensitive_fields)

    logger.log_operation(event_type.replace(".", "_"), "audit", log_details)


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Sanitize payloads for audit logging."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or k not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        # Truncate long strings
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload
