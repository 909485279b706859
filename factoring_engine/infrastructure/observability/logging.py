"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from factoring_engine.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_transition(
    request_id: str,
    company_id: str,
    from_status: Optional[str],
    to_status: str,
    actor_id: Optional[str],
    sequence: int,
) -> None:
    """Log a committed status change for the request audit trail"""
    logging.getLogger("factoring_engine.lifecycle").info(
        "Request status changed",
        extra={
            "request_id": request_id,
            "company_id": company_id,
            "step": "status_changed",
            "from_status": from_status,
            "to_status": to_status,
            "actor_id": actor_id,
            "sequence": sequence,
        },
    )


def log_disbursement(
    request_id: str,
    payment_id: str,
    bank_account_id: str,
    created: bool,
    duration_ms: float,
) -> None:
    """Log disbursement outcome for reconciliation"""
    logging.getLogger("factoring_engine.disbursement").info(
        "Disbursement requested",
        extra={
            "request_id": request_id,
            "payment_id": payment_id,
            "bank_account_id": bank_account_id,
            "step": "disbursement_requested",
            "payment_outcome": "created" if created else "updated",
            "duration_ms": duration_ms,
        },
    )
