"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from crediario_ledger.config import settings
from crediario_ledger.domain.models import Reconciliation


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


def log_ledger_event(
    request_id: str,
    operation: str,
    payment_id: Optional[int],
    movement_kind: Optional[str],
    amount_cents: Optional[int],
    duration_ms: float,
    credit_sale_id: Optional[int] = None,
) -> None:
    """Log structured outcome of a ledger write for audit trails"""
    logging.info(
        "Ledger operation completed",
        extra={
            "request_id": request_id,
            "step": f"payment_{operation}",
            "payment_id": payment_id,
            "movement_kind": movement_kind,
            "amount_cents": amount_cents,
            "credit_sale_id": credit_sale_id,
            "duration_ms": duration_ms,
        },
    )


def log_balance_drift(request_id: str, reconciliation: Reconciliation) -> None:
    """Stored balance disagrees with opening balance + journal; needs manual review"""
    logging.error(
        "Account balance drift detected",
        extra={
            "request_id": request_id,
            "account_id": reconciliation.account_id,
            "current_balance_cents": reconciliation.current_balance_cents,
            "expected_balance_cents": reconciliation.expected_balance_cents,
            "drift_cents": reconciliation.drift_cents,
        },
    )
