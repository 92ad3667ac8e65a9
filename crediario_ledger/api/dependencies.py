"""Dependency injection for FastAPI endpoints"""

from datetime import date

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from crediario_ledger.bootstrap import LedgerServices, build_services
from crediario_ledger.infrastructure.database.session import get_db


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_services(db: Session = Depends(get_db)) -> LedgerServices:
    """Ledger services bound to the request's session"""
    return build_services(db)


def get_today() -> date:
    """Reference date for overdue projections"""
    return date.today()
