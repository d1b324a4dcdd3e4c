"""Dependency injection for FastAPI endpoints"""

from typing import Dict

from fastapi import Request

from cashflow_engine.config import settings


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_benchmarks() -> Dict[str, float]:
    """Provide the configured category benchmark table"""
    return settings.category_benchmarks
