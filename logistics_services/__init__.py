"""Outer service layer: the gateway and its per-transaction orchestrator."""

from logistics_services.gateway import LogisticsGateway, OperationResult, parse_uuid
from logistics_services.orchestrator import LogisticsOrchestrator

__all__ = [
    "LogisticsGateway",
    "LogisticsOrchestrator",
    "OperationResult",
    "parse_uuid",
]
