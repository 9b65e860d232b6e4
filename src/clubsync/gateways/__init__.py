"""External system gateways -- pluggable Source and Sink contracts.

Provides abstract interfaces with concrete implementations:
- SourceGateway / AbcFinancialGateway: system of record (prospects, POS, members)
- SinkGateway / LeadConnectorGateway: CRM (contact search, create, tag)
"""

from src.clubsync.gateways.abc_financial import AbcFinancialGateway
from src.clubsync.gateways.leadconnector import LeadConnectorGateway
from src.clubsync.gateways.sink import SinkGateway
from src.clubsync.gateways.source import SourceGateway

__all__ = [
    "SourceGateway",
    "SinkGateway",
    "AbcFinancialGateway",
    "LeadConnectorGateway",
]
