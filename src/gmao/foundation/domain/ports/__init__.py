"""Domain port interfaces for hexagonal architecture.

Ports define abstract interfaces that the domain layer uses to interact
with external services. Implementations (adapters) live in infrastructure.
"""

from gmao.foundation.domain.ports.data_store import DataStorePort, Row

__all__ = ["DataStorePort", "Row"]
