"""Position relay: ingest live location updates and fan them out over SSE."""
from __future__ import annotations

__version__ = "0.1.0"
