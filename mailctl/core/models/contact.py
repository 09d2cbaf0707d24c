"""Contact domain model"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class Contact:
    """One address book entry."""

    id: str
    name: str
    email: str
    group: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
