from dataclasses import dataclass, field
from typing import Mapping, Optional

from .util import clamp


@dataclass
class Settings:
    """
    Knobs for a dispatcher built by `courier.create()`.
    """

    timeout: Optional[float] = 10.0
    """
    Seconds to wait for a complete response when the request sets none.
    """

    retry_ceiling: int = 1
    """
    Additional transport attempts allowed after the first failure. Clamped to
    be between 0 and 10.
    """

    retry_backoff: float = 0.0
    retry_non_idempotent: bool = False
    retry_network_errors: bool = False

    cache_max_entries: int = 256
    cache_max_age: Optional[float] = None
    """
    Seconds a cached body stays fresh. `None` keeps it until evicted or
    invalidated.
    """

    base_url: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError('timeout must be positive, got {}'.format(self.timeout))
        if self.retry_backoff < 0:
            raise ValueError('retry_backoff must not be negative, got {}'.format(self.retry_backoff))
        self.retry_ceiling = clamp(self.retry_ceiling, 0, 10)
