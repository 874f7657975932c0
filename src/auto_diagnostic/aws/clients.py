from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from ..logging import get_logger
from .session import create_session, make_client

LOG = get_logger(__name__)

ClientFactory = Callable[[str], Any]


class AwsClients:
    """
    Lazily-built, cached AWS service clients for one profile.

    A run that only describes the application never opens an AWS session.
    Each service client is created on first access and reused afterwards.
    """

    def __init__(self, profile: str, *, factory: Optional[ClientFactory] = None) -> None:
        self._profile = profile
        self._factory = factory
        self._session: Any = None
        self._cache: Dict[str, Any] = {}

    def _create(self, service: str) -> Any:
        if self._factory is not None:
            return self._factory(service)
        if self._session is None:
            self._session = create_session(self._profile)
            LOG.debug(
                "AWS session created",
                extra={"profile": self._profile, "region": getattr(self._session, "region_name", None)},
            )
        return make_client(self._session, service)

    def client(self, service: str) -> Any:
        cached = self._cache.get(service)
        if cached is None:
            cached = self._create(service)
            self._cache[service] = cached
        return cached

    @property
    def ec2(self) -> Any:
        return self.client("ec2")

    @property
    def rds(self) -> Any:
        return self.client("rds")

    @property
    def cloudwatch(self) -> Any:
        return self.client("cloudwatch")

    @property
    def logs(self) -> Any:
        return self.client("logs")
