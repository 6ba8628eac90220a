"""Connection Pool Module - Remembers the transport last used per network."""

import logging
from typing import Any, Dict, Optional

from .types import NetworkInfo

logger = logging.getLogger(__name__)


class TransportCache:
    """Records one transport per network, keyed by name and chain id.

    The cache never replaces a transport a caller hands in. It only records
    the latest one, so a later run can ask to reuse it.
    """

    def __init__(self):
        self._transports: Dict[str, Any] = {}

    @staticmethod
    def cache_key(network: NetworkInfo) -> str:
        return f"{network.name}-{network.chain_id}"

    def get(self, network: NetworkInfo) -> Optional[Any]:
        return self._transports.get(self.cache_key(network))

    def put(self, network: NetworkInfo, transport: Any) -> None:
        """Record ``transport`` as the latest one for a network."""
        key = self.cache_key(network)
        if self._transports.get(key) is not transport:
            logger.debug("Recorded transport for %s", network.name)
        self._transports[key] = transport

    def resolve(self, network: NetworkInfo, transport: Optional[Any]) -> Any:
        """Get the transport a run should use.

        Args:
            network: Network the run targets
            transport: Transport given by the caller, or None to reuse the
                one recorded for the network

        Returns:
            ``transport`` unchanged when given, otherwise the recorded one
            (None if the network has none)
        """
        if transport is None:
            cached = self.get(network)
            if cached is not None:
                logger.debug("Reusing transport for %s", network.name)
            return cached

        self.put(network, transport)
        return transport

    def clear(self) -> None:
        self._transports.clear()
        logger.debug("Transport cache cleared")

    def __len__(self) -> int:
        return len(self._transports)

    def __contains__(self, network: NetworkInfo) -> bool:
        return self.cache_key(network) in self._transports
