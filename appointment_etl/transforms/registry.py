"""
Registry mapping client identifiers to transform strategies.
"""

from typing import Callable, Iterable

from appointment_etl.core.models import ClientProfile
from appointment_etl.observability.logger import get_logger

from .base_strategy import GenericStrategy, TransformStrategy
from .bracketed_codes import BracketedCodeStrategy
from .status_sync import AppointmentStatusSync, StatusSyncStrategy

logger = get_logger(__name__)

StrategyFactory = Callable[[int | None], TransformStrategy]


class StrategyRegistry:
    """
    Builds a fresh transform strategy for a client on every call.

    Clients are bound to strategy names (usually from their profiles); strategy
    names resolve to factories. Unknown clients fall back to the generic strategy.
    """

    DEFAULT_STRATEGY = GenericStrategy.name

    def __init__(self, status_sync: AppointmentStatusSync | None = None):
        """
        Args:
            status_sync: Collaborator required by the status_sync strategy
        """
        self.status_sync = status_sync
        self._factories: dict[str, StrategyFactory] = {
            GenericStrategy.name: lambda client_key: GenericStrategy(),
            BracketedCodeStrategy.name: lambda client_key: BracketedCodeStrategy(),
            StatusSyncStrategy.name: self._build_status_sync,
        }
        self._clients: dict[str, str] = {}

    @property
    def strategy_names(self) -> list[str]:
        return sorted(self._factories)

    def register_strategy(self, name: str, factory: StrategyFactory) -> None:
        """Add or replace a named strategy factory."""
        self._factories[name] = factory

    def register(self, client_id: str, strategy_name: str) -> None:
        """
        Bind a client to a strategy.

        Raises:
            ValueError: If the strategy name is unknown
        """
        if strategy_name not in self._factories:
            raise ValueError(
                f"Unknown transform '{strategy_name}' for client {client_id}. "
                f"Known transforms: {', '.join(self.strategy_names)}"
            )
        self._clients[client_id.lower()] = strategy_name

    def register_profiles(self, profiles: Iterable[ClientProfile]) -> "StrategyRegistry":
        for profile in profiles:
            self.register(profile.client_id, profile.transform)
        return self

    def strategy_name_for(self, client_id: str) -> str:
        return self._clients.get(client_id.lower(), self.DEFAULT_STRATEGY)

    def create(self, client_id: str, client_key: int | None = None) -> TransformStrategy:
        """
        Build the strategy for a client.

        Args:
            client_id: Client identifier (case-insensitive)
            client_key: Client database key, for strategies that call downstream

        Returns:
            New strategy instance
        """
        name = self.strategy_name_for(client_id)
        strategy = self._factories[name](client_key)
        logger.debug("Selected transform strategy", extra={"client_id": client_id, "strategy": name})
        return strategy

    def _build_status_sync(self, client_key: int | None) -> TransformStrategy:
        if self.status_sync is None:
            raise RuntimeError("The status_sync transform needs a status sync collaborator")
        if client_key is None:
            raise ValueError("The status_sync transform needs the client database key")
        return StatusSyncStrategy(self.status_sync, client_key)
