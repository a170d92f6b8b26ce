from __future__ import annotations

"""Operation descriptor registry.

The registry maps a capability id to its immutable `OperationCard`. It is
constructed once at startup and passed by reference to the engine entry
points, so tests can substitute fixture catalogs without touching any
process-wide state.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Union

from pydantic import ValidationError

from capability_router.errors.exceptions import CardNotFoundError

from .types import OperationCard

logger = logging.getLogger(__name__)


class OperationRegistry:
    """
    In-memory mapping of capability ids to operation descriptors.

    Notes:
        - ``register`` refuses to overwrite an existing capability id.
        - ``get`` raises ``CardNotFoundError`` (a ``KeyError``) if the id is missing;
          ``find`` returns ``None`` instead.
    """

    def __init__(self, cards: Optional[Iterable[OperationCard]] = None) -> None:
        """Initialize the registry, registering ``cards`` in order."""
        self._cards: Dict[str, OperationCard] = {}
        for card in cards or ():
            self.register(card)

    def register(self, card: OperationCard) -> None:
        """
        Register an operation descriptor.

        Args:
            card: The descriptor to register.

        Raises:
            ValueError: If a descriptor with the same capability id is already registered.
        """
        if card.capability_id in self._cards:
            raise ValueError(f"Duplicate capability id: {card.capability_id}")
        self._cards[card.capability_id] = card

    def get(self, capability_id: str) -> OperationCard:
        try:
            return self._cards[capability_id]
        except KeyError:
            raise CardNotFoundError(capability_id) from None

    def find(self, capability_id: str) -> Optional[OperationCard]:
        return self._cards.get(capability_id)

    def has(self, capability_id: str) -> bool:
        return capability_id in self._cards

    def ids(self) -> List[str]:
        return sorted(self._cards)

    def __iter__(self) -> Iterator[OperationCard]:
        return iter(self._cards.values())

    def __len__(self) -> int:
        return len(self._cards)

    @classmethod
    def from_directory(cls, path: Union[str, Path]) -> "OperationRegistry":
        """
        Load one descriptor per ``*.json`` file under ``path`` (sorted by file name).

        Args:
            path: Directory holding the descriptor catalog.

        Returns:
            A populated registry.

        Raises:
            ValueError: If a file is not valid JSON, fails descriptor validation,
                or duplicates a capability id.
        """
        registry = cls()
        root = Path(path)
        for file in sorted(root.glob("*.json")):
            try:
                raw = json.loads(file.read_text(encoding="utf-8"))
                card = OperationCard.model_validate(raw)
            except (json.JSONDecodeError, ValidationError) as e:
                raise ValueError(f"Invalid operation card {file.name}: {e}") from e
            registry.register(card)
        logger.debug("OperationRegistry.from_directory: loaded %d cards from %s", len(registry), root)
        return registry
