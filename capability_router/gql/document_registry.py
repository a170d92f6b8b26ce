from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, Mapping, Optional, Union

from capability_router.errors.exceptions import BatchBuildError, DocumentNotFoundError
from capability_router.registry.types import GraphqlConfig, LookupSpec

from .batch import parse_operation

logger = logging.getLogger(__name__)


class DocumentRegistry:
    """
    Operation name to GraphQL document text.

    Documents may also be looked up by the reference a descriptor carries
    (``documentPath``); references are matched on their relative path first
    and on their file name second.
    """

    def __init__(self, documents: Optional[Mapping[str, str]] = None) -> None:
        self._by_name: Dict[str, str] = {}
        self._by_path: Dict[str, str] = {}
        for name, document in (documents or {}).items():
            self.register(name, document)

    def register(self, operation_name: str, document: str, *, path: Optional[str] = None) -> None:
        existing = self._by_name.get(operation_name)
        if existing is not None and existing != document:
            raise ValueError(f"Conflicting document registered for operation '{operation_name}'")
        self._by_name[operation_name] = document
        if path:
            self._by_path[PurePosixPath(path).as_posix()] = document

    def register_document(self, document: str, *, path: Optional[str] = None) -> str:
        """Register ``document`` under the operation name it declares and return that name."""
        name = parse_operation(document).name
        if not name:
            raise ValueError("Anonymous operations cannot be registered")
        self.register(name, document, path=path)
        return name

    def get(self, operation_name: str) -> str:
        try:
            return self._by_name[operation_name]
        except KeyError:
            raise DocumentNotFoundError(operation_name) from None

    def has(self, operation_name: str) -> bool:
        return operation_name in self._by_name

    def names(self) -> Iterable[str]:
        return sorted(self._by_name)

    def load_directory(self, path: Union[str, Path]) -> int:
        """Register every ``*.graphql`` file under ``path``; returns how many were loaded."""
        root = Path(path)
        loaded = 0
        for file in sorted(root.rglob("*.graphql")):
            text = file.read_text(encoding="utf-8")
            try:
                name = self.register_document(text, path=file.relative_to(root).as_posix())
            except (BatchBuildError, ValueError) as e:
                raise ValueError(f"Invalid GraphQL document {file}: {e}") from e
            logger.debug("DocumentRegistry.load_directory: %s -> %s", file.name, name)
            loaded += 1
        return loaded

    def resolve(self, config: Union[GraphqlConfig, LookupSpec]) -> str:
        """Find the document for a descriptor's GraphQL block or lookup block."""
        if config.operation_name in self._by_name:
            return self._by_name[config.operation_name]
        reference = PurePosixPath(config.document_path)
        document = self._by_path.get(reference.as_posix())
        if document is None:
            for registered, text in self._by_path.items():
                if PurePosixPath(registered).name == reference.name:
                    document = text
                    break
        if document is None:
            raise DocumentNotFoundError(config.operation_name)
        return document
