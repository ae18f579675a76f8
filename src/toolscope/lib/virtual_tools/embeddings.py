"""Tool embedding store and similarity lookup.

This module answers "which of these available tools are most relevant to a
query" for the virtual tool grouper.

Key components:
- EmbeddingsComputer: Protocol for the external embedding service
- SemanticKernelEmbeddingsComputer: EmbeddingsComputer backed by a Semantic
  Kernel embedding generator
- PrecomputedToolEmbeddingsCache: Lazily loaded snapshot of tool vectors
  shipped with the application
- ToolEmbeddingsComputer: Combines the snapshot, on-demand backfill through
  the embedding service, and similarity ranking

Vectors computed on demand are cached in memory for the lifetime of the
process. They are never written back to the snapshot.
"""

import asyncio
import json
from collections.abc import Callable, Iterable
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from toolscope.lib.cancellation import NONE_TOKEN, CancellationToken
from toolscope.lib.errors import CancellationError, EmbeddingServiceError
from toolscope.lib.logging_config import get_logger
from toolscope.lib.virtual_tools.ranking import (
    EmbeddingVector,
    RankedEmbedding,
    rank_embeddings,
)

if TYPE_CHECKING:
    from semantic_kernel.connectors.ai.embedding_generator_base import (
        EmbeddingGeneratorBase,
    )

logger = get_logger(__name__)

SNAPSHOT_RESOURCE = "tool_embeddings.json"

Ranker = Callable[
    [EmbeddingVector, list[tuple[str, EmbeddingVector]], int], list[RankedEmbedding]
]


@runtime_checkable
class EmbeddingsComputer(Protocol):
    """External service that turns texts into embedding vectors."""

    async def compute_embeddings(
        self,
        embedding_type: str,
        texts: list[str],
        token: CancellationToken = NONE_TOKEN,
    ) -> list[EmbeddingVector] | None:
        """Compute one vector per text, aligned with ``texts``.

        Returns:
            The vectors, or None if the service could not produce them.
        """
        ...


class SemanticKernelEmbeddingsComputer:
    """EmbeddingsComputer backed by a Semantic Kernel embedding generator.

    The generator is bound to one model, so ``embedding_type`` is only used
    for logging.
    """

    def __init__(self, embedding_service: "EmbeddingGeneratorBase") -> None:
        self._embedding_service = embedding_service

    async def compute_embeddings(
        self,
        embedding_type: str,
        texts: list[str],
        token: CancellationToken = NONE_TOKEN,
    ) -> list[EmbeddingVector] | None:
        token.raise_if_cancelled()
        if not texts:
            return []

        try:
            embeddings = await self._embedding_service.generate_embeddings(texts)
        except Exception as e:
            logger.warning(f"Failed to generate {embedding_type} embeddings: {e}")
            return None

        vectors = [[float(x) for x in embedding] for embedding in embeddings]
        logger.debug(f"Generated {len(vectors)} {embedding_type} embeddings")
        return vectors


class PrecomputedToolEmbeddingsCache:
    """Snapshot of tool embeddings computed ahead of time.

    The snapshot is a JSON document::

        {
          "version": "0.1.0",
          "embedding_type": "text-embedding-3-small-512",
          "embeddings": {"tool_name": [0.1, 0.2, ...]}
        }

    A snapshot built for a different host version is still used (tool
    descriptions rarely change between releases). A snapshot built with a
    different embedding model is discarded because its vectors are not
    comparable with freshly computed ones.
    """

    def __init__(
        self,
        path: Path | None = None,
        embedding_type: str | None = None,
        app_version: str | None = None,
    ) -> None:
        """Create a snapshot reader.

        Args:
            path: Snapshot file. Defaults to the snapshot bundled with the
                package.
            embedding_type: Expected embedding model; None accepts any.
            app_version: Host application version the snapshot should match.
        """
        self.path = path
        self.embedding_type = embedding_type
        self.app_version = app_version
        self._embeddings: dict[str, EmbeddingVector] | None = None

    async def get_embeddings(self) -> dict[str, EmbeddingVector]:
        """Return the snapshot, loading it on first use.

        Raises:
            OSError: If the snapshot file cannot be read.
            ValueError: If the snapshot is not valid JSON of the expected shape.
        """
        if self._embeddings is None:
            self._embeddings = await asyncio.to_thread(self._load)
        return self._embeddings

    def _read_text(self) -> str:
        if self.path is not None:
            return self.path.read_text(encoding="utf-8")
        resource = resources.files("toolscope").joinpath("data", SNAPSHOT_RESOURCE)
        return resource.read_text(encoding="utf-8")

    def _load(self) -> dict[str, EmbeddingVector]:
        data: Any = json.loads(self._read_text())
        if not isinstance(data, dict) or not isinstance(
            data.get("embeddings", {}), dict
        ):
            raise ValueError("Tool embeddings snapshot must be a JSON object")

        snapshot_type = data.get("embedding_type")
        expected_type = self.embedding_type
        if expected_type and snapshot_type and snapshot_type != expected_type:
            logger.warning(
                f"Ignoring tool embeddings snapshot built with {snapshot_type}, "
                f"expected {expected_type}"
            )
            return {}

        snapshot_version = data.get("version")
        if self.app_version and snapshot_version != self.app_version:
            logger.debug(
                f"Tool embeddings snapshot version {snapshot_version} does not match "
                f"application version {self.app_version}"
            )

        embeddings = {
            name: [float(x) for x in vector]
            for name, vector in data.get("embeddings", {}).items()
        }
        logger.debug(f"Loaded {len(embeddings)} precomputed tool embeddings")
        return embeddings


class ToolEmbeddingsComputer:
    """Ranks available tools by embedding similarity to a query.

    Attributes:
        embeddings_cache: Precomputed snapshot used to seed the store.
        embeddings_computer: Service used to backfill missing vectors.
        embedding_type: Embedding model identifier passed to the service.
    """

    def __init__(
        self,
        embeddings_cache: PrecomputedToolEmbeddingsCache,
        embeddings_computer: EmbeddingsComputer,
        embedding_type: str,
        ranker: Ranker = rank_embeddings,
    ) -> None:
        self.embeddings_cache = embeddings_cache
        self.embeddings_computer = embeddings_computer
        self.embedding_type = embedding_type
        self._ranker = ranker
        self._embeddings: dict[str, EmbeddingVector] = {}
        self._initialized = False

    async def _ensure_initialized(self) -> None:
        if self._initialized:
            return

        try:
            snapshot = await self.embeddings_cache.get_embeddings()
            self._embeddings = {**snapshot, **self._embeddings}
        except Exception as e:
            logger.warning(f"Failed to load precomputed tool embeddings: {e}")
        self._initialized = True

    async def _compute_missing_embeddings(
        self, names: list[str], token: CancellationToken
    ) -> None:
        """Backfill vectors for ``names`` in a single service call.

        A response that does not contain exactly one vector per name is
        discarded entirely.
        """
        try:
            vectors = await self.embeddings_computer.compute_embeddings(
                self.embedding_type, names, token
            )
            if vectors is None or len(vectors) != len(names):
                raise EmbeddingServiceError(
                    "Embedding service returned a mismatched response",
                    requested=len(names),
                    received=0 if vectors is None else len(vectors),
                )
        except CancellationError:
            raise
        except Exception as e:
            logger.warning(f"Failed to compute embeddings for {len(names)} tools: {e}")
            return

        for name, vector in zip(names, vectors, strict=True):
            self._embeddings[name] = vector
        logger.debug(f"Computed embeddings for {len(names)} tools")

    async def retrieve_similar_embeddings_for_available_tools(
        self,
        query_embedding: EmbeddingVector,
        available_tools: Iterable[str],
        count: int,
        token: CancellationToken = NONE_TOKEN,
    ) -> list[str]:
        """Return the names of the available tools closest to the query.

        Args:
            query_embedding: Embedding of the user query.
            available_tools: Tool names eligible for ranking.
            count: Maximum number of names to return.
            token: Cancellation token; a cancelled call returns an empty list.

        Returns:
            Tool names ordered from most to least similar. Tools without a
            vector are left out.
        """
        names = list(dict.fromkeys(available_tools))
        if not names:
            return []

        await self._ensure_initialized()

        missing = [name for name in names if name not in self._embeddings]
        if missing:
            if token.is_cancellation_requested:
                return []
            try:
                await self._compute_missing_embeddings(missing, token)
            except CancellationError:
                logger.debug("Tool embedding computation cancelled")
                return []

        if token.is_cancellation_requested:
            return []

        corpus = [
            (name, self._embeddings[name]) for name in names if name in self._embeddings
        ]
        ranked = self._ranker(query_embedding, corpus, count)
        return [r.key for r in ranked]
