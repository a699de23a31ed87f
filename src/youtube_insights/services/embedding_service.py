"""Embedding generation service with order-preserving batching."""

import asyncio
import logging
from typing import Awaitable, Callable, Iterator, List, Optional, Protocol, Sequence
import numpy as np
from openai import AsyncOpenAI, OpenAIError, RateLimitError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential
)

from ..config import settings
from ..utils.error_handling import (
    ConfigurationError,
    EmbeddingAlignmentError,
    ExternalServiceError,
    RateLimitedError
)

logger = logging.getLogger(__name__)


class EmbeddingClient(Protocol):
    """Provider able to embed a list of texts in one request."""

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        ...


class OpenAIEmbeddingClient:
    """
    Generates embeddings using OpenAI's embedding API.

    Vectors are requested at a fixed dimension so they fit the store's
    ``FLOAT[768]`` columns.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimensions: Optional[int] = None
    ):
        """
        Initialize embedding client.

        Args:
            api_key: OpenAI API key (uses settings if not provided)
            model: Embedding model name (uses settings if not provided)
            dimensions: Output vector size (uses settings if not provided)
        """
        self.api_key = api_key or settings.openai_api_key
        if not self.api_key:
            raise ConfigurationError("OpenAI API key is required", setting="openai_api_key")

        self.client = AsyncOpenAI(api_key=self.api_key)
        self.model = model or settings.embedding_model
        self.dimensions = dimensions or settings.embedding_dimension

        logger.info(f"Initialized embedding client with model: {self.model}")

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Embed one batch of texts.

        Args:
            texts: Input texts, at most one provider request worth

        Returns:
            One vector per text, in input order
        """
        # The API rejects empty strings
        inputs = [text if text and text.strip() else " " for text in texts]

        try:
            response = await self.client.embeddings.create(
                input=inputs,
                model=self.model,
                dimensions=self.dimensions
            )
        except RateLimitError as e:
            raise RateLimitedError(f"Embedding rate limit hit: {e}", service="openai") from e
        except OpenAIError as e:
            raise ExternalServiceError(f"Embedding request failed: {e}", service="openai") from e

        ordered = sorted(response.data, key=lambda item: item.index)
        return [item.embedding for item in ordered]


def batch_generator(items: Sequence[str], batch_size: int) -> Iterator[List[str]]:
    """
    Yield consecutive slices of ``items``.

    Every slice has ``batch_size`` entries except possibly the last one.
    """
    if batch_size <= 0:
        raise ValueError("Batch size must be a positive integer.")

    for i in range(0, len(items), batch_size):
        yield list(items[i:i + batch_size])


class EmbeddingBatcher:
    """
    Embeds an ordered list of texts through bounded provider requests.

    Supports:
    - Fixed-size batches, sent one after another
    - A fixed pause between batches to stay under provider rate limits
    - Optional exponential backoff on rate-limit errors (off by default)
    - All-or-nothing results: output index ``i`` always belongs to ``texts[i]``
    """

    def __init__(
        self,
        client: EmbeddingClient,
        batch_size: Optional[int] = None,
        pacing_seconds: Optional[float] = None,
        max_attempts: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Initialize batcher.

        Args:
            client: Embedding provider
            batch_size: Texts per provider request
            pacing_seconds: Pause between successive requests
            max_attempts: Attempts per batch on rate-limit errors (1 disables retries)
            sleep: Awaitable used for pauses
        """
        self.client = client
        self.batch_size = batch_size if batch_size is not None else settings.embedding_batch_size
        self.pacing_seconds = (
            pacing_seconds if pacing_seconds is not None else settings.embedding_pacing_seconds
        )
        self.max_attempts = max_attempts if max_attempts is not None else settings.embedding_max_attempts
        self._sleep = sleep

        if self.batch_size <= 0:
            raise ValueError("Batch size must be a positive integer.")
        if self.max_attempts <= 0:
            raise ValueError("max_attempts must be a positive integer.")

    async def embed(self, texts: Sequence[str]) -> List[np.ndarray]:
        """
        Generate embeddings for all texts.

        Args:
            texts: Ordered input texts

        Returns:
            One float32 vector per text, same order as ``texts``

        Raises:
            EmbeddingAlignmentError: If a batch returned the wrong number of vectors
            ExternalServiceError: If any batch request failed
        """
        if not texts:
            return []

        embeddings: List[np.ndarray] = []

        try:
            for batch_number, batch in enumerate(batch_generator(texts, self.batch_size)):
                if batch_number > 0 and self.pacing_seconds > 0:
                    await self._sleep(self.pacing_seconds)

                logger.debug(f"Embedding batch {batch_number + 1} ({len(batch)} texts)")
                vectors = await self._embed_with_backoff(batch)

                if len(vectors) != len(batch):
                    raise EmbeddingAlignmentError(
                        expected=len(batch),
                        received=len(vectors),
                        details={"batch": batch_number}
                    )

                embeddings.extend(np.asarray(vector, dtype=np.float32) for vector in vectors)
        except Exception as e:
            logger.error(f"Error embedding batches of strings: {e}")
            raise

        if len(embeddings) != len(texts):
            raise EmbeddingAlignmentError(expected=len(texts), received=len(embeddings))

        logger.info(f"Generated {len(embeddings)} embeddings")
        return embeddings

    async def _embed_with_backoff(self, batch: List[str]) -> List[List[float]]:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type(RateLimitedError),
            sleep=self._sleep,
            reraise=True
        )
        async for attempt in retrying:
            with attempt:
                return await self.client.embed_batch(batch)
