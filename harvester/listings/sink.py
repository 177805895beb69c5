"""Destinations for a finished listings snapshot file."""
import logging
from pathlib import Path
from typing import Optional, Protocol

from openai import AsyncOpenAI, OpenAIError

log = logging.getLogger("listings")


class ListingSink(Protocol):
    async def upload(self, path: str) -> bool:
        ...


class NullSink:
    """Keeps the snapshot on disk only."""

    async def upload(self, path: str) -> bool:
        log.info("No index configured; keeping %s locally.", path)
        return True


class VectorStoreSink:
    """
    Upload the snapshot to an OpenAI vector store so the chat assistant can
    search it. The API key comes from OPENAI_API_KEY unless a client is given.
    """

    def __init__(self, vector_store_id: str, client: Optional[AsyncOpenAI] = None) -> None:
        self.vector_store_id = vector_store_id
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI()
        return self._client

    async def upload(self, path: str) -> bool:
        try:
            with open(path, "rb") as fh:
                uploaded = await self.client.files.create(file=(Path(path).name, fh.read()), purpose="assistants")
            vs_file = await self.client.vector_stores.files.create(
                vector_store_id=self.vector_store_id,
                file_id=uploaded.id,
            )
        except (OpenAIError, OSError) as e:
            log.error("Error uploading %s to vector store %s: %s", path, self.vector_store_id, e)
            return False
        log.info("Uploaded %s as %s to vector store %s", path, vs_file.id, self.vector_store_id)
        return True
