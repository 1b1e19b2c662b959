import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
import httpx
from core.entities import PipelineConfig
from util.constants import ExternalURIs
from util.errors import ArtifactStoreError

logger = logging.getLogger(__name__)


class ArtifactStore(ABC):
    """
    Materializes a finished remote artifact and returns a reference callers can
    dereference. Any failure raises ArtifactStoreError.
    """

    def __init__(
        self,
        http_timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._http_timeout = http_timeout
        self._transport = transport

    async def _download(self, artifact_url: str) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self._http_timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                res = await client.get(artifact_url)
        except httpx.RequestError as e:
            logger.error("artifact.download.request_error err=%s", type(e).__name__)
            raise ArtifactStoreError(
                f"Failed to download image: {type(e).__name__}"
            ) from e

        if not res.is_success:
            logger.error("artifact.download.bad_status status=%d", res.status_code)
            raise ArtifactStoreError(f"Failed to download image: {res.reason_phrase}")
        return res.content

    @abstractmethod
    async def save(self, artifact_url: str, filename: str) -> str: ...


class PassthroughArtifactStore(ArtifactStore):
    """
    Confirms the remote artifact is retrievable and returns its URL unchanged.
    """

    async def save(self, artifact_url: str, filename: str) -> str:
        data = await self._download(artifact_url)
        logger.info("artifact.passthrough file=%s bytes=%d", filename, len(data))
        return artifact_url


class DirectoryArtifactStore(ArtifactStore):
    """
    Copies the artifact into a directory. `routes.register_artifact_files` serves
    that directory under `/generated`, so the returned URL resolves on this app.
    """

    def __init__(
        self,
        directory: str | Path,
        hosting_base_url: str,
        http_timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(http_timeout=http_timeout, transport=transport)
        self._dir = Path(directory)
        self._base = hosting_base_url.rstrip("/")

    async def save(self, artifact_url: str, filename: str) -> str:
        if Path(filename).name != filename:
            raise ArtifactStoreError(f"Invalid artifact filename: {filename}")

        data = await self._download(artifact_url)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            (self._dir / filename).write_bytes(data)
        except OSError as e:
            logger.error("artifact.write.error file=%s err=%s", filename, e)
            raise ArtifactStoreError(f"Failed to save image: {e}") from e

        logger.info("artifact.saved file=%s bytes=%d", filename, len(data))
        return f"{self._base}{ExternalURIs.GENERATED_PREFIX}/{filename}"


def build_artifact_store(config: PipelineConfig) -> ArtifactStore:
    kind = (config.artifact_store or "passthrough").lower()
    if kind == "directory":
        return DirectoryArtifactStore(
            config.artifact_dir,
            config.hosting_base_url,
            http_timeout=config.http_timeout_seconds,
        )
    if kind != "passthrough":
        logger.warning("artifact.store.unknown kind=%s fallback=passthrough", kind)
    return PassthroughArtifactStore(http_timeout=config.http_timeout_seconds)
