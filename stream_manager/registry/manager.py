"""
Concurrent registry of supervised streams.

The registry maps stream names to StreamRecords and runs their processes.
Operations on different names never wait on each other; operations on the
same name meet only at the record's runner slot. When a durable store is
configured, stream configurations are mirrored into it on a best-effort
basis and reloaded at startup.
"""

import asyncio
from typing import Any, Mapping, Optional

from ..config.models import ManagerConfig, StreamConfig
from ..executor.command import build_args
from ..executor.probe import probe
from ..executor.runner import ProcessRunner
from ..models.stream import StreamRecord, StreamStatus, StreamView
from ..store.base import StreamStore
from ..utils import (
    DuplicateNameError,
    NotFoundError,
    StoreError,
    StreamManagerError,
    get_logger,
    log_performance,
)

logger = get_logger(__name__)


class StreamRegistry:
    """
    Registry of named streams.

    Stream lifecycle per name:
    - launch: Absent -> Stopped (never starts a process)
    - start: Stopped/Errored -> Running
    - stop: any -> Stopped
    - delete: any -> Absent

    Running processes are left alone when the registry goes away.
    """

    def __init__(
        self,
        config: Optional[ManagerConfig] = None,
        store: Optional[StreamStore] = None,
    ):
        """
        Initialize an empty registry.

        Use ``StreamRegistry.open()`` to also reload persisted streams.

        Args:
            config: Manager configuration (defaults if None)
            store: Durable store for stream configurations (None = in-memory only)
        """
        self.config = config or ManagerConfig()
        self.store = store
        self._streams: dict[str, StreamRecord] = {}

    @classmethod
    async def open(
        cls,
        config: Optional[ManagerConfig] = None,
        store: Optional[StreamStore] = None,
    ) -> "StreamRegistry":
        """
        Create a registry and reload the streams persisted in the store.

        Args:
            config: Manager configuration
            store: Durable store (None = in-memory only)

        Returns:
            Registry ready to accept requests
        """
        registry = cls(config, store)
        if store is not None:
            await registry.reload()
        return registry

    async def aclose(self) -> None:
        """Release the store client. Running streams keep running."""
        if self.store is not None:
            await self.store.aclose()

    # ------------------------------------------------------------------
    # Launch / delete
    # ------------------------------------------------------------------

    async def launch(self, config: StreamConfig | Mapping[str, Any]) -> StreamRecord:
        """
        Register a new stream without starting it.

        Args:
            config: Stream configuration or mapping of its fields

        Returns:
            The new record

        Raises:
            ValidationError: If the configuration is malformed
            DuplicateNameError: If the name is already registered
        """
        record = self._launch(config)

        if self.store is not None:
            try:
                await self.store.put(record.name, record.config.dump_entry())
            except StoreError as e:
                logger.warning(f"Error while saving stream {record.name} to store: {e}")

        logger.info(f"Launched stream [cyan]{record.name}[/cyan]")
        return record

    def _launch(self, config: StreamConfig | Mapping[str, Any]) -> StreamRecord:
        stream_config = StreamConfig.parse(dict(config) if isinstance(config, Mapping) else config)
        record = StreamRecord(config=stream_config, target=self.config.target)

        if self._streams.setdefault(record.name, record) is not record:
            raise DuplicateNameError(record.name)
        return record

    async def delete(self, name: str) -> None:
        """
        Remove a stream, its persisted entry, and stop its process.

        Raises:
            NotFoundError: If the name is not registered
        """
        record = self._streams.pop(name, None)
        if record is None:
            raise NotFoundError(name)

        if self.store is not None:
            try:
                await self.store.delete(name)
            except StoreError as e:
                logger.warning(f"Error while deleting stream {name} from store: {e}")

        await record.close()
        logger.info(f"Deleted stream [cyan]{name}[/cyan]")

    # ------------------------------------------------------------------
    # Start / stop
    # ------------------------------------------------------------------

    async def start(self, name: str) -> None:
        """
        Start the stream's process unless one is already running.

        Raises:
            NotFoundError: If the name is not registered
            AlreadyRunningError: If the stream has a live process
            SpawnError: If ffmpeg cannot be launched
        """
        record = self._get(name)
        await record.start(self._new_runner(record))
        logger.info(f"Started stream [cyan]{name}[/cyan]")

    async def stop(self, name: str) -> None:
        """
        Stop the stream's process and wait until it has exited.

        Stopping a stream that is not running succeeds without effect.

        Raises:
            NotFoundError: If the name is not registered
        """
        record = self._get(name)
        await record.close()
        logger.info(f"Stopped stream [cyan]{name}[/cyan]")

    async def stop_all(self) -> None:
        """Stop every registered stream concurrently."""
        records = list(self._streams.values())
        results = await asyncio.gather(
            *(record.close() for record in records), return_exceptions=True
        )
        for record, result in zip(records, results):
            if isinstance(result, Exception):
                logger.error(f"Error while stopping stream {record.name}: {result}")

    def _new_runner(self, record: StreamRecord) -> ProcessRunner:
        transcode = self.config.transcode
        runner_config = self.config.runner
        return ProcessRunner(
            [transcode.ffmpeg_path, *build_args(record, transcode)],
            capture_limit=runner_config.capture_limit,
            error_tail=runner_config.error_tail,
            kill_after=runner_config.stop_timeout,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _get(self, name: str) -> StreamRecord:
        record = self._streams.get(name)
        if record is None:
            raise NotFoundError(name)
        return record

    def status(self, name: str) -> StreamStatus:
        """
        Get the status of one stream.

        Raises:
            NotFoundError: If the name is not registered
        """
        return self._get(name).status()

    def get(self, name: str) -> Optional[StreamView]:
        """Get a snapshot of one stream, or None if it is not registered."""
        record = self._streams.get(name)
        return StreamView.of(record) if record is not None else None

    def names(self) -> list[str]:
        return sorted(self._streams)

    # Shadows the builtin for the rest of the class body
    def list(self) -> list[StreamView]:
        """Get snapshots of all streams, sorted by name."""
        views = [StreamView.of(record) for record in tuple(self._streams.values())]
        return sorted(views, key=lambda view: view.name)

    def __contains__(self, name: object) -> bool:
        return name in self._streams

    def __len__(self) -> int:
        return len(self._streams)

    async def probe(self, source: str) -> bytes:
        """
        Probe a media source with the configured ffprobe.

        Raises:
            ProbeError: If probing fails
        """
        return await probe(source, self.config.transcode.ffprobe_path)

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    @log_performance(logger)
    async def reload(self) -> int:
        """
        Register every stream persisted in the store, without starting them.

        Unreadable or invalid entries are logged and skipped.

        Returns:
            Number of streams registered
        """
        if self.store is None:
            return 0

        try:
            keys = await self.store.keys()
        except StoreError as e:
            logger.error(f"Store error while listing streams: {e}")
            return 0

        loaded = 0
        for key in keys:
            try:
                raw = await self.store.get(key)
            except StoreError as e:
                logger.error(f"Store error while reading stream {key}: {e}")
                continue
            if raw is None:
                continue

            try:
                self._launch(StreamConfig.load_entry(raw))
            except StreamManagerError as e:
                logger.error(f"Error while adding stream {key} to list: {e}")
                continue
            loaded += 1

        logger.info(f"Loaded {loaded} stream(s) from store")
        return loaded
