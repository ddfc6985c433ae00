"""
Chunked streaming extraction.

The incoming document is buffered as UTF-8 bytes and cut into fixed-size
chunks. Each chunk is decoded, parsed as a standalone fragment and resolved
against the selector chain; no element relationships across chunks are
considered. A character split by a chunk boundary is decoded with the chunk
that completes it, while offsets and lengths always count bytes.
"""

from __future__ import annotations

import codecs
import time
from collections.abc import AsyncIterator, Sequence
from typing import Any

from ..constants import OperationName
from ..core.async_utils import aiter_source, release_source
from ..core.exceptions import PatchParserError, StreamError
from ..core.logging import get_class_logger
from ..core.validators import validate_selector_chain
from ..document import HtmlDocument, SearchScope
from ..models import StreamChunk, StreamOutcome
from ..settings import ParserSettings
from .resolver import SelectorResolver


class ExtractionStream:
    """
    Pull-based iterator over per-chunk outcomes.

    Nothing is read from the source until the first outcome is requested.
    The source is released on exhaustion, on aclose() and on errors; use it
    as an async context manager to release it on early exit as well.
    """

    def __init__(
        self, generator: AsyncIterator[StreamOutcome], source: Any = None
    ):
        self._generator = generator
        self._source = source
        self._started = False
        self._closed = False

    def __aiter__(self) -> ExtractionStream:
        return self

    async def __anext__(self) -> StreamOutcome:
        if self._closed:
            raise StopAsyncIteration
        self._started = True
        try:
            return await self._generator.__anext__()
        except StopAsyncIteration:
            self._closed = True
            raise

    async def aclose(self) -> None:
        if not self._closed:
            self._closed = True
            await self._generator.aclose()
            if not self._started and self._source is not None:
                # The generator body never ran, so its cleanup never will
                await release_source(self._source)

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> ExtractionStream:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


class StreamProcessor:
    """Splits a text or byte stream into chunks and extracts from each one."""

    def __init__(self, settings: ParserSettings, resolver: SelectorResolver):
        self.settings = settings
        self.resolver = resolver
        self.logger = get_class_logger(self)

    def stream_extract(
        self,
        source: Any,
        selectors: Sequence[str],
        chunk_size: int | None = None,
    ) -> ExtractionStream:
        """
        Stream per-chunk extraction outcomes for a document.

        Args:
            source: Async or sync iterable of str or bytes
            selectors: Selector chain resolved inside each chunk
            chunk_size: Bytes per chunk (defaults to settings); str items
                are measured by their UTF-8 encoding

        Returns:
            ExtractionStream yielding StreamOutcome values; the last one
            has is_final=True

        Raises:
            ValidationError: If the chain is malformed
            StreamError: If chunk_size is not a positive integer
        """
        chain = validate_selector_chain(selectors)
        size = self.settings.stream_chunk_size if chunk_size is None else chunk_size
        if not isinstance(size, int) or size < 1:
            raise StreamError(f"chunk_size must be a positive integer, got {size!r}")
        return ExtractionStream(self._generate(source, chain, size), source)

    async def _generate(
        self, source: Any, chain: tuple[str, ...], chunk_size: int
    ) -> AsyncIterator[StreamOutcome]:
        # One decoder for the whole stream carries split characters forward
        decoder = codecs.getincrementaldecoder("utf-8")(errors="strict")
        buffer = bytearray()
        offset = 0
        emitted = 0

        try:
            async for piece in aiter_source(source):
                buffer += self._encode(piece)
                pos = 0
                # Strictly greater keeps a non-empty remainder for the final chunk
                while len(buffer) - pos > chunk_size:
                    chunk = StreamChunk(bytes(buffer[pos : pos + chunk_size]), offset)
                    pos += chunk_size
                    offset += len(chunk)
                    emitted += 1
                    yield self._process_chunk(chunk, chain, decoder)
                del buffer[:pos]

            final = StreamChunk(bytes(buffer), offset, is_final=True)
            if final.data or emitted == 0:
                yield self._process_chunk(final, chain, decoder)
        finally:
            await release_source(source)

    @staticmethod
    def _encode(piece: Any) -> bytes:
        if isinstance(piece, str):
            # Lone surrogates survive here and fail decoding for their chunk
            return piece.encode("utf-8", errors="surrogatepass")
        if isinstance(piece, bytes | bytearray | memoryview):
            return bytes(piece)
        raise StreamError(
            f"Stream items must be str or bytes, got {type(piece).__name__}"
        )

    def _process_chunk(
        self,
        chunk: StreamChunk,
        chain: tuple[str, ...],
        decoder: codecs.IncrementalDecoder,
    ) -> StreamOutcome:
        start = time.perf_counter()
        chunk_info = {
            "chunk_offset": chunk.offset,
            "chunk_length": len(chunk),
            "bytes_consumed": chunk.end,
            "is_final": chunk.is_final,
        }

        if not chunk.data:
            return StreamOutcome(
                success=False,
                error="Empty stream",
                elapsed_time=time.perf_counter() - start,
                **chunk_info,
            )

        pending = len(decoder.getstate()[0])
        try:
            text = decoder.decode(chunk.data, final=chunk.is_final)
        except UnicodeDecodeError as e:
            decoder.reset()
            position = chunk.offset - pending + e.start
            self.logger.warning(
                f"Chunk at offset {chunk.offset} is not valid UTF-8: {e.reason}"
            )
            return StreamOutcome(
                success=False,
                error=f"Invalid UTF-8 at byte offset {position}",
                elapsed_time=time.perf_counter() - start,
                **chunk_info,
            )

        try:
            fragment = HtmlDocument(text, self.settings.fingerprint_length)
            outcome = self.resolver.resolve(SearchScope(fragment), chain)
        except PatchParserError as e:
            self.logger.warning(f"Chunk at offset {chunk.offset} failed: {e.message}")
            return StreamOutcome(
                success=False,
                error=e.message,
                attempts=1,
                elapsed_time=time.perf_counter() - start,
                **chunk_info,
            )

        return StreamOutcome(
            **outcome.model_dump(exclude={"value", "elapsed_time", "metadata"}),
            value=outcome.value,
            elapsed_time=time.perf_counter() - start,
            metadata={
                **outcome.metadata,
                "operation": OperationName.STREAM_CHUNK.value,
                "fragment_fingerprint": fragment.fingerprint(),
            },
            **chunk_info,
        )
