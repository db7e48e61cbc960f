"""Streaming codec adapters and the fixed codec registry.

Every adapter exposes the same two calls: ``compress(chunk)`` returns whatever
compressed bytes the algorithm is ready to emit for that chunk (possibly
``b""``), and ``flush()`` returns the trailing bytes and closes the stream.
After ``flush()`` the adapter is spent.
"""
import zlib
from dataclasses import dataclass
from typing import Callable, Optional, Tuple
import brotli
from ccmp.domain.errors import CodecFailure, UnknownCodecError

class CodecAdapter:
    """Base class for streaming compressors."""

    name = "codec"

    def __init__(self):
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _process(self, chunk: bytes) -> bytes:
        raise NotImplementedError

    def _finish(self) -> bytes:
        raise NotImplementedError

    def compress(self, chunk: bytes) -> bytes:
        if self._closed:
            raise CodecFailure(f"{self.name} stream already flushed", codec=self.name)
        try:
            return self._process(chunk)
        except (zlib.error, brotli.error) as e:
            raise CodecFailure(f"{self.name} failed: {e}", codec=self.name) from e

    def flush(self) -> bytes:
        if self._closed:
            raise CodecFailure(f"{self.name} stream already flushed", codec=self.name)
        try:
            return self._finish()
        except (zlib.error, brotli.error) as e:
            raise CodecFailure(f"{self.name} failed on flush: {e}", codec=self.name) from e
        finally:
            self._closed = True

class ZlibAdapter(CodecAdapter):
    """DEFLATE with the container selected by ``wbits``."""

    wbits = zlib.MAX_WBITS

    def __init__(self):
        super().__init__()
        self._compressor = zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED, self.wbits)

    def _process(self, chunk: bytes) -> bytes:
        return self._compressor.compress(chunk)

    def _finish(self) -> bytes:
        return self._compressor.flush(zlib.Z_FINISH)

class GzipAdapter(ZlibAdapter):
    name = "Gzip"
    wbits = 16 + zlib.MAX_WBITS  # gzip header and CRC32 trailer

class DeflateAdapter(ZlibAdapter):
    name = "Deflate"
    wbits = zlib.MAX_WBITS  # zlib header and Adler-32 trailer (RFC 1950)

class BrotliAdapter(CodecAdapter):
    name = "Brotli"

    def __init__(self):
        super().__init__()
        self._compressor = brotli.Compressor()

    def _process(self, chunk: bytes) -> bytes:
        return self._compressor.process(chunk)

    def _finish(self) -> bytes:
        return self._compressor.finish()

@dataclass(frozen=True)
class CodecDescriptor:
    name: str
    factory: Callable[[], CodecAdapter]

    def create(self) -> CodecAdapter:
        return self.factory()

CODECS: Tuple[CodecDescriptor, ...] = (
    CodecDescriptor("Gzip", GzipAdapter),
    CodecDescriptor("Brotli", BrotliAdapter),
    CodecDescriptor("Deflate", DeflateAdapter),
)

def get_codec(name: str, codecs: Tuple[CodecDescriptor, ...] = CODECS) -> CodecDescriptor:
    """Case-insensitive lookup in the registry."""
    found: Optional[CodecDescriptor] = next((c for c in codecs if c.name.lower() == name.lower()), None)
    if found is None:
        raise UnknownCodecError(f"Unknown codec: {name}")
    return found

def create_codec(name: str) -> CodecAdapter:
    """Returns a fresh, independent adapter for ``name``."""
    return get_codec(name).create()
