"""
Derivation of the integrity metadata--checksum, size, and media type--of a bitstream as it is
ingested.

:py:func:`ingest` copies a stream to a destination in fixed-size chunks, computing a digest and a
byte count along the way; it also retains the leading bytes of the stream so that
:py:func:`sniff_media_type` can detect the content's media type without re-reading it.  Media type
detection tries, in order:

  1. well-known "magic" byte signatures at the start of the content,
  2. the extension of a filename hint (via the standard :py:mod:`mimetypes` registry), and
  3. a text-vs-binary heuristic.
"""
import hashlib, logging, mimetypes, os
from collections import namedtuple
from typing import Dict

from ..exceptions import InternalServerError
from ..utils.logging import blab

log = logging.getLogger("datarepo.storage")

__all__ = [ "ingest", "IngestResult", "sniff_media_type", "checksum_of", "format_checksum",
            "DEFAULT_CHUNK_SIZE", "HEAD_SIZE", "OCTET_STREAM", "TEXT_PLAIN" ]

DEFAULT_CHUNK_SIZE = 1024
HEAD_SIZE = 512

OCTET_STREAM = "application/octet-stream"
TEXT_PLAIN = "text/plain"

IngestResult = namedtuple("IngestResult", "digest size head")
IngestResult.__doc__ = """
the results of ingesting a stream:  the hex digest, the number of bytes copied, and the leading
bytes of the content (up to HEAD_SIZE bytes).
"""

# leading byte signatures of common formats
MAGIC_SIGNATURES: Dict[bytes, str] = {
    b"%PDF": "application/pdf",
    b"PK\x03\x04": "application/zip",
    b"PK\x05\x06": "application/zip",          # empty zip archive
    b"\x1f\x8b": "application/gzip",
    b"BZh": "application/x-bzip2",
    b"\xfd7zXZ\x00": "application/x-xz",
    b"7z\xbc\xaf\x27\x1c": "application/x-7z-compressed",
    b"\xd0\xcf\x11\xe0": "application/x-ole-storage",
    b"\x89PNG\r\n\x1a\n": "image/png",
    b"\xff\xd8\xff": "image/jpeg",
    b"GIF87a": "image/gif",
    b"GIF89a": "image/gif",
    b"II*\x00": "image/tiff",
    b"MM\x00*": "image/tiff",
    b"BM": "image/bmp",
    b"\x89HDF\r\n\x1a\n": "application/x-hdf5",
    b"CDF\x01": "application/x-netcdf",
    b"CDF\x02": "application/x-netcdf",
    b"{\\rtf": "application/rtf",
    b"<?xml": "application/xml",
    b"<!DOCTYPE html": "text/html",
    b"<!doctype html": "text/html",
    b"<html": "text/html",
    b"<HTML": "text/html",
}

# RIFF containers are identified by the form type at offset 8
RIFF_FORMS: Dict[bytes, str] = {
    b"WEBP": "image/webp",
    b"WAVE": "audio/vnd.wave",
    b"AVI ": "video/x-msvideo",
}

# types the mimetypes registry may not know about on every platform
EXTRA_EXTENSIONS: Dict[str, str] = {
    ".md": "text/markdown",
    ".yaml": "application/x-yaml",
    ".yml": "application/x-yaml",
    ".h5": "application/x-hdf5",
    ".hdf5": "application/x-hdf5",
    ".nc": "application/x-netcdf",
    ".ipynb": "application/x-ipynb+json",
}

def ingest(stream, destination, algorithm: str="sha1", chunksize: int=DEFAULT_CHUNK_SIZE) -> IngestResult:
    """
    copy the bytes from an input stream to a destination stream, computing the digest and size of
    the content.  The destination is always flushed before this function returns or raises; closing
    it remains the responsibility of the caller.
    :param stream:       a readable binary file-like object
    :param destination:  a writable binary file-like object; if None, the content is only digested
    :param str algorithm:  the name of the digest algorithm (as understood by :py:mod:`hashlib`)
    :param int chunksize:  the number of bytes to read at a time
    :raises InternalServerError:  if the algorithm is unavailable or the stream cannot be
                                  read or written
    """
    try:
        md = hashlib.new(algorithm)
    except ValueError as ex:
        log.error("Digest algorithm, %s, is not available", algorithm)
        raise InternalServerError("Internal digest initialization error", cause=ex) from ex

    size = 0
    head = b''
    try:
        buf = stream.read(chunksize)
        while buf:
            if destination is not None:
                destination.write(buf)
            md.update(buf)
            size += len(buf)
            if len(head) < HEAD_SIZE:
                head += buf[:HEAD_SIZE-len(head)]
            blab(log, "ingested %d bytes", size)
            buf = stream.read(chunksize)
    except (OSError, ValueError) as ex:
        log.error("Failed to transfer content stream: %s", str(ex))
        raise InternalServerError("Unable to read from stream", cause=ex) from ex
    finally:
        if destination is not None:
            try:
                destination.flush()
            except (OSError, ValueError) as ex:
                log.warning("Problem flushing destination stream: %s", str(ex))

    return IngestResult(md.hexdigest(), size, head)

def format_checksum(algorithm: str, hexdigest: str) -> str:
    """
    return a checksum string of the form "algorithm:hexdigest" (e.g. "sha1:...")
    """
    return "{}:{}".format(algorithm, hexdigest)

def checksum_of(filepath: str, algorithm: str="sha1") -> str:
    """
    return the hex digest of the contents of a file
    """
    with open(filepath, 'rb') as fd:
        return ingest(fd, None, algorithm, 8192).digest

def _sniff_magic(head: bytes) -> str:
    if head.startswith(b"RIFF") and len(head) >= 12:
        return RIFF_FORMS.get(head[8:12])
    for sig, mtype in MAGIC_SIGNATURES.items():
        if head.startswith(sig):
            return mtype
    return None

def _sniff_extension(filename: str) -> str:
    if not filename:
        return None
    ext = os.path.splitext(filename)[1].lower()
    if ext in EXTRA_EXTENSIONS:
        return EXTRA_EXTENSIONS[ext]
    return mimetypes.guess_type(filename, strict=False)[0]

def _looks_like_text(head: bytes) -> bool:
    if b'\x00' in head:
        return False
    try:
        head.decode('utf-8')
    except UnicodeDecodeError as ex:
        # the head may end in the middle of a multi-byte character
        if ex.start < len(head) - 3:
            return False
    return True

def sniff_media_type(head, filename: str=None) -> str:
    """
    detect the media type of some content.
    :param head:  either the leading bytes of the content or the path to a file containing it
    :param str filename:  a filename hint whose extension is consulted when the content itself
                          is not recognized
    :return:  the detected media type; "application/octet-stream" is returned for empty or
              unrecognized binary content
    """
    if isinstance(head, str):
        if not filename:
            filename = os.path.basename(head)
        with open(head, 'rb') as fd:
            head = fd.read(HEAD_SIZE)

    out = _sniff_magic(head)
    if out:
        return out
    out = _sniff_extension(filename)
    if out:
        return out
    if head and _looks_like_text(head):
        return TEXT_PLAIN
    return OCTET_STREAM
