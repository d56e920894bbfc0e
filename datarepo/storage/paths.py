"""
Resolution of the physical storage location for uploaded content.

Content is stored at a location of the form::

   <basepath>/<pattern>/<internal-id>/<relative-path>_<suffix>

where ``basepath`` is a configured ``file:`` URL, ``pattern`` is a configured date pattern (e.g.
``@{year}/@{month}``) with its placeholders substituted from the current date, and ``suffix`` is
derived from the current time in milliseconds.  The suffix is guaranteed to increase
monotonically within a process so that two uploads to the same logical path never resolve to
the same physical location.
"""
import re, threading, time
from datetime import datetime
from collections.abc import Mapping
from urllib.parse import urlsplit, urlunsplit, quote
from urllib.request import url2pathname

from ..exceptions import InternalServerError

__all__ = [ "get_data_uri", "data_uri_for_id", "substitute_pattern", "uri_to_path", "base_directory",
            "DEFAULT_PATTERN" ]

DEFAULT_PATTERN = "@{year}"

_placeholder_re = re.compile(r"@\{(\w+)\}")
_bad_path_chars_re = re.compile(r'[<>"{}|\\^`\s]')
_SAFE_CHARS = "/%:@!$&'()*+,;=-._~"

_suffix_lock = threading.Lock()
_last_suffix = 0

def _next_suffix() -> int:
    global _last_suffix
    with _suffix_lock:
        now = int(time.time() * 1000)
        if now <= _last_suffix:
            now = _last_suffix + 1
        _last_suffix = now
        return now

def substitute_pattern(pattern: str, when: datetime=None) -> str:
    """
    substitute the date placeholders in the given pattern.  Recognized placeholders are
    ``@{year}``, ``@{month}``, ``@{day}``, ``@{hour}``, and ``@{minute}``; the values other than
    the year are zero-padded to two digits.
    :raises InternalServerError:  if the pattern contains an unrecognized placeholder
    """
    if not when:
        when = datetime.now()
    values = {
        "year":   "{:04d}".format(when.year),
        "month":  "{:02d}".format(when.month),
        "day":    "{:02d}".format(when.day),
        "hour":   "{:02d}".format(when.hour),
        "minute": "{:02d}".format(when.minute)
    }

    def sub(m):
        try:
            return values[m.group(1)]
        except KeyError:
            raise InternalServerError("Unrecognized placeholder in storage pattern: "+m.group(0))

    return _placeholder_re.sub(sub, pattern)

def _parse_base(basepath: str):
    if not basepath:
        raise InternalServerError("Storage base path is not configured")
    if _bad_path_chars_re.search(basepath):
        raise InternalServerError("Storage base path is not a valid URL: "+basepath)
    try:
        parts = urlsplit(basepath)
    except ValueError as ex:
        raise InternalServerError("Storage base path is not a valid URL: "+basepath, cause=ex) from ex
    if not parts.scheme or parts.query or parts.fragment or '?' in basepath or \
       not parts.path.startswith('/'):
        raise InternalServerError("Storage base path is not a valid hierarchical URL: "+basepath)
    return parts

def data_uri_for_id(internal_id: str, relative_path: str, config: Mapping, when: datetime=None) -> str:
    """
    return the URI for storing content at the given relative path of the resource with the
    given internal identifier.
    :param str  internal_id:  the internal identifier of the resource owning the content
    :param str relative_path:  the path of the content relative to its resource
    :param dict      config:  the storage configuration; the ``basepath`` and ``storage.pattern``
                              parameters are consulted.
    :raises InternalServerError:  if the internal identifier is missing or the base path is
                                  not a valid hierarchical URL
    """
    if not internal_id or not internal_id.strip():
        raise InternalServerError("Data resource has no internal identifier")
    parts = _parse_base(config.get('basepath'))
    pattern = config.get('storage', {}).get('pattern', DEFAULT_PATTERN)

    segments = [parts.path.rstrip('/')]
    substituted = substitute_pattern(pattern, when).strip('/')
    if substituted:
        segments.append(substituted)
    segments.append(internal_id)
    segments.append("{}_{}".format((relative_path or "").lstrip('/'), _next_suffix()))

    path = quote("/".join(segments), safe=_SAFE_CHARS)
    return urlunsplit((parts.scheme, parts.netloc, path, '', ''))

def get_data_uri(resource, relative_path: str, config: Mapping, when: datetime=None) -> str:
    """
    return the URI for storing content at the given relative path of a data resource.
    :param DataResource resource:  the resource owning the content
    :raises InternalServerError:   if the resource has no internal identifier or the base path is
                                   not a valid hierarchical URL
    """
    return data_uri_for_id(resource.id, relative_path, config, when)

def base_directory(config: Mapping) -> str:
    """
    return the local filesystem directory corresponding to the configured ``basepath``
    :raises InternalServerError:  if the base path is not a valid hierarchical URL
    """
    parts = _parse_base(config.get('basepath'))
    return url2pathname(quote(parts.path, safe=_SAFE_CHARS))

def uri_to_path(uri: str) -> str:
    """
    convert a ``file:`` URI into a local filesystem path
    :raises InternalServerError:  if the URI is not a ``file:`` URI
    """
    parts = urlsplit(uri)
    if parts.scheme != "file":
        raise InternalServerError("Not a file URI: "+uri)
    return url2pathname(parts.path)
