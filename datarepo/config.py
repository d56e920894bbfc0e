"""
Utilities for loading and applying repository configuration.

Configuration is held as a (nested) dictionary, typically read from a YAML or JSON file with
:py:func:`load_from_file`.  The parameters understood by the repository core include:

``basepath``
    the base storage location for content, given as a ``file:`` URL (e.g.
    ``file:///var/data/repo``)
``storage``
    a dictionary configuring the date-based storage layout; its ``pattern`` property gives the
    date pattern (e.g. ``@{year}/@{month}``) inserted between the base location and the resource
    identifier
``versioning``
    a dictionary whose ``service`` property names the active versioning backend and whose
    ``services`` property lists the backends to register
``store``
    a dictionary selecting and configuring the metadata store (``type`` is one of ``inmem``,
    ``fsbased``, or ``mongo``)
``readonly``
    if True, no new content may be stored
``logfile``, ``logdir``, ``loglevel``
    logging set-up (see :py:func:`configure_log`)
"""
import os, sys, json, logging
from copy import deepcopy
from collections.abc import Mapping

import yaml

__all__ = [ "ConfigurationException", "load_from_file", "merge_config", "configure_log",
            "NORMAL", "LOG_FORMAT" ]

NORMAL = logging.INFO - 5
logging.addLevelName(NORMAL, "NORMAL")

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"
global_logdir = None
global_logfile = None
_log_handler = None

class ConfigurationException(Exception):
    """
    an exception indicating that the configuration is missing, unreadable, or contains
    illegal values.
    """
    def __init__(self, message: str=None, cause: Exception=None):
        if not message:
            message = str(cause) if cause else "Unknown configuration error"
        super(ConfigurationException, self).__init__(message)
        self.cause = cause

def load_from_file(configfile: str) -> Mapping:
    """
    read the configuration from the given file and return it as a dictionary.  The file format is
    determined by its extension: files ending in ``.json`` are read as JSON; all others are read as
    YAML.

    :param str configfile:  the path to the configuration file
    :raises ConfigurationException:  if the file cannot be read or parsed
    """
    try:
        with open(configfile) as fd:
            if configfile.endswith('.json'):
                out = json.load(fd)
            else:
                out = yaml.safe_load(fd)
    except (IOError, OSError) as ex:
        raise ConfigurationException("{}: Unable to read config file: {}".format(configfile, str(ex)),
                                     cause=ex) from ex
    except (ValueError, yaml.YAMLError) as ex:
        raise ConfigurationException("{}: Config file format error: {}".format(configfile, str(ex)),
                                     cause=ex) from ex

    if out is None:
        out = {}
    if not isinstance(out, Mapping):
        raise ConfigurationException("{}: Config file does not contain a dictionary".format(configfile))
    return out

def merge_config(primary: Mapping, defconf: Mapping) -> Mapping:
    """
    merge two configurations, with values in ``primary`` overriding those in ``defconf``.  Nested
    dictionaries are merged recursively; all other values (including lists) are replaced.  The
    default configuration is updated in place and returned.

    :param dict primary:  the overriding configuration
    :param dict defconf:  the default configuration
    """
    for key, val in primary.items():
        if isinstance(val, Mapping) and isinstance(defconf.get(key), Mapping):
            defconf[key] = merge_config(val, dict(defconf[key]))
        else:
            defconf[key] = deepcopy(val)
    return defconf

def configure_log(logfile: str=None, level: int=None, format: str=None, config: Mapping=None,
                  addstderr: bool=False):
    """
    configure the root logger to record messages to a file.

    :param str logfile:    the path to the log file; a relative path is taken to be relative to
                           the ``logdir`` config parameter (or the current directory).  If not given,
                           the ``logfile`` config parameter is used.
    :param int   level:    the logging threshold; if not given, the ``loglevel`` config parameter is
                           used (default: NORMAL)
    :param str  format:    the message format (default: :py:data:`LOG_FORMAT`)
    :param dict config:    the configuration data
    :param bool addstderr: if True, also send messages to standard error
    """
    global global_logdir, global_logfile, _log_handler
    if config is None:
        config = {}

    if not logfile:
        logfile = config.get('logfile', 'repo.log')
    if not os.path.isabs(logfile):
        global_logdir = config.get('logdir', os.getcwd())
        logfile = os.path.join(global_logdir, logfile)
    else:
        global_logdir = os.path.dirname(logfile)

    if level is None:
        level = config.get('loglevel', NORMAL)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ConfigurationException("loglevel: unrecognized level name: "+str(config.get('loglevel')))
    if not format:
        format = config.get('format', LOG_FORMAT)

    rootlog = logging.getLogger()
    if _log_handler:
        rootlog.removeHandler(_log_handler)
        _log_handler.close()
    try:
        _log_handler = logging.FileHandler(logfile)
    except (IOError, OSError) as ex:
        raise ConfigurationException("{}: unable to open log file: {}".format(logfile, str(ex)),
                                     cause=ex) from ex
    _log_handler.setLevel(level)
    _log_handler.setFormatter(logging.Formatter(format))
    rootlog.addHandler(_log_handler)
    rootlog.setLevel(min(level, logging.INFO))
    global_logfile = logfile

    if addstderr:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(format))
        rootlog.addHandler(handler)

    rootlog.log(NORMAL, "FYI: Writing log messages to %s", logfile)
