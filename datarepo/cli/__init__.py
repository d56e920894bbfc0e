"""
the ``repoadm`` command-line tool and the machinery its subcommands share.

Each subcommand is provided by a module in :py:mod:`datarepo.cli.cmd` with these members:

``default_name``
    the name used to invoke the subcommand
``help``, ``description``
    short and long descriptions of the subcommand
``load_into(subparser)``
    a function that defines the subcommand's arguments into the given ArgumentParser
``execute(args, session)``
    a function that carries out the subcommand on behalf of ``session.who`` with the repository
    services of the given :py:class:`RepoSession`

(See :py:mod:`datarepo.cli.repoadm` for the tool itself.)
"""
import os, sys, logging
from argparse import ArgumentParser, RawDescriptionHelpFormatter
from collections.abc import Mapping
from copy import deepcopy
from getpass import getuser
from pathlib import Path

from .. import config as cfgmod
from ..config import ConfigurationException
from ..exceptions import (RepoException, BadArgument, ResourceNotFound, ResourceAlreadyExists,
                          AccessForbidden, UnsupportedMediaType)
from ..auth.principal import Principal, ADMINISTRATOR_ROLE, USER_ROLE
from ..store import create_store
from ..storage.registry import VersioningServiceRegistry
from ..resource.service import DataResourceService, ContentInformationService

__all__ = [ "CommandFailure", "RepoSession", "CLISuite", "define_prog_opts", "principal_for" ]

class CommandFailure(Exception):
    """
    An exception indicating that a subcommand failed; the tool exits with the status it carries:
      * 1:  the repository refused the request given its current contents
      * 2:  missing or misused command-line arguments
      * 3:  an input file could not be read
      * 4:  an output file could not be written
      * 6:  the configuration is missing or erroneous
      * 9:  the acting user lacks the required permission
      * 10: unrecognized subcommand
    """

    def __init__(self, cmdname, message, exstat=1, cause=None):
        if not message:
            message = str(cause) if cause else "Unknown command failure"
        super(CommandFailure, self).__init__(message)
        self.stat = exstat
        self.cmd = cmdname
        self.cause = cause

# the first matching class determines the exit status
_status_for_error = [
    (BadArgument,            2),
    (UnsupportedMediaType,   2),
    (ResourceNotFound,       1),
    (ResourceAlreadyExists,  1),
    (AccessForbidden,        9)
]

def principal_for(args, config: Mapping) -> Principal:
    """
    return the Principal a subcommand acts as.  The identity comes from --user (or else the login
    name); it carries the administrator role if --admin was given or if it is listed in the
    ``admin_users`` configuration parameter.
    """
    who = getattr(args, 'user', None) or getuser()
    roles = [USER_ROLE]
    if getattr(args, 'admin', False) or who in config.get("admin_users", []):
        roles.append(ADMINISTRATOR_ROLE)
    return Principal(who, Principal.USER, roles, getattr(args, 'groups', None) or [])

class RepoSession(object):
    """
    the context of a single subcommand invocation:  the acting user, the configuration, and the
    repository services operating on the configured store and storage.  The services are created
    on first use.

    Unless configured otherwise, records are kept by a file-based store in the ``dbfiles``
    directory and content is stored below the ``data`` directory of the working directory.
    """

    def __init__(self, cmdname: str, who: Principal, config: Mapping, log: logging.Logger):
        self.cmd = cmdname
        self.who = who
        self.config = config
        self.log = log
        self._services = None

    @property
    def working_dir(self) -> str:
        return self.config.get("working_dir") or os.getcwd()

    def local_path(self, filename: str) -> str:
        """
        resolve a file name given on the command line against the working directory
        """
        if os.path.isabs(filename):
            return filename
        return os.path.join(self.working_dir, filename)

    def _service_config(self) -> Mapping:
        config = deepcopy(self.config)
        wdir = self.working_dir
        if not os.path.isdir(wdir):
            raise ConfigurationException(f"{wdir}: working directory does not exist")

        scfg = config.setdefault('store', {})
        scfg.setdefault('type', "fsbased")
        if scfg['type'] == "fsbased":
            dbdir = os.path.join(wdir, scfg.get('dir') or "dbfiles")
            os.makedirs(dbdir, exist_ok=True)
            scfg['dir'] = dbdir

        if not config.get('basepath'):
            datadir = os.path.abspath(os.path.join(wdir, "data"))
            os.makedirs(datadir, exist_ok=True)
            config['basepath'] = Path(datadir).as_uri()
        return config

    def _open(self):
        if self._services is None:
            try:
                config = self._service_config()
                registry = VersioningServiceRegistry.from_config(config, self.log.getChild("storage"))
                store = create_store(config)
            except ConfigurationException as ex:
                raise self.fail("Config error: "+str(ex), 6, ex) from ex
            except OSError as ex:
                self.log.exception(ex)
                raise self.fail("Unable to set up repository storage: "+str(ex), 1, ex) from ex
            self._services = (DataResourceService(store, config, self.log.getChild("resource")),
                              ContentInformationService(store, registry, config,
                                                        self.log.getChild("content")))
        return self._services

    @property
    def resources(self) -> DataResourceService:
        """the service managing the repository's data resources"""
        return self._open()[0]

    @property
    def contents(self) -> ContentInformationService:
        """the service managing the content of the repository's data resources"""
        return self._open()[1]

    def fail(self, message: str, exstat: int=1, cause: Exception=None) -> CommandFailure:
        """
        return (for raising) a CommandFailure for the current subcommand
        """
        return CommandFailure(self.cmd, message, exstat, cause)

    def failure_for(self, ex: RepoException, what: str=None) -> CommandFailure:
        """
        return (for raising) a CommandFailure reporting an error from the repository services,
        choosing the exit status from the kind of error
        """
        stat = next((code for cls, code in _status_for_error if isinstance(ex, cls)), 1)
        msg = f"{what}: {str(ex)}" if what else str(ex)
        return self.fail(msg, stat, ex)

def define_prog_opts(progname: str, description: str=None) -> ArgumentParser:
    """
    return a parser defining the options shared by all of the tool's subcommands
    """
    parser = ArgumentParser(progname, description=description,
                            epilog=f"Run '{progname} CMD -h' for help specifically on CMD.",
                            formatter_class=RawDescriptionHelpFormatter)
    parser.add_argument("-w", "--workdir", type=str, dest='workdir', metavar='DIR', default="",
                        help="keep the repository (and resolve file names and the log) under DIR; "
                             "default='.'")
    parser.add_argument("-c", "--config", type=str, dest='conf', metavar='FILE',
                        help="read configuration from FILE")
    parser.add_argument("-l", "--logfile", type=str, dest='logfile', metavar='FILE',
                        help="log messages to FILE, over-riding the configured logfile")
    parser.add_argument("-q", "--quiet", action="store_true", dest='quiet',
                        help="do not print messages to standard error")
    parser.add_argument("-D", "--debug", action="store_true", dest='debug',
                        help="send DEBUG level messages to the log file")
    parser.add_argument("-v", "--verbose", action="store_true", dest='verbose',
                        help="print INFO and (with -D) DEBUG messages to the terminal")
    parser.add_argument("-U", "--user", type=str, dest="user", metavar='USERID',
                        help="act as the user with identifier USERID (default: the login name)")
    parser.add_argument("-G", "--group", type=str, dest="groups", metavar='GROUPID', action="append",
                        help="act as a member of the group GROUPID (may be repeated)")
    parser.add_argument("--admin", action="store_true", dest="admin",
                        help="act with the repository administrator role")
    return parser

class CLISuite(object):
    """
    a command-line tool made up of subcommands that act on the repository
    """

    def __init__(self, progname: str, defconffile: str=None, description: str=None):
        self.suitename = progname
        self._defconffile = defconffile
        self.parser = define_prog_opts(progname, description)
        self._subparsers = self.parser.add_subparsers(title="commands", dest="cmd")
        self._cmds = {}

    def load_subcommand(self, cmdmod, cmdname: str=None):
        """
        add a subcommand to this tool
        :param cmdmod:        the module (or object) implementing the subcommand
        :param str cmdname:   the name to invoke it by (default: its ``default_name``)
        """
        if not hasattr(cmdmod, "load_into") or not hasattr(cmdmod, "execute"):
            raise ValueError("not a subcommand implementation: " + repr(cmdmod))
        cmdname = cmdname or cmdmod.default_name
        subparser = self._subparsers.add_parser(cmdname, help=cmdmod.help,
                                                description=cmdmod.description,
                                                formatter_class=RawDescriptionHelpFormatter)
        cmdmod.load_into(subparser)
        self._cmds[cmdname] = cmdmod

    def parse_args(self, args):
        return self.parser.parse_args(args)

    def load_config(self, args) -> dict:
        """
        load the configuration named by --config, or else the default configuration file if it
        exists; otherwise, return an empty configuration
        """
        if args.conf:
            return cfgmod.load_from_file(args.conf)
        if self._defconffile and os.path.isfile(self._defconffile):
            return cfgmod.load_from_file(self._defconffile)
        return {}

    def configure_log(self, args, config) -> logging.Logger:
        """
        send log messages to the configured log file (by default, ``<progname>.log`` in the working
        directory) and, unless --quiet was given, to standard error
        """
        if args.logfile:
            config['logfile'] = os.path.join(config['working_dir'], args.logfile)
        config.setdefault('logfile', self.suitename + ".log")
        config.setdefault('logdir', config['working_dir'])
        cfgmod.configure_log(level=(args.debug and logging.DEBUG) or cfgmod.NORMAL, config=config)

        if not args.quiet:
            handler = logging.StreamHandler(sys.stderr)
            if args.verbose:
                handler.setLevel((args.debug and logging.DEBUG) or cfgmod.NORMAL)
                handler.setFormatter(logging.Formatter("%(name)s %(levelname)s: %(message)s"))
            else:
                handler.setLevel(logging.INFO)
                handler.setFormatter(logging.Formatter(self.suitename+" %(levelname)s: %(message)s"))
            logging.getLogger().addHandler(handler)

        return logging.getLogger("cli."+self.suitename)

    def execute(self, argv, config: Mapping=None):
        """
        run the subcommand named in the given command-line arguments
        :param list argv:     the arguments, starting with the global options
        :param dict config:   the configuration to use; if None, it is loaded per :py:meth:`load_config`
        :raises CommandFailure:  if the subcommand fails
        """
        args = self.parse_args(argv)
        cmd = self._cmds.get(args.cmd)
        if cmd is None:
            raise CommandFailure(args.cmd, "Unrecognized command: "+str(args.cmd), 10)

        try:
            if config is None:
                config = self.load_config(args)
            if args.workdir:
                wdir = os.path.abspath(args.workdir)
                if not os.path.isdir(wdir):
                    raise CommandFailure(args.cmd, "Working dir is not an existing directory: "+wdir, 2)
                config['working_dir'] = wdir
            else:
                config['working_dir'] = os.path.abspath(config.get('working_dir') or os.getcwd())

            log = self.configure_log(args, config)
            log.log(cfgmod.NORMAL, "Executing: %s %s", self.suitename, " ".join(argv))

            session = RepoSession(args.cmd, principal_for(args, config), config, log.getChild(args.cmd))
            return cmd.execute(args, session)
        except ConfigurationException as ex:
            raise CommandFailure(args.cmd, "Configuration error: "+str(ex), 6, ex) from ex
