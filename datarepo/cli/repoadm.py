"""
repoadm command-line program for executing repository administrative tasks.  This suite of
commands operates directly on the repository's metadata store and content storage rather than
going through a web interface.
"""
import logging, os, sys

from ..config import ConfigurationException
from . import CommandFailure, CLISuite
from . import cmd

description = \
"""execute data repository administrative operations

The subcommands operate directly on the repository's metadata store and content storage.  Unless
configured otherwise, the store and storage are kept under the working directory (see --workdir).
"""
default_prog_name = "repoadm"
default_conf_file = os.path.join(os.path.expanduser("~"), ".repoadm_conf.yml")

def create_suite(progname: str=None, conffile: str=default_conf_file) -> CLISuite:
    """
    return the ``repoadm`` tool with all of its subcommands loaded
    """
    suite = CLISuite(progname or default_prog_name, conffile, description)
    for subcmd in cmd.all_commands():
        suite.load_subcommand(subcmd)
    return suite

def main(cmdname, args):
    """
    a function that executes the ``repoadm`` command-line tool.
    """
    create_suite(cmdname).execute(args)
    return args

def run(argv=None):
    """
    execute the ``repoadm`` tool with the given (or the process's) command-line arguments and exit
    """
    if argv is None:
        argv = sys.argv
    prog = os.path.splitext(os.path.basename(argv[0]))[0] if argv else default_prog_name
    try:
        main(prog, argv[1:])
        sys.exit(0)
    except CommandFailure as ex:
        logging.getLogger(f"{prog} {ex.cmd}").critical(str(ex))
        sys.exit(ex.stat)
    except ConfigurationException as ex:
        logging.getLogger(prog).critical("Config error: "+str(ex))
        sys.exit(6)
    except Exception as ex:
        logging.getLogger(prog).exception(ex)
        sys.exit(200)

if __name__ == "__main__":
    run()
