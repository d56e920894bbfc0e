"""
Test infrastructure utilities:  management of temporary directories and files used by unit tests.

A test module typically creates a shared temporary directory in ``setUpModule()`` via
:py:func:`ensure_tmpdir` and removes it in ``tearDownModule()`` via :py:func:`rmtmpdir`; individual
test cases can track their own files and directories with a :py:class:`Tempfiles` instance.
"""
import os, shutil, tempfile

__all__ = [ "Tempfiles", "tmpdir", "ensure_tmpdir", "rmtmpdir" ]

_tmpdir = None

def tmpdir(basedir: str=None) -> str:
    """
    return the path to the shared temporary directory for the current test run.  The directory
    is not created by this function (see :py:func:`ensure_tmpdir`).
    """
    global _tmpdir
    if not _tmpdir:
        if not basedir:
            basedir = os.environ.get('DATAREPO_TEST_TMPDIR', tempfile.gettempdir())
        _tmpdir = os.path.join(basedir, "_datarepo_test.{}".format(os.getpid()))
    return _tmpdir

def ensure_tmpdir(basedir: str=None) -> str:
    """
    create the shared temporary directory if it does not already exist and return its path
    """
    out = tmpdir(basedir)
    if not os.path.exists(out):
        os.makedirs(out)
    return out

def rmtmpdir():
    """
    remove the shared temporary directory and its contents
    """
    global _tmpdir
    if _tmpdir and os.path.exists(_tmpdir):
        shutil.rmtree(_tmpdir)
    _tmpdir = None


class Tempfiles(object):
    """
    a manager of temporary files and directories created below a root directory.  Files
    registered with (or created via) this instance are removed by :py:meth:`clean`.
    """

    def __init__(self, tempdir: str=None):
        if not tempdir:
            tempdir = ensure_tmpdir()
        self._root = tempdir
        self._files = set()

    @property
    def root(self) -> str:
        return self._root

    def __call__(self, child: str) -> str:
        return self.track(child)

    def track(self, filename: str) -> str:
        """
        register a file (relative to the root directory) for removal on clean-up and return its
        full path
        """
        self._files.add(filename)
        return os.path.join(self._root, filename)

    def mkdir(self, dirname: str) -> str:
        """
        create and track a directory below the root directory
        """
        path = self.track(dirname)
        if not os.path.exists(path):
            os.makedirs(path)
        return path

    def clean(self):
        """
        remove all tracked files and directories
        """
        for f in list(self._files):
            path = os.path.join(self._root, f)
            if os.path.isdir(path):
                shutil.rmtree(path)
            elif os.path.exists(path):
                os.remove(path)
            self._files.discard(f)
