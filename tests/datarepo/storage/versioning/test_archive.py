import os, sys, pdb, hashlib, zipfile
import unittest as test
from io import BytesIO
from pathlib import Path

from datarepo.testing import *
from datarepo.storage.versioning.archive import ZipVersioningService
from datarepo.storage.versioning.base import CONTENT_URI, CHECKSUM, SIZE, MEDIA_TYPE, VERSION
from datarepo.storage.paths import uri_to_path
from datarepo.exceptions import InternalServerError, ResourceNotFound, BadArgument

def setUpModule():
    ensure_tmpdir()

def tearDownModule():
    rmtmpdir()

class CutStream(object):

    def __init__(self, error=OSError):
        self.calls = 0
        self.error = error

    def read(self, size=-1):
        self.calls += 1
        if self.calls > 1:
            raise self.error("upload interrupted")
        return b"half of it"

class TestZipVersioningService(test.TestCase):

    def setUp(self):
        self.tf = Tempfiles()
        self.datadir = self.tf.mkdir("zip")
        self.svc = ZipVersioningService({ "basepath": Path(self.datadir).as_uri() })

    def tearDown(self):
        self.tf.clean()

    def test_archive_path(self):
        self.assertEqual(self.svc.archive_path("res1"),
                         os.path.join(self.datadir, "archives", "res1.zip"))
        self.assertEqual(self.svc.archive_path("ark:/88434/x1"),
                         os.path.join(self.datadir, "archives", "ark%3A%2F88434%2Fx1.zip"))
        with self.assertRaises(InternalServerError):
            self.svc.archive_path("")

    def test_versions(self):
        self.assertEqual(self.svc.list_versions("res1", "data/a.txt"), [])

        o1 = {}
        self.svc.write("res1", "ava", "data/a.txt", BytesIO(b"first"), o1)
        self.assertEqual(o1[VERSION], "1")
        self.assertEqual(o1[SIZE], 5)
        self.assertEqual(o1[CHECKSUM], "sha1:" + hashlib.sha1(b"first").hexdigest())
        self.assertEqual(o1[MEDIA_TYPE], "text/plain")
        self.assertEqual(uri_to_path(o1[CONTENT_URI]), self.svc.archive_path("res1"))

        o2 = {}
        self.svc.write("res1", "ava", "data/a.txt", BytesIO(b"second"), o2)
        self.assertEqual(o2[VERSION], "2")
        self.svc.write("res1", "ava", "data/b.txt", BytesIO(b"other"), {})

        self.assertEqual(self.svc.list_versions("res1", "data/a.txt"), [1, 2])
        self.assertEqual(self.svc.list_versions("res1", "/data/b.txt"), [1])
        with zipfile.ZipFile(self.svc.archive_path("res1")) as zf:
            self.assertEqual(sorted(zf.namelist()), ["data/a.txt;1", "data/a.txt;2", "data/b.txt;1"])

        dest = BytesIO()
        self.svc.read("res1", "ava", "data/a.txt", None, dest, {})
        self.assertEqual(dest.getvalue(), b"second")

        dest = BytesIO()
        self.svc.read("res1", "ava", "data/a.txt", "1", dest, {})
        self.assertEqual(dest.getvalue(), b"first")

        # the recorded version is used when none is requested
        dest = BytesIO()
        self.svc.read("res1", "ava", "data/a.txt", None, dest, o1)
        self.assertEqual(dest.getvalue(), b"first")

    def test_read_missing(self):
        with self.assertRaises(ResourceNotFound):
            self.svc.read("res1", "ava", "a.txt", None, BytesIO(), {})
        self.svc.write("res1", "ava", "a.txt", BytesIO(b"x"), {})
        with self.assertRaises(ResourceNotFound):
            self.svc.read("res1", "ava", "b.txt", None, BytesIO(), {})
        with self.assertRaises(ResourceNotFound):
            self.svc.read("res1", "ava", "a.txt", "3", BytesIO(), {})
        with self.assertRaises(BadArgument):
            self.svc.read("res1", "ava", "a.txt", "latest", BytesIO(), {})

    def test_write_failure(self):
        self.svc.write("res1", "ava", "a.txt", BytesIO(b"good"), {})

        for err in (OSError, ValueError):
            opts = {}
            with self.assertRaises(InternalServerError):
                self.svc.write("res1", "ava", "a.txt", CutStream(err), opts)
            self.assertNotIn(VERSION, opts)

        # the interrupted uploads left no entries behind
        self.assertEqual(self.svc.list_versions("res1", "a.txt"), [1])
        dest = BytesIO()
        self.svc.read("res1", "ava", "a.txt", None, dest, {})
        self.assertEqual(dest.getvalue(), b"good")
        self.assertEqual(os.listdir(os.path.join(self.datadir, "archives")), ["res1.zip"])

        self.svc.write("res1", "ava", "a.txt", BytesIO(b"better"), {})
        self.assertEqual(self.svc.list_versions("res1", "a.txt"), [1, 2])

    def test_first_write_failure(self):
        with self.assertRaises(InternalServerError):
            self.svc.write("res2", "ava", "a.txt", CutStream(), {})
        self.assertEqual(self.svc.list_versions("res2", "a.txt"), [])
        self.assertEqual(os.listdir(os.path.join(self.datadir, "archives")), [])

    def test_empty_path(self):
        with self.assertRaises(BadArgument):
            self.svc.write("res1", "ava", "", BytesIO(b"x"), {})

    def test_info(self):
        self.svc.write("res1", "ava", "a.txt", BytesIO(b"abc"), {})
        self.svc.write("res1", "ava", "a.txt", BytesIO(b"abcdef"), {})
        info = self.svc.info("res1", "a.txt", None, {})
        self.assertEqual(info.version_id, "2")
        self.assertEqual(info.versions, ["1", "2"])
        self.assertEqual(info.properties[SIZE], 6)
        info = self.svc.info("res1", "a.txt", "1", {})
        self.assertEqual(info.properties[SIZE], 3)
        with self.assertRaises(ResourceNotFound):
            self.svc.info("res2", "a.txt", None, {})


if __name__ == '__main__':
    test.main()
