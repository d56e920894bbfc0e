import os, sys, pdb, hashlib
import unittest as test
from io import BytesIO
from pathlib import Path

from datarepo.testing import *
from datarepo.storage.versioning import simple
from datarepo.storage.versioning.base import CONTENT_URI, CHECKSUM, SIZE, MEDIA_TYPE, FILENAME
from datarepo.storage.paths import uri_to_path
from datarepo.storage.integrity import ingest
from datarepo.exceptions import InternalServerError, ResourceNotFound

def setUpModule():
    ensure_tmpdir()

def tearDownModule():
    rmtmpdir()

class BrokenStream(object):

    def __init__(self, error=OSError):
        self.calls = 0
        self.error = error

    def read(self, size=-1):
        self.calls += 1
        if self.calls > 1:
            raise self.error("stream went away")
        return b"partial"

class TestSimpleVersioningService(test.TestCase):

    def setUp(self):
        self.tf = Tempfiles()
        self.datadir = self.tf.mkdir("simple")
        self.cfg = { "basepath": Path(self.datadir).as_uri(), "storage": { "pattern": "@{year}/@{month}" } }
        self.svc = simple.SimpleVersioningService(self.cfg)

    def tearDown(self):
        self.tf.clean()

    def test_ctor(self):
        self.assertEqual(self.svc.service_name, "simple")
        self.assertIs(self.svc.config, self.cfg)
        self.assertEqual(self.svc.log.name, "datarepo.storage.simple")

    def test_write_read(self):
        data = b"The quick brown fox jumps over the lazy dog.\n" * 100
        opts = { FILENAME: "fox.txt" }
        out = self.svc.write("res1", "ava", "folder/fox.txt", BytesIO(data), opts)
        self.assertIs(out, opts)
        self.assertEqual(opts[SIZE], len(data))
        self.assertEqual(opts[CHECKSUM], "sha1:" + hashlib.sha1(data).hexdigest())
        self.assertEqual(opts[MEDIA_TYPE], "text/plain")
        self.assertTrue(opts[CONTENT_URI].startswith(self.cfg['basepath']))

        path = uri_to_path(opts[CONTENT_URI])
        self.assertTrue(os.path.isfile(path))
        self.assertIn(os.sep.join(["res1", "folder", "fox.txt_"]), path)

        # read back and recompute the checksum
        dest = BytesIO()
        self.svc.read("res1", "ava", "folder/fox.txt", None, dest, opts)
        self.assertEqual(dest.getvalue(), data)
        self.assertEqual("sha1:" + ingest(BytesIO(dest.getvalue()), None).digest, opts[CHECKSUM])

    def test_media_type_preserved(self):
        opts = { MEDIA_TYPE: "application/x-goob" }
        self.svc.write("res1", "ava", "data.txt", BytesIO(b"hello"), opts)
        self.assertEqual(opts[MEDIA_TYPE], "application/x-goob")

    def test_media_type_from_path(self):
        opts = {}
        self.svc.write("res1", "ava", "table.csv", BytesIO(b"a,b\n"), opts)
        self.assertEqual(opts[MEDIA_TYPE], "text/csv")

    def test_writes_unique(self):
        o1, o2 = {}, {}
        self.svc.write("res1", "ava", "file.txt", BytesIO(b"one"), o1)
        self.svc.write("res1", "ava", "file.txt", BytesIO(b"two"), o2)
        self.assertNotEqual(o1[CONTENT_URI], o2[CONTENT_URI])

        dest = BytesIO()
        self.svc.read("res1", "ava", "file.txt", None, dest, o1)
        self.assertEqual(dest.getvalue(), b"one")

    def test_write_failure(self):
        opts = {}
        with self.assertRaises(InternalServerError):
            self.svc.write("res1", "ava", "broken.bin", BrokenStream(), opts)
        self.assertNotIn(CONTENT_URI, opts)
        leftovers = []
        for root, dirs, files in os.walk(self.datadir):
            leftovers.extend(files)
        self.assertEqual(leftovers, [])

    def test_write_closed_stream(self):
        opts = {}
        with self.assertRaises(InternalServerError):
            self.svc.write("res1", "ava", "closed.bin", BrokenStream(ValueError), opts)
        self.assertNotIn(CONTENT_URI, opts)

        src = BytesIO(b"gone")
        src.close()
        with self.assertRaises(InternalServerError):
            self.svc.write("res1", "ava", "closed.bin", src, opts)

        leftovers = []
        for root, dirs, files in os.walk(self.datadir):
            leftovers.extend(files)
        self.assertEqual(leftovers, [])

    def test_write_no_id(self):
        with self.assertRaises(InternalServerError):
            self.svc.write("", "ava", "file.txt", BytesIO(b"x"), {})

    def test_read_missing(self):
        with self.assertRaises(ResourceNotFound):
            self.svc.read("res1", "ava", "file.txt", None, BytesIO(), {})
        with self.assertRaises(ResourceNotFound):
            self.svc.read("res1", "ava", "file.txt", None, BytesIO(),
                          { CONTENT_URI: self.cfg['basepath'] + "/nothere.txt" })

    def test_info(self):
        opts = {}
        self.svc.write("res1", "ava", "file.txt", BytesIO(b"hello"), opts)
        info = self.svc.info("res1", "file.txt", None, opts)
        self.assertEqual(info.resource_id, "res1")
        self.assertIsNone(info.version_id)
        self.assertEqual(info.versions, [])
        self.assertEqual(info.properties[SIZE], 5)
        self.assertEqual(info.to_dict()['properties'][CHECKSUM], opts[CHECKSUM])

    def test_copy_stream(self):
        opts = {}
        self.svc.write("res1", "ava", "file.txt", BytesIO(b"x" * 20000), opts)
        dest = BytesIO()
        simple.copy_stream(uri_to_path(opts[CONTENT_URI]), dest, 1000)
        self.assertEqual(len(dest.getvalue()), 20000)


if __name__ == '__main__':
    test.main()
