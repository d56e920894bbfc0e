import os, sys, pdb
import unittest as test
from io import BytesIO
from pathlib import Path

from datarepo.testing import *
from datarepo.storage.versioning.none import NoneVersioningService
from datarepo.storage.versioning.base import CONTENT_URI, CHECKSUM, SIZE, MEDIA_TYPE
from datarepo.exceptions import InternalServerError

def setUpModule():
    ensure_tmpdir()

def tearDownModule():
    rmtmpdir()

class DroppedStream(object):

    def __init__(self, error=OSError):
        self.calls = 0
        self.error = error

    def read(self, size=-1):
        self.calls += 1
        if self.calls > 1:
            raise self.error("connection dropped")
        return b"partial"

class TestNoneVersioningService(test.TestCase):

    def setUp(self):
        self.tf = Tempfiles()
        self.datadir = self.tf.mkdir("none")
        self.cfg = { "basepath": Path(self.datadir).as_uri() }
        self.svc = NoneVersioningService(self.cfg)

    def tearDown(self):
        self.tf.clean()

    def test_write_read(self):
        opts = {}
        self.svc.write("res1", "ava", "docs/readme.txt", BytesIO(b"read me"), opts)
        self.assertEqual(opts[SIZE], 7)
        self.assertTrue(opts[CONTENT_URI].startswith(self.cfg['basepath']))
        self.assertNotIn(CHECKSUM, opts)
        self.assertNotIn(MEDIA_TYPE, opts)

        dest = BytesIO()
        self.svc.read("res1", "ava", "docs/readme.txt", None, dest, opts)
        self.assertEqual(dest.getvalue(), b"read me")

    def test_write_failure(self):
        for err in (OSError, ValueError):
            opts = {}
            with self.assertRaises(InternalServerError):
                self.svc.write("res1", "ava", "cut.bin", DroppedStream(err), opts)
            self.assertNotIn(CONTENT_URI, opts)

        leftovers = []
        for root, dirs, files in os.walk(self.datadir):
            leftovers.extend(files)
        self.assertEqual(leftovers, [])

    def test_info(self):
        opts = {}
        self.svc.write("res1", "ava", "readme.txt", BytesIO(b"read me"), opts)
        info = self.svc.info("res1", "readme.txt", None, opts)
        self.assertEqual(info.properties, { CONTENT_URI: opts[CONTENT_URI] })
        self.assertEqual(self.svc.service_name, "none")


if __name__ == '__main__':
    test.main()
