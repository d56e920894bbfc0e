import os, sys, pdb, zipfile, logging
import unittest as test
from io import BytesIO
from pathlib import Path

from datarepo.testing import *
from datarepo.storage.collection import (CollectionPackager, ContentElement, PackageSink,
                                         ZIP_MEDIA_TYPE)
from datarepo.storage.registry import VersioningServiceRegistry
from datarepo.storage.versioning import SimpleVersioningService
from datarepo.storage.versioning.base import CONTENT_URI, CHECKSUM, SIZE
from datarepo.exceptions import UnsupportedMediaType, InternalServerError

def setUpModule():
    ensure_tmpdir()

def tearDownModule():
    rmtmpdir()

class TestContentElement(test.TestCase):

    def test_options(self):
        elem = ContentElement("res1", "a/b.txt", "file:///tmp/a/b.txt_1", "simple", None, "sha1:abc", 3)
        self.assertEqual(elem.options(), { CONTENT_URI: "file:///tmp/a/b.txt_1", CHECKSUM: "sha1:abc",
                                           SIZE: 3 })
        elem.version = "2"
        self.assertEqual(elem.options()['version'], "2")

class TestCollectionPackager(test.TestCase):

    def setUp(self):
        self.tf = Tempfiles()
        self.svc = SimpleVersioningService({ "basepath": Path(self.tf.mkdir("data")).as_uri() })
        self.pkgr = CollectionPackager(VersioningServiceRegistry([self.svc]))

    def tearDown(self):
        self.tf.clean()

    def store(self, path, data):
        opts = {}
        self.svc.write("res1", "ava", path, BytesIO(data), opts)
        return ContentElement("res1", path, opts[CONTENT_URI], "simple", None, opts[CHECKSUM],
                              opts[SIZE])

    def test_supports(self):
        self.assertEqual(self.pkgr.supported_media_types, [ZIP_MEDIA_TYPE])
        self.assertTrue(self.pkgr.supports_media_type("application/zip"))
        self.assertTrue(self.pkgr.supports_media_type("Application/ZIP; charset=binary"))
        self.assertFalse(self.pkgr.supports_media_type("application/x-tar"))
        self.assertFalse(self.pkgr.supports_media_type(None))
        self.assertTrue(self.pkgr.can_provide("FILE"))
        self.assertFalse(self.pkgr.can_provide("s3"))
        self.assertFalse(self.pkgr.can_provide(""))

    def test_provide(self):
        elems = [ self.store("a.txt", b"alpha"), self.store("/sub/b.txt", b"beta" * 1000) ]
        out = BytesIO()
        sink = PackageSink(out)
        self.pkgr.provide(elems, "application/zip", sink)
        self.assertEqual(sink.status, 200)
        self.assertEqual(sink.headers["Content-Type"], ZIP_MEDIA_TYPE)

        with zipfile.ZipFile(BytesIO(out.getvalue())) as zf:
            self.assertEqual(zf.namelist(), ["a.txt", "sub/b.txt"])
            self.assertEqual(zf.read("a.txt"), b"alpha")
            self.assertEqual(zf.read("sub/b.txt"), b"beta" * 1000)

    def test_unsupported(self):
        out = BytesIO()
        sink = PackageSink(out)
        with self.assertRaises(UnsupportedMediaType):
            self.pkgr.provide([self.store("a.txt", b"alpha")], "application/x-tar", sink)
        self.assertEqual(out.getvalue(), b"")
        self.assertEqual(sink.headers, {})

    def test_no_services(self):
        out = BytesIO()
        pkgr = CollectionPackager(VersioningServiceRegistry())
        with self.assertRaises(InternalServerError):
            pkgr.provide([], ZIP_MEDIA_TYPE, PackageSink(out))
        self.assertEqual(out.getvalue(), b"")

    def test_missing_content(self):
        elems = [ self.store("a.txt", b"alpha"),
                  ContentElement("res1", "gone.txt", self.svc.config['basepath'] + "/gone.txt",
                                 "simple") ]
        sink = PackageSink(BytesIO())
        logging.getLogger("datarepo.storage.collection").disabled = True
        try:
            self.pkgr.provide(elems, ZIP_MEDIA_TYPE, sink)
        finally:
            logging.getLogger("datarepo.storage.collection").disabled = False
        self.assertEqual(sink.status, 500)


if __name__ == '__main__':
    test.main()
