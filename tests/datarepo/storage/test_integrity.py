import os, sys, pdb, hashlib
import unittest as test
from io import BytesIO

from datarepo.testing import *
from datarepo.storage import integrity
from datarepo.exceptions import InternalServerError

def setUpModule():
    ensure_tmpdir()

def tearDownModule():
    rmtmpdir()

class FailingStream(object):

    def __init__(self, good=b"", fail_after=1, error=OSError):
        self.good = good
        self.calls = 0
        self.fail_after = fail_after
        self.error = error

    def read(self, size=-1):
        self.calls += 1
        if self.calls > self.fail_after:
            raise self.error("connection reset")
        return self.good

class TrackingSink(BytesIO):

    def __init__(self):
        super(TrackingSink, self).__init__()
        self.flushed = 0

    def flush(self):
        self.flushed += 1
        super(TrackingSink, self).flush()

class TestIngest(test.TestCase):

    def test_ingest(self):
        data = b"0123456789" * 500
        out = TrackingSink()
        result = integrity.ingest(BytesIO(data), out)
        self.assertEqual(out.getvalue(), data)
        self.assertEqual(result.digest, hashlib.sha1(data).hexdigest())
        self.assertEqual(result.size, 5000)
        self.assertEqual(result.head, data[:integrity.HEAD_SIZE])
        self.assertGreater(out.flushed, 0)

    def test_algorithm(self):
        result = integrity.ingest(BytesIO(b"hello"), None, "sha256", 2)
        self.assertEqual(result.digest, hashlib.sha256(b"hello").hexdigest())
        self.assertEqual(result.size, 5)
        self.assertEqual(result.head, b"hello")

    def test_empty(self):
        result = integrity.ingest(BytesIO(b""), BytesIO())
        self.assertEqual(result.size, 0)
        self.assertEqual(result.digest, hashlib.sha1(b"").hexdigest())
        self.assertEqual(result.head, b"")

    def test_bad_algorithm(self):
        with self.assertRaises(InternalServerError):
            integrity.ingest(BytesIO(b"hello"), BytesIO(), "goob256")

    def test_read_failure(self):
        out = TrackingSink()
        with self.assertRaises(InternalServerError):
            integrity.ingest(FailingStream(b"abc", 2), out)
        self.assertEqual(out.getvalue(), b"abcabc")
        self.assertGreater(out.flushed, 0)

    def test_closed_stream(self):
        out = TrackingSink()
        with self.assertRaises(InternalServerError):
            integrity.ingest(FailingStream(b"abc", 1, ValueError), out)
        self.assertEqual(out.getvalue(), b"abc")

        src = BytesIO(b"gone")
        src.close()
        with self.assertRaises(InternalServerError):
            integrity.ingest(src, BytesIO())

    def test_format_checksum(self):
        self.assertEqual(integrity.format_checksum("sha1", "abc"), "sha1:abc")

    def test_checksum_of(self):
        tf = Tempfiles()
        try:
            path = tf("data.bin")
            with open(path, 'wb') as fd:
                fd.write(b"goober")
            self.assertEqual(integrity.checksum_of(path), hashlib.sha1(b"goober").hexdigest())
            self.assertEqual(integrity.checksum_of(path, "md5"), hashlib.md5(b"goober").hexdigest())
        finally:
            tf.clean()

class TestSniffMediaType(test.TestCase):

    def test_magic(self):
        self.assertEqual(integrity.sniff_media_type(b"%PDF-1.4\n..."), "application/pdf")
        self.assertEqual(integrity.sniff_media_type(b"PK\x03\x04rest"), "application/zip")
        self.assertEqual(integrity.sniff_media_type(b"\x89PNG\r\n\x1a\n...."), "image/png")
        self.assertEqual(integrity.sniff_media_type(b"\x89HDF\r\n\x1a\n...."), "application/x-hdf5")
        self.assertEqual(integrity.sniff_media_type(b"RIFF\x00\x00\x00\x00WEBPVP8 "), "image/webp")

        # content wins over the filename
        self.assertEqual(integrity.sniff_media_type(b"%PDF-1.4", "report.txt"), "application/pdf")

    def test_extension(self):
        self.assertEqual(integrity.sniff_media_type(b"a,b\n1,2\n", "data.csv"), "text/csv")
        self.assertEqual(integrity.sniff_media_type(b"# Title\n", "README.md"), "text/markdown")
        self.assertEqual(integrity.sniff_media_type(b"\x00\x01", "cube.h5"), "application/x-hdf5")

    def test_fallback(self):
        self.assertEqual(integrity.sniff_media_type(b"just some words"), "text/plain")
        self.assertEqual(integrity.sniff_media_type(b"caf\xc3\xa9", "noext"), "text/plain")
        self.assertEqual(integrity.sniff_media_type(b"\x00\x01\x02\x03"), "application/octet-stream")
        self.assertEqual(integrity.sniff_media_type(b""), "application/octet-stream")
        self.assertEqual(integrity.sniff_media_type(b"\xff\xfe\xfd" * 20), "application/octet-stream")

    def test_file(self):
        tf = Tempfiles()
        try:
            path = tf("notes.txt")
            with open(path, 'wb') as fd:
                fd.write(b"\x00\x00 binary really")
            self.assertEqual(integrity.sniff_media_type(path), "text/plain")
            path = tf("image")
            with open(path, 'wb') as fd:
                fd.write(b"GIF89a.....")
            self.assertEqual(integrity.sniff_media_type(path), "image/gif")
        finally:
            tf.clean()


if __name__ == '__main__':
    test.main()
