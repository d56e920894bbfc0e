import os, sys, pdb
import unittest as test
from datetime import datetime
from types import SimpleNamespace

from datarepo.storage import paths
from datarepo.exceptions import InternalServerError

when = datetime(2024, 3, 7, 9, 5)

class TestSubstitutePattern(test.TestCase):

    def test_substitute(self):
        self.assertEqual(paths.substitute_pattern("@{year}", when), "2024")
        self.assertEqual(paths.substitute_pattern("@{year}/@{month}/@{day}", when), "2024/03/07")
        self.assertEqual(paths.substitute_pattern("x@{hour}-@{minute}", when), "x09-05")
        self.assertEqual(paths.substitute_pattern("", when), "")
        self.assertEqual(paths.substitute_pattern("@{year}"), str(datetime.now().year))

    def test_unknown_placeholder(self):
        with self.assertRaises(InternalServerError):
            paths.substitute_pattern("@{century}", when)

class TestDataUri(test.TestCase):

    def setUp(self):
        self.cfg = { "basepath": "file:///tmp", "storage": { "pattern": "@{year}" } }

    def test_data_uri_for_id(self):
        uri = paths.data_uri_for_id("test123", "folder/file.txt", self.cfg, when)
        self.assertTrue(uri.startswith("file:///tmp/2024/test123/folder/file.txt_"), uri)
        suffix = uri[len("file:///tmp/2024/test123/folder/file.txt_"):]
        self.assertTrue(suffix.isdigit())

        path = paths.uri_to_path(uri)
        self.assertTrue(path.startswith("/tmp/2024/test123/folder/file.txt_"), path)

    def test_default_pattern(self):
        del self.cfg['storage']
        uri = paths.data_uri_for_id("test123", "/file.txt", self.cfg)
        self.assertTrue(uri.startswith("file:///tmp/%d/test123/file.txt_" % datetime.now().year), uri)

    def test_empty_pattern(self):
        self.cfg['storage']['pattern'] = ""
        self.cfg['basepath'] = "file:///tmp/"
        uri = paths.data_uri_for_id("test123", "file.txt", self.cfg, when)
        self.assertTrue(uri.startswith("file:///tmp/test123/file.txt_"), uri)

    def test_unique(self):
        uris = set(paths.data_uri_for_id("test123", "file.txt", self.cfg, when) for i in range(20))
        self.assertEqual(len(uris), 20)

    def test_non_ascii(self):
        uri = paths.data_uri_for_id("test123", "données/résumé.txt", self.cfg, when)
        self.assertTrue(uri.startswith("file:///tmp/2024/test123/donn%C3%A9es/r%C3%A9sum%C3%A9.txt_"), uri)
        self.assertTrue(paths.uri_to_path(uri).startswith("/tmp/2024/test123/données/résumé.txt_"))

    def test_spaces(self):
        uri = paths.data_uri_for_id("test123", "my file.txt", self.cfg, when)
        self.assertIn("/my%20file.txt_", uri)

    def test_get_data_uri(self):
        res = SimpleNamespace(id="test123")
        uri = paths.get_data_uri(res, "folder/file.txt", self.cfg, when)
        self.assertTrue(uri.startswith("file:///tmp/2024/test123/folder/file.txt_"), uri)

    def test_missing_id(self):
        with self.assertRaises(InternalServerError):
            paths.data_uri_for_id(None, "file.txt", self.cfg)
        with self.assertRaises(InternalServerError):
            paths.data_uri_for_id("  ", "file.txt", self.cfg)
        with self.assertRaises(InternalServerError):
            paths.get_data_uri(SimpleNamespace(id=None), "file.txt", self.cfg)

    def test_invalid_base(self):
        for base in [None, "", "/tmp", "file:///tmp?x=1", "file:///tmp#frag", "file:///t mp",
                     "file:///tmp/{x}", "file:tmp"]:
            cfg = { "basepath": base }
            with self.assertRaises(InternalServerError, msg=str(base)):
                paths.data_uri_for_id("test123", "file.txt", cfg, when)

    def test_base_directory(self):
        self.assertEqual(paths.base_directory({"basepath": "file:///tmp/repo"}), "/tmp/repo")
        with self.assertRaises(InternalServerError):
            paths.base_directory({})

    def test_uri_to_path(self):
        self.assertEqual(paths.uri_to_path("file:///tmp/a%20b"), "/tmp/a b")
        with self.assertRaises(InternalServerError):
            paths.uri_to_path("http://example.com/tmp/a")


if __name__ == '__main__':
    test.main()
