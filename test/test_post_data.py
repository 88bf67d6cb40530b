# -*- coding: utf-8 -*-
import io
import unittest
import reqtools as rt


class ClosingBytesIO(io.BytesIO):
    """ Keeps the written value readable after close(). """

    def close(self):
        self.value = self.getvalue()
        super().close()


class TestPostData(unittest.TestCase):

    def test_encode(self):
        self.assertEqual(rt.encode_post_data({"a": "1", "b": "x y&z"}),
                         b"a=1&b=x+y%26z")
        self.assertEqual(rt.encode_post_data([("a", 1), ("a", 2)]), b"a=1&a=2")
        self.assertEqual(rt.encode_post_data({}), b"")

    def test_charset(self):
        self.assertEqual(rt.encode_post_data({"q": "ä"}), b"q=%C3%A4")
        self.assertEqual(rt.encode_post_data({"q": "ä"}, charset="latin1"), b"q=%E4")

    def test_file_rejected(self):
        with self.assertRaises(TypeError):
            rt.encode_post_data({"f": rt.FormFile("/tmp/x")})

    def test_write(self):
        sink = ClosingBytesIO()
        rt.write_post_data(sink, {"user": "me", "pass": "s3cret"})
        self.assertTrue(sink.closed)
        self.assertEqual(sink.value, b"user=me&pass=s3cret")

    def test_write_keep_open(self):
        sink = io.BytesIO()
        rt.write_post_data(sink, {"a": "1"}, close=False)
        self.assertEqual(sink.getvalue(), b"a=1")

    def test_content_type(self):
        self.assertTrue(rt.URLENCODED_CONTENT_TYPE.startswith(
            "application/x-www-form-urlencoded"))


if __name__ == '__main__':
    unittest.main()
