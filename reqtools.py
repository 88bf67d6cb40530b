# -*- coding: utf-8 -*-
"""
This module provides the request-building and text-parsing helpers of a
command-driven HTTP client: a tokenizer for shell-like command lines with
single and double quotes, and a streaming `multipart/form-data` encoder that
uploads files of any size through a fixed-size buffer.

Copyright (c) 2024, The reqtools contributors
License: MIT (see LICENSE file)
"""


__author__ = "The reqtools contributors"
__version__ = '0.3.0-dev'
__license__ = "MIT"
__all__ = ["ReqToolsError", "QuoteError", "UnmatchedQuoteError",
           "MismatchedQuoteError", "FileReadError", "tokenize", "unquote",
           "parse_attribs", "FormFile", "make_boundary",
           "form_data_content_type", "iter_form_data", "write_form_data",
           "encode_post_data", "write_post_data"]


import re
import os
import logging
from typing import Iterator, Union, Optional, List, Dict
from urllib.parse import urlencode


logger = logging.getLogger(__name__)


##
### Exceptions
##


class ReqToolsError(Exception):
    """ Base class for all errors raised by this module """


class QuoteError(ReqToolsError, ValueError):
    """ Detected unbalanced or inconsistent quote characters """


class UnmatchedQuoteError(QuoteError):
    """ Input ended inside an open quote """


class MismatchedQuoteError(QuoteError):
    """ Only one side of a string is quoted, or both sides differ """


class FileReadError(ReqToolsError, OSError):
    """ A file field could not be opened or read """


##############################################################################
################################ Helper & Misc ###############################
##############################################################################


_QUOTES = ('"', "'")
_SEPARATORS = (' ', '\t')

DEFAULT_BUFFER_SIZE = 2 ** 16


def to_bytes(data, enc="utf8"):
    if isinstance(data, str):
        data = data.encode(enc)

    return data


def iter_pairs(fields):
    """ Yield (name, value) pairs from a mapping or an iterable of pairs. """
    if hasattr(fields, 'items'):
        yield from fields.items()
    else:
        for name, value in fields:
            yield name, value


##############################################################################
################################# Tokenizer ##################################
##############################################################################


def _skip_separators(s, start):
    """ Return the index of the first non-separator at or after `start`, or
        -1 if there is none. """
    for i in range(start, len(s)):
        if s[i] not in _SEPARATORS:
            return i
    return -1


def tokenize(s: str) -> List[str]:
    """Split a command line into arguments.

    Arguments are separated by spaces or tabs. Single or double quotes group
    an argument that contains separators; the other quote character is taken
    literally inside them. Whitespace around each argument is removed, but
    whitespace inside quotes is kept. A closing quote ends its argument,
    so ``'hello'abc`` gives two arguments. An explicitly quoted empty string
    gives an empty argument.

    :raises UnmatchedQuoteError: if the input ends inside an open quote.
    """
    args = []
    token = ''
    quote = None

    i = _skip_separators(s, 0)
    if i < 0:
        return args

    while i < len(s):
        char = s[i]

        if quote:
            if char == quote:
                args.append(token.strip())
                token, quote = '', None
                i = _skip_separators(s, i + 1)
                if i < 0:
                    return args
            else:
                token += char
                i += 1

        elif char in _QUOTES:
            token = token.strip()
            if token:
                args.append(token)
                token = ''
            quote = char
            i += 1

        elif char in _SEPARATORS:
            args.append(token.strip())
            token = ''
            i = _skip_separators(s, i + 1)
            if i < 0:
                return args

        else:
            token += char
            i += 1

    if quote:
        raise UnmatchedQuoteError("Unmatched quote character: %s" % quote)

    if token:
        args.append(token.strip())

    return args


def unquote(s: str) -> str:
    """ Remove surrounding quote chars (" or ') and the whitespace around
        them. Whitespace inside the quotes is preserved. Unquoted strings are
        just stripped. A single quote char on its own is returned as is.

        :raises MismatchedQuoteError: if only one end is quoted, or the two
            ends use different quote chars.
    """
    s = s.strip()
    if len(s) < 2:
        return s

    start, end = s[0], s[-1]
    if start in _QUOTES or end in _QUOTES:
        if start == end:
            return s[1:-1]
        raise MismatchedQuoteError("Mismatched quote chars: %r" % s)

    return s


# group 1: attribute name (allowing namespace)
# group 2: value including quote chars if any
_re_attrib = re.compile(r"""([\w:]+)\s*=\s*("[^"]*"|'[^']*'|\S*)""")


def parse_attribs(html: str) -> Dict[str, str]:
    """ Parse an HTML fragment of attribute pairs without the tag name, e.g.
        ``name="value" other='value' bare=value``, into a dict.

        This is a forgiving parser, but well-formed XML attributes are always
        parsed correctly. Names and values are NOT html-decoded.
    """
    pairs = {}
    for match in _re_attrib.finditer(html):
        pairs[match.group(1)] = unquote(match.group(2))
    return pairs


##############################################################################
################################## Encoder ###################################
##############################################################################


class FormFile(object):
    """ A form field value that is uploaded from a file on disk.

        :param path: The file to read.
        :param filename: The name sent to the server. Defaults to `path`,
            decoded with the file system encoding if it is a bytes path.
    """

    __slots__ = ('path', 'filename')

    def __init__(self, path, filename: Optional[str] = None):
        self.path = os.fspath(path)
        self.filename = os.fsdecode(self.path if filename is None else filename)

    def __repr__(self):
        return "FormFile(%r, filename=%r)" % (self.path, self.filename)

    def __eq__(self, other):
        if not isinstance(other, FormFile):
            return NotImplemented
        return (self.path, self.filename) == (other.path, other.filename)


def make_boundary() -> str:
    """ Return a new random boundary (16 random bytes, hex encoded). """
    return os.urandom(16).hex()


def form_data_content_type(boundary: str) -> str:
    return "multipart/form-data; boundary=%s" % boundary


def content_disposition_quote(val):
    return '"' + val.replace('"', '%22') + '"'


def _part_header(name, filename, charset):
    header = "Content-Disposition: form-data; name=%s" % \
             content_disposition_quote(str(name))
    if filename is None:
        return to_bytes(header + "\r\n\r\n", charset)

    return to_bytes(header + "; filename=%s\r\n"
                    "Content-Type: application/octet-stream\r\n"
                    "Content-Transfer-Encoding: binary\r\n\r\n"
                    % content_disposition_quote(filename), charset)


def _iter_file(path, buffer):
    """ Yield the content of a file through `buffer`, which is refilled
        for every chunk. Full buffers are yielded whole, the final partial
        buffer (if not empty) as a shorter view. """
    view = memoryview(buffer)
    capacity = len(buffer)

    try:
        fp = open(path, "rb")
    except (OSError, ValueError) as err:  # ValueError: embedded null byte
        raise FileReadError("Cannot open file %r: %s" % (path, err)) from err

    with fp:
        while True:
            filled = 0
            while filled < capacity:
                try:
                    nread = fp.readinto(view[filled:])
                except OSError as err:
                    raise FileReadError("Cannot read file %r: %s"
                                        % (path, err)) from err
                if not nread:
                    break
                filled += nread

            if filled == capacity:
                yield view
                continue

            if filled:
                yield view[:filled]
            return


def iter_form_data(
    boundary: str,
    fields,
    charset="utf8",
    buffer_size=DEFAULT_BUFFER_SIZE,
) -> Iterator[Union[bytes, memoryview]]:
    """Encode form fields as a `multipart/form-data` stream and yield it
    chunk by chunk.

    Parts are emitted in the iteration order of `fields`, which may be a
    mapping or an iterable of ``(name, value)`` pairs. Duplicate names
    produce one part each. :class:`FormFile` values are streamed from disk,
    everything else is sent as text (``str`` values are encoded with
    `charset`, ``bytes`` are sent as is, other objects are converted with
    ``str()``). The stream always ends with a single terminator line, even
    if there are no fields at all.

    File content is read into one re-usable buffer of `buffer_size` bytes,
    so memory use does not depend on the file sizes. Chunks from that buffer
    are yielded as ``memoryview`` objects that are only valid until the
    iterator is resumed. Consume (write) them right away.

    :param boundary: The multipart boundary, see :func:`make_boundary`.
    :param fields: The form fields.
    :param charset: Charset for header lines and text values.
    :param buffer_size: Size of the file read buffer.
    :raises FileReadError: if a file cannot be opened or read.
    """
    if buffer_size < 1:
        raise ValueError("buffer_size must be positive")

    delimiter = to_bytes("--" + boundary + "\r\n", charset)
    buffer = None

    for name, value in iter_pairs(fields):
        if isinstance(value, FormFile):
            yield delimiter + _part_header(name, value.filename, charset)

            if buffer is None:
                buffer = bytearray(buffer_size)

            size = 0
            for chunk in _iter_file(value.path, buffer):
                size += len(chunk)
                yield chunk
            logger.debug("Streamed %d bytes from %r as field %r",
                         size, value.path, name)
            yield b"\r\n"
        else:
            if not isinstance(value, (str, bytes, bytearray)):
                value = str(value)
            yield (delimiter + _part_header(name, None, charset)
                   + to_bytes(value, charset) + b"\r\n")

    yield to_bytes("--" + boundary + "--\r\n", charset)


def write_form_data(
    sink,
    boundary: str,
    fields,
    charset="utf8",
    buffer_size=DEFAULT_BUFFER_SIZE,
    close=True,
):
    """ Write form fields as a `multipart/form-data` stream to `sink` and
        close it afterwards (unless `close` is false).

        The sink must implement ``.write(data)`` and always receives
        ``bytes``, so it may keep the chunks it was given. Parts are written
        strictly in order, a file is fully written before the next part
        starts. On error the sink may already hold an incomplete stream and
        is left open. See :func:`iter_form_data` for the other parameters.

        :raises FileReadError: if a file cannot be opened or read.
    """
    logger.debug("Writing multipart/form-data (boundary=%s)", boundary)

    write = sink.write
    chunks = iter_form_data(boundary, fields, charset, buffer_size)
    try:
        for chunk in chunks:
            if isinstance(chunk, memoryview):
                chunk = bytes(chunk)  # The buffer is refilled on resume
            write(chunk)
    finally:
        chunks.close()  # Releases an open file if the sink failed

    if close:
        sink.close()


URLENCODED_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=UTF-8"


def encode_post_data(fields, charset="utf8") -> bytes:
    """ Encode form fields as an `application/x-www-form-urlencoded` body. """
    pairs = []
    for name, value in iter_pairs(fields):
        if isinstance(value, FormFile):
            raise TypeError("File fields require multipart/form-data: %r" % name)
        pairs.append((name, value))

    return urlencode(pairs, encoding=charset).encode("ascii")


def write_post_data(sink, fields, charset="utf8", close=True):
    """ Write form fields url-encoded to `sink` and close it afterwards
        (unless `close` is false). The matching Content-Type header value is
        :data:`URLENCODED_CONTENT_TYPE`. """
    sink.write(encode_post_data(fields, charset))

    if close:
        sink.close()
