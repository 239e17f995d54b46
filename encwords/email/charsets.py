"""
Charset names, conversion and negotiation.

This is the thin layer between the RFC 2047 code and Python's codec
registry: it canonicalizes charset names the way they should appear in
MIME headers, converts byte strings from one charset to another, and picks
the best outgoing charset from a list of candidates.
"""
import codecs
import email.charset
import logging
import re

from ..config.helpers import CharsetList


# Python's own codec names are not always the preferred MIME names.
PREFERRED_MIME_NAMES = {
    'ascii': 'us-ascii',
    'utf-8': 'utf-8',
    'iso2022_jp': 'iso-2022-jp',
    'iso2022_jp_2': 'iso-2022-jp-2',
    'iso2022_kr': 'iso-2022-kr',
    'euc_jp': 'euc-jp',
    'euc_kr': 'euc-kr',
    'shift_jis': 'shift_jis',
    'gb2312': 'gb2312',
    'gbk': 'gbk',
    'gb18030': 'gb18030',
    'big5': 'big5',
    'koi8-r': 'koi8-r',
    'koi8-u': 'koi8-u',
    'utf-16': 'utf-16',
    'utf-7': 'utf-7'}

CHARSET_ALIASES = dict(email.charset.ALIASES)
CHARSET_ALIASES.update({
    'utf8': 'utf-8',
    'us_ascii': 'us-ascii',
    'ansi_x3.4-1968': 'us-ascii',
    'iso_8859-1': 'iso-8859-1',
    'x-unknown': 'unknown-8bit'})

PYCODEC_ISO8859_RE = re.compile(r'^iso8859-(\d+)$')
PYCODEC_WINDOWS_RE = re.compile(r'^cp(125\d)$')

US_ASCII = 'us-ascii'
UNKNOWN_8BIT = 'unknown-8bit'


class ConversionError(ValueError):
    pass


class UnsupportedCharset(ConversionError):
    pass


def _codec_info(charset):
    if not charset:
        raise UnsupportedCharset('No charset given')
    name = str(charset).strip().lower()
    name = CHARSET_ALIASES.get(name, name)
    try:
        info = codecs.lookup(name)
    except LookupError:
        raise UnsupportedCharset('Unsupported charset: %s' % charset)
    # Codecs like base64 or rot13 are not charsets.
    if not getattr(info, '_is_text_encoding', True):
        raise UnsupportedCharset('Not a text encoding: %s' % charset)
    return info


def is_supported(charset):
    """
    >>> is_supported('UTF-8'), is_supported('latin1'), is_supported('base64')
    (True, True, False)
    >>> is_supported('unknown-8bit')
    False
    """
    try:
        _codec_info(charset)
        return True
    except UnsupportedCharset:
        return False


def canonical_charset(charset):
    """
    Return the name by which a charset should be labeled in a header.

    >>> canonical_charset('UTF8'), canonical_charset('Latin1')
    ('utf-8', 'iso-8859-1')
    >>> canonical_charset('ISO-2022-JP'), canonical_charset('cp1252')
    ('iso-2022-jp', 'windows-1252')
    >>> canonical_charset('ascii'), canonical_charset('X-Weird')
    ('us-ascii', 'x-weird')
    """
    name = str(charset).strip().lower()
    name = CHARSET_ALIASES.get(name, name)
    try:
        pyname = _codec_info(name).name
    except UnsupportedCharset:
        return name
    if pyname in PREFERRED_MIME_NAMES:
        return PREFERRED_MIME_NAMES[pyname]
    m = PYCODEC_ISO8859_RE.match(pyname)
    if m:
        return 'iso-8859-%s' % m.group(1)
    m = PYCODEC_WINDOWS_RE.match(pyname)
    if m:
        return 'windows-%s' % m.group(1)
    return name


def is_us_ascii(charset):
    return bool(charset) and canonical_charset(charset) == US_ASCII


def is_utf8(charset):
    return bool(charset) and canonical_charset(charset) == 'utf-8'


def convert_string(data, fromcode, tocode):
    """
    Convert a byte string from one charset to another, raising a
    ConversionError (or UnsupportedCharset) if that cannot be done
    without loss.

    >>> convert_string(b'Caf\\xc3\\xa9', 'utf-8', 'iso-8859-1')
    b'Caf\\xe9'
    >>> convert_string(b'\\xe9', 'utf-8', 'iso-8859-1')  # doctest: +IGNORE_EXCEPTION_DETAIL
    Traceback (most recent call last):
        ...
    ConversionError: cannot convert
    """
    from_info = _codec_info(fromcode)
    to_info = _codec_info(tocode)
    try:
        return to_info.encode(from_info.decode(bytes(data))[0])[0]
    except UnicodeError as e:
        raise ConversionError('%s -> %s: %s' % (fromcode, tocode, e))


def convert_bounded(data, fromcode, tocode, limit):
    """
    Convert as much of the data as will fit in `limit` bytes of output.

    Returns a tuple of (converted, consumed). If everything fit, converted
    is the output and consumed is len(data); otherwise converted is None
    and consumed is how many input bytes made it into the output before
    it overflowed (which may equal len(data) if only the final reset
    sequence of a stateful charset failed to fit).

    Input is fed to the decoder a byte at a time, so consumed counts
    source bytes exactly, BOMs and escape sequences included.

    >>> convert_bounded(b'abc', 'utf-8', 'utf-16-be', 6)
    (b'\\x00a\\x00b\\x00c', 3)
    >>> convert_bounded(b'ab\\xc3\\xa9d', 'utf-8', 'utf-16-be', 6)
    (None, 4)
    >>> convert_bounded('abc'.encode('utf-16'), 'utf-16', 'utf-8', 2)
    (None, 6)
    """
    from_info = _codec_info(fromcode)
    to_info = _codec_info(tocode)
    decoder = from_info.incrementaldecoder()
    encoder = to_info.incrementalencoder()

    data = bytes(data)
    out = bytearray()
    consumed = 0
    try:
        for i in range(len(data)):
            text = decoder.decode(data[i:i+1], final=(i == len(data) - 1))
            for char in text:
                chunk = encoder.encode(char)
                if len(out) + len(chunk) > limit:
                    return None, consumed
                out.extend(chunk)
            if text:
                consumed = i + 1
        tail = encoder.encode('', final=True)
    except UnicodeError as e:
        raise ConversionError('%s -> %s: %s' % (fromcode, tocode, e))
    if len(out) + len(tail) > limit:
        return None, consumed
    out.extend(tail)
    return bytes(out), len(data)


def choose_charset(fromcode, charsets, data):
    """
    Choose the charset from the list of candidates which can represent
    the data in the fewest bytes. Ties go to the earlier candidate.

    Returns a tuple of (charset, converted data), or None if none of the
    candidates can represent the data.

    >>> choose_charset('utf-8', 'iso-8859-1:utf-8', b'Hello')
    ('iso-8859-1', b'Hello')
    >>> choose_charset('utf-8', 'us-ascii:utf-8:iso-8859-1', b'Caf\\xc3\\xa9')
    ('iso-8859-1', b'Caf\\xe9')
    >>> choose_charset('utf-8', 'us-ascii', b'Caf\\xc3\\xa9') is None
    True
    """
    best = None
    nchars = None
    for candidate in CharsetList(charsets):
        try:
            converted = convert_string(data, fromcode, candidate)
        except ConversionError as e:
            logging.debug('Rejected charset %s: %s' % (candidate, e))
            continue

        if best is None or len(converted) < len(best[1]):
            best = (candidate, converted)
            if nchars is None:
                nchars = len(str(data, _codec_info(fromcode).name))
            # One byte per character cannot be beaten.
            if len(converted) <= nchars:
                break

    if best is None:
        return None
    return canonical_charset(best[0]), best[1]


def convert_nonmime_string(data, assumed_charsets, charset=None):
    """
    Convert undeclared 8-bit header data to text, trying each of the
    assumed charsets in turn. If none of them fit, the first one (or
    us-ascii) is used anyway, with replacement characters.

    >>> convert_nonmime_string(b'Bjarni R\\xfanar', 'utf-8:iso-8859-1')
    'Bjarni Rúnar'
    >>> convert_nonmime_string(b'R\\xfanar', 'us-ascii') == 'R\\ufffdnar'
    True
    """
    assumed = CharsetList(assumed_charsets)
    for cs in assumed:
        try:
            return str(data, _codec_info(cs).name)
        except (UnicodeError, UnsupportedCharset):
            pass

    fallback = assumed[0] if assumed else (charset or US_ASCII)
    if not is_supported(fallback):
        fallback = US_ASCII
    logging.debug('Non-MIME header data fit none of %s, using %s'
                  % (assumed or '(nothing)', fallback))
    return str(data, _codec_info(fallback).name, 'replace')
