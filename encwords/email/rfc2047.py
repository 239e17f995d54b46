"""
RFC 2047: MIME encoded words in message headers.

Encoding turns a string into a mix of untouched us-ascii and one or more
`=?charset?B|Q?payload?=` encoded words, folded so that no word exceeds
75 characters and (where possible) no line exceeds 76. Decoding finds and
unpacks such words in arbitrary header text, while tolerating much of the
nonsense found in real-world mail.

Examples:

    >>> rfc2047_encode('Café', charsets='iso-8859-1:utf-8')
    (b'=?iso-8859-1?Q?Caf=E9?=', <EncodeStatus.OK: 0>)
    >>> rfc2047_decode('=?utf-8?B?SGVsbG8=?=')
    'Hello'
    >>> rfc2047_decode('=?utf-8?X?abc?=')
    '=?utf-8?X?abc?='
    >>> rfc2047_decode('=?ISO-8859-1?Q?a?= b')
    'a b'
    >>> rfc2047_decode('=?ISO-8859-1?Q?a?=  =?ISO-8859-1?Q?b?=')
    'ab'
"""
import enum
import logging
import re
import unicodedata
from collections import namedtuple

from ..config import DEFAULT_CONFIG
from .charsets import (
    ConversionError, UNKNOWN_8BIT, canonical_charset, choose_charset,
    convert_bounded, convert_nonmime_string, convert_string, is_us_ascii,
    is_utf8, is_supported)
from .scanner import find_encoded_word
from .transport import (
    BASE64, QUOTED_PRINTABLE, ENCODERS, DECODERS, q_count_specials)


ENCWORD_LEN_MAX = 75
ENCWORD_LEN_MIN = 9  # len('=?.?.?.?=')
LINE_LEN_MAX = ENCWORD_LEN_MAX + 1

HSPACE = b'\0 \t'
LWS_CHARS = ' \t\r\n'

# When strict decoding fails, these are the charsets we try instead.
# Treating us-ascii and iso-8859-1 as windows-1252 is probably harmless,
# and likely to help readability in many cases.
LENIENT_CHARSETS = {
    'us-ascii': ('utf-8', 'windows-1252'),
    'iso-8859-1': ('windows-1252',),
    'utf-8': ('windows-1252',),
    'gb2312': ('gbk', 'gb18030'),
    'gbk': ('gb18030',)}

UNPRINTABLE_CATEGORIES = ('Cc', 'Cs', 'Zl', 'Zp')

SURROGATE_ESCAPES_RE = re.compile('[\udc80-\udcff]')


class EncodeStatus(enum.IntEnum):
    OK = 0
    SOURCE_CONVERSION_FAILED = 1
    TARGET_CONVERSION_FAILED = 2


class MalformedEncodedWord(ValueError):
    pass


class BlockFit(namedtuple('BlockFit', ('method', 'wlen', 'retry'))):
    """
    The verdict on whether a block of data fits in a single encoded word.
    If it was accepted, method is the transport codec to use and wlen the
    length of the resulting word. If not, retry is an upper bound (plus
    one) on how much of the data could fit.
    """
    accepted = property(lambda s: s.method is not None)


def is_continuation(c):
    return (c & 0xc0) == 0x80


def _first_char_len(data):
    n = 1
    while n < len(data) and is_continuation(data[n]):
        n += 1
    return n


def try_block(data, fromcode, tocode):
    """
    Check whether the data can be converted into a single encoded word.

    The data is converted from fromcode (which must be stateless) to
    tocode, unless fromcode is None, in which case the data is assumed to
    already be in tocode, which should be 8-bit and stateless.

    >>> try_block(b'Caf\\xc3\\xa9', 'utf-8', 'iso-8859-1')
    BlockFit(method='Q', wlen=23, retry=0)
    >>> try_block(b'\\xc3\\xa9' * 40, 'utf-8', 'utf-8')
    BlockFit(method=None, wlen=0, retry=63)
    """
    limit = ENCWORD_LEN_MAX - ENCWORD_LEN_MIN + 1 - len(tocode)
    if fromcode:
        buf, consumed = convert_bounded(data, fromcode, tocode, limit)
        if buf is None:
            if consumed == len(data):
                return BlockFit(None, 0, len(data))
            return BlockFit(None, 0, consumed + 1)
    else:
        if len(data) > limit:
            return BlockFit(None, 0, limit + 1)
        buf = data

    count = q_count_specials(buf)
    wlen = ENCWORD_LEN_MIN - 2 + len(tocode)
    len_b = wlen + ((len(buf) + 2) // 3) * 4
    len_q = wlen + len(buf) + 2 * count

    # RFC 1468 says to use B encoding for iso-2022-jp.
    if tocode.lower() == 'iso-2022-jp':
        len_q = ENCWORD_LEN_MAX + 1

    if len_b < len_q and len_b <= ENCWORD_LEN_MAX:
        return BlockFit(BASE64, len_b, 0)
    elif len_q <= ENCWORD_LEN_MAX:
        return BlockFit(QUOTED_PRINTABLE, len_q, 0)
    else:
        return BlockFit(None, 0, len(data))


def encode_block(data, fromcode, tocode, method):
    """
    Encode a block of data, which try_block has approved, as a single
    encoded word.

    >>> encode_block(b'Caf\\xc3\\xa9', 'utf-8', 'iso-8859-1', 'Q')
    b'=?iso-8859-1?Q?Caf=E9?='
    """
    if fromcode:
        data = convert_string(data, fromcode, tocode)
    return ENCODERS[method](bytes(data), tocode)


def choose_block(data, col, fromcode, tocode):
    """
    Discover how much of the data can be converted into a single encoded
    word, starting in column col. Returns the number of bytes and the
    BlockFit describing the word.

    The trial length shrinks on every pass and never splits a UTF-8
    character; a lone character which cannot be made to fit the line is
    returned as-is, leaving an overlong line.
    """
    utf8 = is_utf8(fromcode)
    first = _first_char_len(data) if utf8 else 1
    n = len(data)
    while True:
        fit = try_block(data[:n], fromcode, tocode)
        if fit.accepted and (col + fit.wlen <= LINE_LEN_MAX or n <= first):
            return n, fit
        if n <= first:
            word = encode_block(data[:n], fromcode, tocode, BASE64)
            logging.warning('rfc2047: Overlong encoded word: %s' % word)
            return n, BlockFit(BASE64, len(word), 0)

        n = (n if fit.accepted else fit.retry) - 1
        if utf8:
            while n > first and is_continuation(data[n]):
                n -= 1
        n = max(n, first)


def rfc2047_encode(d, col=0, fromcode='utf-8', charsets='utf-8',
                   specials=None, fold=b'\n\t'):
    """
    RFC 2047 encode a string.

    The input is either text, or bytes in the fromcode charset. It is
    converted into a charset chosen from charsets (a list, or a colon
    separated string). The input is assumed to be a single line starting
    at column col; if col is non-zero, the preceding character was a
    space. If specials are given, those characters get encoded too, but
    only once we know something needs encoding anyway.

    Returns a tuple of (encoded bytes, EncodeStatus). If the status is
    not OK, conversion failed and the original data was used (fromcode
    is then assumed to be us-ascii compatible).

    >>> rfc2047_encode('Hello world')
    (b'Hello world', <EncodeStatus.OK: 0>)
    >>> rfc2047_encode('Hello wörld', charsets='us-ascii:iso-8859-1')[0]
    b'Hello =?iso-8859-1?Q?w=F6rld?='
    >>> rfc2047_encode('Hæ', charsets='us-ascii')
    (b'=?utf-8?B?SMOm?=', <EncodeStatus.TARGET_CONVERSION_FAILED: 2>)
    """
    status = EncodeStatus.OK
    if isinstance(d, str):
        d = d.encode('utf-8', 'surrogateescape')
        fromcode = 'utf-8'
    elif not isinstance(d, (bytes, bytearray, memoryview)):
        raise TypeError('Cannot encode %s' % type(d))
    if isinstance(fold, str):
        fold = fold.encode('us-ascii')
    if isinstance(specials, str):
        specials = specials.encode('us-ascii')

    # Try to convert to UTF-8.
    icode = 'utf-8'
    try:
        u = convert_string(d, fromcode, icode)
    except ConversionError as e:
        logging.debug('rfc2047: Failed to convert from %s: %s' % (fromcode, e))
        status = EncodeStatus.SOURCE_CONVERSION_FAILED
        icode = None
        u = bytes(d)
    ulen = len(u)

    # Find the earliest and latest things we must encode.
    t0 = t1 = s0 = s1 = None
    for i, c in enumerate(u):
        if (c & 0x80) or (c == 0x3d and u[i+1:i+2] == b'?'
                          and (i == 0 or u[i-1] in HSPACE)):
            if t0 is None:
                t0 = i
            t1 = i
        elif specials and c and (c in specials):
            if s0 is None:
                s0 = i
            s1 = i

    if t0 is None:
        # No encoding is required.
        return u, status

    # If we have something to encode, include the specials.
    if s0 is not None and s0 < t0:
        t0 = s0
    if s1 is not None and s1 > t1:
        t1 = s1

    # Choose the target charset.
    tocode = fromcode
    if icode:
        chosen = choose_charset(icode, charsets, u)
        if chosen:
            tocode = chosen[0]
        else:
            status = EncodeStatus.TARGET_CONVERSION_FAILED
            icode = None

    # Avoid labelling 8-bit data as us-ascii.
    if not icode and (not tocode or is_us_ascii(tocode)):
        tocode = UNKNOWN_8BIT
    elif not icode:
        tocode = canonical_charset(tocode)

    span = memoryview(u)

    # Adjust t0 for maximum length of line.
    t = max(LINE_LEN_MAX - col - ENCWORD_LEN_MIN, 0)
    if t < t0:
        t0 = t

    # Adjust t0 until we can encode a character after a space.
    while t0 > 0:
        if u[t0-1] in HSPACE:
            t = t0 + 1
            if icode:
                while t < ulen and is_continuation(u[t]):
                    t += 1
            fit = try_block(span[t0:t], icode, tocode)
            if fit.accepted and col + t0 + fit.wlen <= LINE_LEN_MAX:
                break
        t0 -= 1

    # Adjust t1 until we can encode a character before a space.
    while t1 < ulen:
        if u[t1] in HSPACE:
            t = t1 - 1
            if icode:
                while is_continuation(u[t]):
                    t -= 1
            fit = try_block(span[t:t1], icode, tocode)
            if fit.accepted and 1 + fit.wlen + (ulen - t1) <= LINE_LEN_MAX:
                break
        t1 += 1

    # We shall encode the region [t0, t1); the us-ascii prefix goes as-is.
    buf = bytearray(span[:t0])
    col += t0
    t = t0
    while True:
        # Find how much we can encode.
        n, fit = choose_block(span[t:t1], col, icode, tocode)
        if n == t1 - t:
            # See if we can fit the us-ascii suffix, too.
            if col + fit.wlen + (ulen - t1) <= LINE_LEN_MAX:
                break
            n = t1 - t - 1
            if icode:
                while n > 0 and is_continuation(u[t+n]):
                    n -= 1
            if not n:
                # This only happens in the really stupid case where the
                # only thing left to encode is one character long, but
                # there is too much us-ascii after it to use a single
                # encoded word. Add the next word to the region and retry.
                if t1 >= ulen:
                    break
                t1 += 1
                while t1 < ulen and u[t1] not in HSPACE:
                    t1 += 1
                continue
            n, fit = choose_block(span[t:t+n], col, icode, tocode)

        buf.extend(encode_block(span[t:t+n], icode, tocode, fit.method))
        buf.extend(fold)
        col = 1
        t += n

    # Add the last encoded word and the us-ascii suffix.
    buf.extend(encode_block(span[t:t1], icode, tocode, fit.method))
    buf.extend(span[t1:])
    return bytes(buf), status


def encode_string(text, encode_specials=False, col=0, config=None):
    """
    Encode a header value using the configured charsets, returning a str.
    Problems are logged, not raised.

    >>> encode_string('Einarsson, Bjarni')
    'Einarsson, Bjarni'
    >>> encode_string('Einarsson, Bjarní', encode_specials=True)
    '=?iso-8859-1?Q?Einarsson=2C_Bjarn=ED?='
    """
    config = config or DEFAULT_CONFIG
    if not text or not config.charset:
        return text

    charsets = config.send_charset or 'utf-8'
    fromcode = config.charset
    if isinstance(text, str):
        fromcode = 'utf-8'
    encoded, status = rfc2047_encode(text, col, fromcode, charsets,
        specials=(config.specials if encode_specials else None),
        fold=config.fold)
    if status != EncodeStatus.OK:
        logging.warning('rfc2047: %s while encoding: %r' % (status.name, text))
    return str(encoded, 'latin-1')


def filter_unprintable(text):
    """
    >>> filter_unprintable('tab\\there\\x00')
    'tab?here?'
    """
    return ''.join(
        ('?' if unicodedata.category(c) in UNPRINTABLE_CATEGORIES else c)
        for c in text)


def _decode_charset(data, charset, config):
    charsets = [charset]
    if charset:
        charsets.extend(LENIENT_CHARSETS.get(canonical_charset(charset), ()))
    for cs in charsets:
        if not is_supported(cs):
            continue
        try:
            return str(data, canonical_charset(cs))
        except (UnicodeError, LookupError):
            pass
    logging.debug('rfc2047: Decode failed for %s (%s)' % (data, charset))
    return str(data, config.charset, 'replace')


def rfc2047_decode_word(word, config=None):
    """
    Decode a single encoded word, as found by find_encoded_word().

    Any RFC 2231 language suffix on the charset is ignored. If the data
    cannot be converted from the declared charset, the decoder does its
    best instead of failing. MalformedEncodedWord is raised only if the
    word structure itself does not make sense.

    >>> rfc2047_decode_word('=?utf-8*en?Q?Caf=C3=A9_au_lait?=')
    'Café au lait'
    >>> rfc2047_decode_word('=?utf-8?Q?what? no way?=')
    'what? no way'
    >>> rfc2047_decode_word('=?utf-8?X?abc?=')  # doctest: +IGNORE_EXCEPTION_DETAIL
    Traceback (most recent call last):
        ...
    MalformedEncodedWord: Bad encoding
    """
    config = config or DEFAULT_CONFIG
    if not word.startswith('=?'):
        raise MalformedEncodedWord('Not an encoded word: %s' % word)
    try:
        cs_end = word.index('?', 2)
        cte_end = word.index('?', cs_end + 1)
        # Non-compliant mailers leave question marks unescaped in the
        # payload, so we look for the first `?=` rather than any `?`.
        payload_end = word.index('?=', cte_end + 1)
    except ValueError:
        raise MalformedEncodedWord('Incomplete encoded word: %s' % word)

    # Ignore the RFC 2231 language tag
    charset = word[2:cs_end].split('*', 1)[0]

    method = word[cs_end+1:cs_end+2].upper()
    if method not in (BASE64, QUOTED_PRINTABLE):
        raise MalformedEncodedWord('Bad encoding: %s' % word)

    data = DECODERS[method](word[cte_end+1:payload_end])
    if charset:
        text = _decode_charset(data, charset, config)
    else:
        text = str(data, config.charset, 'replace')
    return filter_unprintable(text)


def lwslen(s):
    """
    Length of the linear white space at the start of s; zero if it ends
    with a CR or LF.
    """
    n = len(s) - len(s.lstrip(LWS_CHARS))
    if n and s[n-1] in '\r\n':
        return 0
    return n


def lwsrlen(s):
    """
    Length of the linear white space at the end of s; zero if s itself
    ends with a CR or LF.
    """
    if not s or s[-1] in '\r\n':
        return 0
    return len(s) - len(s.rstrip(LWS_CHARS))


def _literal(text, config):
    if not SURROGATE_ESCAPES_RE.search(text):
        return text
    # Raw 8-bit data, undeclared; if we have a guess, use it.
    raw = text.encode('utf-8', 'surrogateescape')
    if config.assumed_charset:
        return convert_nonmime_string(
            raw, config.assumed_charset, charset=config.charset)
    return str(raw, config.charset, 'replace')


def rfc2047_decode(text, config=None):
    """
    Decode anything that looks like a valid RFC 2047 encoded word in the
    text, ignoring RFC 822 parsing rules. This never fails: a word which
    cannot be decoded is passed through as-is.

    Text may be a str or bytes. Undeclared 8-bit data (raw bytes, or
    surrogate escapes in a str) is interpreted using the assumed charsets
    from the configuration, or the display charset.

    White space between adjacent encoded words is dropped, as RFC 2047
    requires. If config.ignore_linear_white_space is set, white space
    between encoded words and other text is also collapsed into a single
    space.

    >>> rfc2047_decode('hello =?iso-8859-1?q?ver=F6=F6ld?=')
    'hello verööld'
    >>> rfc2047_decode(b'R\\xfanar =?utf-8?q?=C3=BE?=',
    ...     config=DEFAULT_CONFIG.copy(assumed_charset='iso-8859-1'))
    'Rúnar þ'
    """
    config = config or DEFAULT_CONFIG
    if isinstance(text, (bytes, bytearray)):
        text = str(text, 'us-ascii', 'surrogateescape')
    elif not isinstance(text, str):
        raise TypeError('Cannot decode %s' % type(text))
    if not text:
        return text

    collapse = config.ignore_linear_white_space
    found_encoded = False
    out = []
    pos = 0
    while pos < len(text):
        found = find_encoded_word(text, pos)
        if found is None:
            # No more encoded words
            rest = text[pos:]
            if collapse and found_encoded:
                m = lwslen(rest)
                if m:
                    if m != len(rest):
                        out.append(' ')
                    rest = rest[m:]
            out.append(_literal(rest, config))
            break

        start, end = found
        if start != pos:
            gap = text[pos:start]
            if collapse:
                # Ignore spaces between encoded words and collapse
                # linear-white-space between encoded words and *text.
                m = lwslen(gap) if found_encoded else 0
                if m:
                    if m != len(gap):
                        out.append(' ')
                    gap = gap[m:]
                m = len(gap) - lwsrlen(gap)
                if m:
                    out.append(_literal(gap[:m], config))
                    if m != len(gap):
                        out.append(' ')
            elif not found_encoded or gap.strip(LWS_CHARS):
                out.append(_literal(gap, config))

        word = text[start:end]
        try:
            out.append(rfc2047_decode_word(word, config))
        except MalformedEncodedWord as e:
            # Could not decode word, fall back to displaying the raw string
            logging.debug('rfc2047: %s' % e)
            out.append(word)
        found_encoded = True
        pos = end

    return ''.join(out)


def decode_string(text, config=None):
    if not text:
        return text
    return rfc2047_decode(text, config=config)
