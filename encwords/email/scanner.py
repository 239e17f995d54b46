"""
Locate RFC 2047 encoded words in arbitrary header text.

We use the grammar from section 2 of RFC 2047, except the encoding must
be B or Q, and we do not require encoded words to be separated from their
surroundings by white space (section 5(1)). Many mailers fail to escape
spaces and question marks in the encoded text, so the payload is allowed
to contain anything printable up to the first `?=`.
"""
import enum


# Charset names may not contain these (nor spaces or control characters).
CHARSET_EXCLUDED = '()<>@,;:"/[]?.='

CODEC_LETTERS = ('B', 'b', 'Q', 'q')


class ScanState(enum.Enum):
    SEEK_MARKER = 1
    READ_CHARSET = 2
    READ_CODEC = 3
    READ_PAYLOAD = 4
    MATCHED = 5
    RESCAN = 6


def _charset_char(char):
    return (' ' < char < '\x7f') and (char not in CHARSET_EXCLUDED)


def _payload_char(char):
    return (' ' <= char < '\x7f')


def find_encoded_word(text, pos=0):
    """
    Find the first encoded word in text, starting at pos.

    Returns a (start, end) tuple, where end is just past the closing `?=`,
    or None if there are no more encoded words. When the grammar fails,
    we resume searching from where it failed, never from the start, so
    this always terminates.

    >>> find_encoded_word('Re: =?utf-8?q?caf=C3=A9?= time')
    (4, 25)
    >>> find_encoded_word('=?utf-8?X?abc?= =?us-ascii?Q?ok?=')
    (16, 33)
    >>> find_encoded_word('=?utf-8?Q?what? no way?= !')
    (0, 24)
    >>> find_encoded_word('=?utf-8?Q?unterminated') is None
    True
    """
    state = ScanState.SEEK_MARKER
    start = cursor = pos
    end = len(text)
    while True:
        if state is ScanState.SEEK_MARKER:
            start = text.find('=?', cursor)
            if start < 0:
                return None
            cursor = start + 2
            state = ScanState.READ_CHARSET

        elif state is ScanState.READ_CHARSET:
            mark = cursor
            while cursor < end and _charset_char(text[cursor]):
                cursor += 1
            if cursor > mark:
                state = ScanState.READ_CODEC
            else:
                state = ScanState.RESCAN

        elif state is ScanState.READ_CODEC:
            if (text[cursor:cursor+1] == '?'
                    and text[cursor+1:cursor+2] in CODEC_LETTERS
                    and text[cursor+2:cursor+3] == '?'):
                cursor += 3
                state = ScanState.READ_PAYLOAD
            else:
                state = ScanState.RESCAN

        elif state is ScanState.READ_PAYLOAD:
            while (cursor < end
                    and _payload_char(text[cursor])
                    and not text.startswith('?=', cursor)):
                cursor += 1
            if text.startswith('?=', cursor):
                cursor += 2
                state = ScanState.MATCHED
            else:
                # Back up one, the offending character may start a marker.
                cursor -= 1
                state = ScanState.RESCAN

        elif state is ScanState.MATCHED:
            return (start, cursor)

        elif state is ScanState.RESCAN:
            state = ScanState.SEEK_MARKER


def iter_encoded_words(text, pos=0):
    """
    Yield (start, end) tuples for every encoded word in text.

    >>> list(iter_encoded_words('=?a?q?1?= and =?b?b?Mg==?='))
    [(0, 9), (14, 26)]
    """
    while True:
        found = find_encoded_word(text, pos)
        if found is None:
            return
        yield found
        pos = found[1]
