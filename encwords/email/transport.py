"""
The two RFC 2047 transport codecs: "B" (base64) and "Q" (a header
flavored quoted-printable).

The encoders produce complete encoded words, the decoders take just the
payload and are deliberately lenient: junk is skipped or passed through,
never raised, since real-world mail is full of it.
"""
import binascii


# These must be =XX escaped in a Q-encoded word, RFC 2047 section 5.
MIME_SPECIALS = b'@.,;:<>[]\\"()?/= \t'

HEX_DIGITS = b'0123456789ABCDEF'
HEX_VALUES = dict((c, int(chr(c), 16)) for c in b'0123456789abcdefABCDEF')

B64_ALPHABET = (b'ABCDEFGHIJKLMNOPQRSTUVWXYZ'
                b'abcdefghijklmnopqrstuvwxyz0123456789+/')
B64_VALUES = dict((chr(c), i) for i, c in enumerate(B64_ALPHABET))

BASE64 = 'B'
QUOTED_PRINTABLE = 'Q'


def q_needs_escape(c):
    return (c >= 0x7f or c < 0x20 or c == 0x5f or c in MIME_SPECIALS)


def q_count_specials(data):
    """
    Count the bytes which would need a =XX escape in a Q-encoded word.
    Spaces are not counted, they become underscores.

    >>> q_count_specials(b'Caf\\xe9 au lait_')
    2
    """
    return sum(1 for c in data if c != 0x20 and q_needs_escape(c))


def _word(charset, method, payload):
    return b''.join([
        b'=?', bytes(charset, 'us-ascii'), b'?', bytes(method, 'us-ascii'),
        b'?', payload, b'?='])


def b_encoder(data, charset):
    """
    >>> b_encoder(b'Hello', 'utf-8')
    b'=?utf-8?B?SGVsbG8=?='
    """
    return _word(charset, BASE64, binascii.b2a_base64(data, newline=False))


def q_encoder(data, charset):
    """
    >>> q_encoder(b'Caf\\xe9 = ok_', 'iso-8859-1')
    b'=?iso-8859-1?Q?Caf=E9_=3D_ok=5F?='
    """
    payload = bytearray()
    for c in data:
        if c == 0x20:
            payload.append(0x5f)
        elif q_needs_escape(c):
            payload.extend((0x3d, HEX_DIGITS[c >> 4], HEX_DIGITS[c & 0x0f]))
        else:
            payload.append(c)
    return _word(charset, QUOTED_PRINTABLE, bytes(payload))


ENCODERS = {
    BASE64: b_encoder,
    QUOTED_PRINTABLE: q_encoder}


def q_decode(payload):
    """
    Decode the payload of a Q-encoded word. Malformed escapes are passed
    through as-is, the same goes for any non-ASCII characters, which get
    UTF-8 encoded.

    >>> q_decode('Caf=E9_=3d_=ZZ_ok')
    b'Caf\\xe9 = =ZZ ok'
    """
    if isinstance(payload, str):
        payload = payload.encode('utf-8', 'surrogateescape')
    out = bytearray()
    i, end = 0, len(payload)
    while i < end:
        c = payload[i]
        if c == 0x5f:
            out.append(0x20)
        elif (c == 0x3d and i + 2 < end
                and payload[i+1] in HEX_VALUES
                and payload[i+2] in HEX_VALUES):
            out.append((HEX_VALUES[payload[i+1]] << 4)
                       | HEX_VALUES[payload[i+2]])
            i += 2
        else:
            out.append(c)
        i += 1
    return bytes(out)


def b_decode(payload):
    """
    Decode the payload of a B-encoded word. Decoding stops at the first
    padding character and anything outside the base64 alphabet is
    skipped; an incomplete trailing quantum is silently dropped.

    >>> b_decode('SGVsbG8=')
    b'Hello'
    >>> b_decode('SGV sbG\\n8')
    b'Hello'
    >>> b_decode('SGVsbG8=junk')
    b'Hello'
    """
    if isinstance(payload, (bytes, bytearray)):
        payload = str(payload, 'latin-1')
    out = bytearray()
    acc = bits = 0
    for char in payload:
        if char == '=':
            break
        val = B64_VALUES.get(char)
        if val is None:
            continue
        acc = (acc << 6) | val
        bits += 6
        if bits >= 8:
            bits -= 8
            out.append((acc >> bits) & 0xff)
            acc &= (1 << bits) - 1
    return bytes(out)


DECODERS = {
    BASE64: b_decode,
    QUOTED_PRINTABLE: q_decode}
