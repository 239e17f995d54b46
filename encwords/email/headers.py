import re

from ..config import DEFAULT_CONFIG
from .addresses import AddressInfo, AddressList
from .rfc2047 import encode_string, rfc2047_decode


# A CRLF (or bare LF) followed by white space is a folded line.
UNFOLD_RE = re.compile(r'\r?\n(?=[ \t])')

TEXT_HEADERS = (
    'comments',
    'content-description',
    'subject',
    'x-mailer',
    'user-agent')

ADDRESS_HEADERS = (
    'apparently-to',
    'bcc',
    'cc',
    'errors-to',
    'from',
    'to',
    'reply-to',
    'resent-bcc',
    'resent-cc',
    'resent-from',
    'resent-reply-to',
    'resent-sender',
    'resent-to',
    'sender',
    'x-original-from')

HEADER_CASEMAP = {
    'message-id': 'Message-ID',
    'mime-version': 'MIME-Version',
    'content-description': 'Content-Description',
    'from': 'From',
    'to': 'To',
    'cc': 'Cc',
    'bcc': 'Bcc',
    'subject': 'Subject',
    'reply-to': 'Reply-To',
    'resent-from': 'Resent-From',
    'resent-to': 'Resent-To',
    'resent-cc': 'Resent-Cc',
    'resent-sender': 'Resent-Sender',
    'user-agent': 'User-Agent',
    'x-mailer': 'X-Mailer'}


def header_name(hdr):
    """
    >>> header_name('mime-version'), header_name('x-spam-level')
    ('MIME-Version', 'X-Spam-Level')
    """
    hdr = hdr.strip()
    return HEADER_CASEMAP.get(hdr.lower(), '-'.join(
        p[:1].upper() + p[1:] for p in hdr.lower().split('-')))


def unfold(value):
    """
    >>> unfold('Hello\\r\\n world\\n\\tagain')
    'Hello world\\tagain'
    """
    return UNFOLD_RE.sub('', value)


def encode_header(hdr, value, config=None):
    """
    Encode a header value for transmission. Address headers take a list
    of AddressInfo objects (or a single one), other headers take text.
    The starting column is derived from the header name.

    >>> encode_header('Subject', 'Vikulegt fréttabréf')
    'Vikulegt =?iso-8859-1?Q?fr=E9ttabr=E9f?='
    >>> encode_header('To', [AddressInfo('bre@example.org', 'Bjarni R.')])
    '"Bjarni R." <bre@example.org>'
    """
    config = config or DEFAULT_CONFIG
    col = len(hdr) + 2
    if hdr.lower() in ADDRESS_HEADERS and not isinstance(value, str):
        if isinstance(value, AddressInfo):
            value = [value]
        addresses = AddressList(AddressInfo(a.address, a.fn, group=a.group)
                                for a in value)
        addresses.rfc2047_encode(tag=hdr, config=config)
        return ', '.join(addresses.normalized(config=config))
    return encode_string(value, col=col, config=config)


def decode_header(hdr, value, config=None):
    """
    Decode a received header value; folded lines are unfolded first.

    >>> decode_header('Subject', '=?utf-8?b?SGVsbG8gd29ybGQ=?= is\\r\\n =?utf-8?b?SGVsbG8gd29ybGQ=?=')
    'Hello world is Hello world'
    """
    return rfc2047_decode(unfold(value), config=config)


def format_header(hdr, value, eol='\r\n', config=None):
    """
    Format a complete header line. The folds between encoded words
    become eol followed by a tab.

    >>> format_header('subject', 'Déjà vu')
    'Subject: =?iso-8859-1?Q?D=E9j=E0?= vu'
    """
    config = (config or DEFAULT_CONFIG).copy(fold=eol + '\t')
    return '%s: %s' % (header_name(hdr), encode_header(hdr, value,
                                                       config=config))
