# vim: set fileencoding=utf-8 :
#
# Address lists, as far as RFC 2047 cares: each entry has a display name
# (fn) and a mailbox (address). Groups are entries flagged as such, with
# the group name in the address field.
#
import re

from ..config import DEFAULT_CONFIG
from .rfc2047 import encode_string, rfc2047_decode
from .scanner import find_encoded_word


class AddressInfo(dict):
    def __init__(self, address, fn=None, group=False):
        dict.__init__(self)
        self.update({
            'address': address,
            'fn': fn})
        if group:
            self['group'] = True

    fn = property(
        lambda s: s.get('fn'),
        lambda s,v: s.__setitem__('fn', v))

    address = property(
        lambda s: s.get('address'),
        lambda s,v: s.__setitem__('address', v))

    group = property(
        lambda s: s.get('group', False),
        lambda s,v: s.__setitem__('group', bool(v)))

    def normalized(self, **kwargs):
        return AddressList.normalized_addresses([self], **kwargs)[0]

    def __str__(self):
        return self.normalized()


class AddressList(list):
    """
    A list of AddressInfo entries, which knows how to RFC 2047 encode and
    decode the display names (and group names) of its members.

    Examples:

    >>> al = AddressList([
    ...     AddressInfo('bre@example.org', 'Bjarni Rúnar'),
    ...     AddressInfo('a@example.org', 'Einarsson, Bjarni'),
    ...     AddressInfo('b@example.org')])
    >>> al.rfc2047_encode(tag='To').normalized()
    ['Bjarni =?iso-8859-1?Q?R=FAnar?= <bre@example.org>', '"Einarsson, Bjarni" <a@example.org>', '<b@example.org>']
    >>> al.rfc2047_decode()[0].fn
    'Bjarni Rúnar'
    """

    RE_SHOULD_ESCAPE = re.compile('([\\\\"\'])')

    # Column we assume we start at, if we do not know the header name.
    DEFAULT_COLUMN = 32

    @classmethod
    def escape(self, strng):
        return re.sub(self.RE_SHOULD_ESCAPE, lambda m: '\\'+m.group(0), strng)

    @classmethod
    def quote(self, strng, config=None):
        enc = encode_string(strng, encode_specials=True, col=0, config=config)
        if enc != strng:
            return enc
        return '"%s"' % self.escape(strng)

    def rfc2047_encode(self, tag=None, config=None):
        rfc2047_encode_addresses(self, tag=tag, config=config)
        return self

    def rfc2047_decode(self, config=None):
        rfc2047_decode_addresses(self, config=config)
        return self

    @classmethod
    def normalized_addresses(cls, addresses, quote=True, config=None):
        """
        Format addresses as `"Name" <mailbox>` strings. Names which
        already contain encoded words are left alone, as are group names.

        >>> AddressList.normalized_addresses([
        ...     AddressInfo('friends', group=True),
        ...     AddressInfo('x@example.org', 'Say "hi"')])
        ['friends:', '"Say \\\\"hi\\\\"" <x@example.org>']
        """
        if not addresses:
            return []
        def fmt(ai):
            if ai.group:
                return '%s:' % (ai.address or '')
            epart = '<%s>' % ai.address
            if ai.fn:
                if find_encoded_word(ai.fn) is not None:
                    name = ai.fn
                elif quote:
                    name = cls.quote(ai.fn, config=config)
                else:
                    name = ai.fn
                return ' '.join([name, epart])
            return epart
        return [fmt(ai) for ai in addresses]

    def normalized(self, **kwargs):
        return self.normalized_addresses(self, **kwargs)


def rfc2047_encode_addresses(addresses, tag=None, config=None):
    """
    Encode the display names in a list of addresses, in place. For groups
    without a display name, the group name gets encoded instead.
    """
    config = config or DEFAULT_CONFIG
    col = (len(tag) + 2) if tag else AddressList.DEFAULT_COLUMN
    for ai in addresses:
        if ai.fn:
            ai.fn = encode_string(ai.fn, encode_specials=True, col=col,
                                  config=config)
        elif ai.group and ai.address:
            ai.address = encode_string(ai.address, encode_specials=True,
                                       col=col, config=config)
    return addresses


def rfc2047_decode_addresses(addresses, config=None):
    """
    Decode the display names (or group names) in a list of addresses, in
    place. Display names are decoded if they look encoded, or if we have
    been told to assume a charset for undeclared 8-bit data.

    >>> al = [AddressInfo('x@example.org', '=?utf-8?q?J=C3=B3n?= Jónsson')]
    >>> rfc2047_decode_addresses(al)[0].fn
    'Jón Jónsson'
    """
    config = config or DEFAULT_CONFIG
    for ai in addresses:
        if ai.fn and ('=?' in ai.fn or config.assumed_charset):
            ai.fn = rfc2047_decode(ai.fn, config=config)
        elif ai.group and ai.address and ('=?' in ai.address):
            ai.address = rfc2047_decode(ai.address, config=config)
    return addresses
