"""
encwords: RFC 2047 encoded words for mail headers.

This is the public API, in its Pythonic form. The heavy lifting lives in
`encwords.email.rfc2047`; settings are passed around as CharsetConfig
objects rather than read from global state.

Example:

    from encwords import CharsetConfig, encode_string, decode_string

    config = CharsetConfig(send_charset='iso-8859-1:utf-8')
    subject = encode_string('Grüße aus Reykjavík', col=9, config=config)
    assert decode_string(subject, config=config) == 'Grüße aus Reykjavík'
"""
from .config import CharsetConfig, DEFAULT_CONFIG, configure_logging
from .email.charsets import ConversionError, UnsupportedCharset
from .email.rfc2047 import EncodeStatus, MalformedEncodedWord
from .email.rfc2047 import rfc2047_encode, rfc2047_decode, rfc2047_decode_word
from .email.rfc2047 import encode_string, decode_string
from .email.addresses import AddressInfo, AddressList
from .email.addresses import rfc2047_encode_addresses, rfc2047_decode_addresses
from .email.headers import encode_header, decode_header, format_header


__all__ = [
    'CharsetConfig', 'DEFAULT_CONFIG', 'configure_logging',
    'ConversionError', 'UnsupportedCharset',
    'EncodeStatus', 'MalformedEncodedWord',
    'rfc2047_encode', 'rfc2047_decode', 'rfc2047_decode_word',
    'encode_string', 'decode_string',
    'AddressInfo', 'AddressList',
    'rfc2047_encode_addresses', 'rfc2047_decode_addresses',
    'encode_header', 'decode_header', 'format_header']
