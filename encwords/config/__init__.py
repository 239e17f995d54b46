import copy
import logging
import os
from configparser import ConfigParser
from logging.handlers import TimedRotatingFileHandler

from .helpers import cfg_bool, CharsetList


APPNAME    = 'encwords'
APPVER     = '0.1.0'

CONFIG_SECTION = 'rfc2047'

# RFC 822 specials; the characters which force a display name to be
# encoded (or quoted), once we know it needs encoding anyway.
RFC822_SPECIALS = '@.,:;<>[]\\"()'


def configure_logging(
        worker_name=APPNAME,
        logdir=None,
        stdout=True,
        level=logging.WARNING):
    handlers = []
    logfile = None
    if logdir:
        if not os.path.exists(logdir):
            os.mkdir(logdir, 0o700)
        logfile = os.path.join(logdir, worker_name)
        handlers.append(TimedRotatingFileHandler(logfile,
            when='D', interval=1, backupCount=7))
    if stdout or not handlers:
        handlers.append(logging.StreamHandler())
    logging.basicConfig(
        format='%(asctime)s.%(msecs)03d %(levelname)s: %(message)s',
        datefmt='%Y%m%d-%H%M%S',
        level=level,
        handlers=handlers,
        force=True)
    return logfile


def _text(val):
    return '' if val is None else str(val)


def _charset_name(val):
    val = '' if (val is None) else str(val).strip()
    if not val:
        raise ValueError('Charset name may not be empty')
    return val


class CharsetConfig:
    """
    Settings which govern how header text is encoded and decoded.

    These used to be process-wide globals in older mail clients; here they
    are a plain value which gets handed to the encoders and decoders, so
    different callers (and tests) can use different settings at once.

    Attributes:

       charset          The display charset; used to interpret unlabeled
                        bytes, and as the source charset of bytes we encode.
       send_charset     Ordered candidate charsets for outgoing words.
       assumed_charset  Charsets to try on undeclared 8-bit header text.
       ignore_linear_white_space
                        Collapse white space around encoded words.
       specials         Characters which must be protected in names.
       fold             Inserted between consecutive encoded words.

    >>> cfg = CharsetConfig(send_charset='iso-8859-1:utf-8')
    >>> cfg.send_charset
    ('iso-8859-1', 'utf-8')
    >>> cfg.copy(ignore_linear_white_space='yes').ignore_linear_white_space
    True
    >>> cfg.ignore_linear_white_space
    False
    """
    DEFAULT_CHARSET = 'utf-8'
    DEFAULT_SEND_CHARSET = 'us-ascii:iso-8859-1:utf-8'
    DEFAULT_FOLD = '\n\t'

    _KEYS = {
        'charset': _charset_name,
        'send_charset': CharsetList,
        'assumed_charset': CharsetList,
        'ignore_linear_white_space': cfg_bool,
        'specials': _text,
        'fold': _text}

    def __init__(self,
            charset=DEFAULT_CHARSET,
            send_charset=DEFAULT_SEND_CHARSET,
            assumed_charset=None,
            ignore_linear_white_space=False,
            specials=RFC822_SPECIALS,
            fold=DEFAULT_FOLD):
        self.charset = charset
        self.send_charset = send_charset
        self.assumed_charset = assumed_charset
        self.ignore_linear_white_space = ignore_linear_white_space
        self.specials = specials
        self.fold = fold

    def __setattr__(self, key, val):
        if key in self._KEYS:
            val = self._KEYS[key](val)
            if val is None:
                raise ValueError('Invalid value for %s' % key)
        super().__setattr__(key, val)

    def __repr__(self):
        return '<CharsetConfig(%s)>' % ', '.join(
            '%s=%r' % (k, getattr(self, k)) for k in self._KEYS)

    def as_dict(self):
        return dict((k, getattr(self, k)) for k in self._KEYS)

    def copy(self, **changes):
        cfg = copy.copy(self)
        for key, val in changes.items():
            if key not in self._KEYS:
                raise KeyError('Unknown setting: %s' % key)
            setattr(cfg, key, val)
        return cfg

    @classmethod
    def from_parser(cls, parser, section=CONFIG_SECTION):
        """
        Create a configuration from a section of a ConfigParser. Missing
        keys keep their defaults and unknown keys are ignored.
        """
        cfg = cls()
        if parser.has_section(section):
            for key in cls._KEYS:
                if parser.has_option(section, key):
                    setattr(cfg, key, parser.get(section, key, raw=True))
        return cfg

    @classmethod
    def load(cls, path, section=CONFIG_SECTION):
        parser = ConfigParser()
        with open(path, 'r', encoding='utf-8') as fd:
            parser.read_file(fd)
        logging.debug('Loaded %s settings from %s' % (section, path))
        return cls.from_parser(parser, section=section)


DEFAULT_CONFIG = CharsetConfig()
