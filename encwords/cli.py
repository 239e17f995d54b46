import configparser
import logging
import sys

from .config import APPNAME, APPVER, CharsetConfig, configure_logging
from .email.rfc2047 import EncodeStatus, rfc2047_encode, rfc2047_decode


USAGE = """\
# %(app)s %(ver)s: RFC 2047 encoded words for mail headers

Usage:

   %(app)s encode [options] [text ...]     Encode text as encoded words
   %(app)s decode [options] [text ...]     Decode encoded words in text
   %(app)s help                            This help

If no text is given, lines are read from standard input and processed one
at a time.

Options:

   --config=<path>           Read settings from the [rfc2047] section of
                             an INI file, before applying other options
   --charset=<cs>            Display/input charset (default: utf-8)
   --send-charset=<a:b:c>    Candidate charsets for encoding
   --assumed-charset=<a:b>   Charsets to assume for undeclared 8-bit data
   --col=<N>                 Column the text starts at (encode only)
   --specials                Also protect RFC 822 specials (encode only)
   --ignore-lws              Collapse white space around encoded words
   --verbose                 Log debug information to stderr
"""

OPTIONS = {
    '--config=': None,
    '--charset=': None,
    '--send-charset=': None,
    '--assumed-charset=': None,
    '--col=': None,
    '--specials': False,
    '--ignore-lws': False,
    '--verbose': False}


class Nonsense(Exception):
    pass


def strip_options(args, options=None):
    """
    Strip --options from a list of arguments, returning the options and
    whatever is left over.

    >>> strip_options(['--col=9', '--specials', 'Hello', '--', '--x'])
    ({'--col=': '9', '--specials': True}, ['Hello', '--x'])
    """
    options = OPTIONS if (options is None) else options
    found = {}
    leftovers = []
    args = list(args)
    while args:
        arg = args.pop(0)
        if arg == '--':
            leftovers.extend(args)
            break
        elif arg in options:
            found[arg] = True
        elif arg+'=' in options:
            if args and args[0][:2] != '--':
                found[arg+'='] = args.pop(0)
            else:
                raise Nonsense('Missing value for %s' % arg)
        elif arg[:2] == '--':
            if '=' not in arg:
                raise Nonsense('Unrecognized argument: %s' % arg)
            arg, opt = arg.split('=', 1)
            if arg+'=' not in options:
                raise Nonsense('Unrecognized argument: %s' % arg)
            found[arg+'='] = opt
        else:
            leftovers.append(arg)
    return found, leftovers


def config_from_options(opts):
    if opts.get('--config='):
        config = CharsetConfig.load(opts['--config='])
    else:
        config = CharsetConfig()
    changes = {}
    for opt, key in (
            ('--charset=', 'charset'),
            ('--send-charset=', 'send_charset'),
            ('--assumed-charset=', 'assumed_charset')):
        if opt in opts:
            changes[key] = opts[opt]
    if opts.get('--ignore-lws'):
        changes['ignore_linear_white_space'] = True
    return config.copy(**changes)


def _inputs(args, stdin):
    if args:
        yield ' '.join(args)
    else:
        for line in stdin:
            yield line.rstrip('\r\n')


def CommandEncode(config, opts, args, stdin, stdout, stderr):
    try:
        col = int(opts.get('--col=') or 0)
    except ValueError:
        raise Nonsense('Invalid column: %s' % opts['--col='])
    specials = config.specials if opts.get('--specials') else None
    for text in _inputs(args, stdin):
        encoded, status = rfc2047_encode(text, col,
            fromcode=config.charset,
            charsets=config.send_charset or 'utf-8',
            specials=specials,
            fold=config.fold)
        if status != EncodeStatus.OK:
            stderr.write('warning: %s\n' % status.name.lower().replace('_', ' '))
        stdout.write(str(encoded, 'latin-1') + '\n')
    return 0


def CommandDecode(config, opts, args, stdin, stdout, stderr):
    for text in _inputs(args, stdin):
        stdout.write(rfc2047_decode(text, config=config) + '\n')
    return 0


COMMANDS = {
    'encode': CommandEncode,
    'decode': CommandDecode}


def Main(args, stdin=None, stdout=None, stderr=None):
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr

    args = list(args)
    command = args.pop(0) if args else 'help'
    if command not in COMMANDS:
        stdout.write(USAGE % {'app': APPNAME, 'ver': APPVER})
        return 0 if (command in ('help', '--help', '-h')) else 1

    try:
        opts, args = strip_options(args)
        configure_logging(
            stdout=True,
            level=(logging.DEBUG if opts.get('--verbose') else logging.WARNING))
        config = config_from_options(opts)
        return COMMANDS[command](config, opts, args, stdin, stdout, stderr)
    except (Nonsense, ValueError, OSError, configparser.Error) as e:
        stderr.write('%s: %s\n' % (APPNAME, e))
        return 1


def main():
    try:
        sys.exit(Main(sys.argv[1:]))
    except KeyboardInterrupt:
        pass
