import doctest
import io
import os
import tempfile
import unittest
from configparser import ConfigParser

import encwords.cli
import encwords.config
import encwords.config.helpers

from encwords.cli import Main, Nonsense, strip_options
from encwords.config import CharsetConfig, DEFAULT_CONFIG
from encwords.config.helpers import cfg_bool, CharsetList


class DoctestTests(unittest.TestCase):
    def run_doctests(self, module):
        results = doctest.testmod(module)
        if results.failed:
            print(results)
        self.assertFalse(results.failed)

    def test_doctests_cli(self):
        self.run_doctests(encwords.cli)

    def test_doctests_config(self):
        self.run_doctests(encwords.config)

    def test_doctests_config_helpers(self):
        self.run_doctests(encwords.config.helpers)


class ConfigTests(unittest.TestCase):
    def test_cfg_bool(self):
        for val in ('yes', 'True', ' on ', 1, True):
            self.assertIs(cfg_bool(val), True)
        for val in ('no', 'False', 'off', 0, False):
            self.assertIs(cfg_bool(val), False)
        self.assertIs(cfg_bool('maybe'), None)

    def test_charset_list(self):
        self.assertEqual(CharsetList(b'utf-8:latin1'), ('utf-8', 'latin1'))
        self.assertEqual(CharsetList('utf-8, latin1', delim=','),
                         ('utf-8', 'latin1'))
        self.assertEqual(CharsetList(''), ())

    def test_defaults(self):
        cfg = CharsetConfig()
        self.assertEqual(cfg.charset, 'utf-8')
        self.assertEqual(cfg.send_charset, ('us-ascii', 'iso-8859-1', 'utf-8'))
        self.assertEqual(cfg.assumed_charset, ())
        self.assertFalse(cfg.ignore_linear_white_space)
        self.assertEqual(cfg.fold, '\n\t')

    def test_validation(self):
        cfg = CharsetConfig()
        self.assertRaises(ValueError, setattr, cfg, 'ignore_linear_white_space', 'maybe')
        self.assertRaises(ValueError, setattr, cfg, 'charset', ' ')
        self.assertRaises(ValueError, setattr, cfg, 'charset', None)
        self.assertRaises(ValueError, CharsetConfig, charset=None)
        self.assertEqual(cfg.charset, 'utf-8')
        self.assertRaises(KeyError, cfg.copy, colour='blue')

    def test_copy_leaves_original_alone(self):
        cfg = DEFAULT_CONFIG.copy(assumed_charset='koi8-r', fold='\r\n ')
        self.assertEqual(cfg.assumed_charset, ('koi8-r',))
        self.assertEqual(DEFAULT_CONFIG.assumed_charset, ())
        self.assertEqual(DEFAULT_CONFIG.fold, '\n\t')
        self.assertEqual(sorted(cfg.as_dict().keys()), sorted([
            'charset', 'send_charset', 'assumed_charset',
            'ignore_linear_white_space', 'specials', 'fold']))

    def test_from_parser(self):
        parser = ConfigParser()
        parser.read_string("""\
[rfc2047]
send_charset = iso-8859-15:utf-8
ignore_linear_white_space = yes
unrelated = whatever

[other]
charset = koi8-r
""")
        cfg = CharsetConfig.from_parser(parser)
        self.assertEqual(cfg.send_charset, ('iso-8859-15', 'utf-8'))
        self.assertTrue(cfg.ignore_linear_white_space)
        self.assertEqual(cfg.charset, 'utf-8')

        cfg = CharsetConfig.from_parser(parser, section='other')
        self.assertEqual(cfg.charset, 'koi8-r')

        cfg = CharsetConfig.from_parser(parser, section='missing')
        self.assertEqual(cfg.as_dict(), DEFAULT_CONFIG.as_dict())

    def test_load(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, 'encwords.ini')
            with open(path, 'w', encoding='utf-8') as fd:
                fd.write('[rfc2047]\nassumed_charset = windows-1252\n')
            cfg = CharsetConfig.load(path)
        self.assertEqual(cfg.assumed_charset, ('windows-1252',))


class CommandLineTests(unittest.TestCase):
    def run_main(self, args, stdin=''):
        stdout, stderr = io.StringIO(), io.StringIO()
        rv = Main(args, stdin=io.StringIO(stdin), stdout=stdout, stderr=stderr)
        return rv, stdout.getvalue(), stderr.getvalue()

    def test_strip_options(self):
        self.assertEqual(
            strip_options(['--charset', 'koi8-r', 'x']),
            ({'--charset=': 'koi8-r'}, ['x']))
        self.assertRaises(Nonsense, strip_options, ['--charset'])
        self.assertRaises(Nonsense, strip_options, ['--bogus'])
        self.assertRaises(Nonsense, strip_options, ['--bogus=1'])

    def test_help(self):
        rv, out, err = self.run_main(['help'])
        self.assertEqual(rv, 0)
        self.assertTrue('Usage:' in out)
        rv, out, err = self.run_main(['frobnicate'])
        self.assertEqual(rv, 1)
        self.assertTrue('Usage:' in out)

    def test_encode(self):
        rv, out, err = self.run_main(
            ['encode', '--send-charset=iso-8859-1', 'Café'])
        self.assertEqual((rv, out, err), (0, '=?iso-8859-1?Q?Caf=E9?=\n', ''))

    def test_encode_warns(self):
        rv, out, err = self.run_main(['encode', '--send-charset=us-ascii', 'Hæ'])
        self.assertEqual(rv, 0)
        self.assertEqual(out, '=?utf-8?B?SMOm?=\n')
        self.assertTrue('target conversion failed' in err)

    def test_encode_bad_column(self):
        rv, out, err = self.run_main(['encode', '--col=x', 'Hello'])
        self.assertEqual(rv, 1)
        self.assertTrue('Invalid column' in err)

    def test_decode(self):
        rv, out, err = self.run_main(['decode', '=?utf-8?B?SGVsbG8=?=', 'there'])
        self.assertEqual((rv, out), (0, 'Hello there\n'))

    def test_decode_stdin(self):
        rv, out, err = self.run_main(
            ['decode', '--ignore-lws'],
            stdin='=?utf-8?q?a?=   and  =?utf-8?q?b?=\r\nplain\n')
        self.assertEqual((rv, out), (0, 'a and b\nplain\n'))

    def test_missing_config_file(self):
        rv, out, err = self.run_main(
            ['decode', '--config=/nonexistent/encwords.ini', 'x'])
        self.assertEqual(rv, 1)
        self.assertTrue(err.startswith('encwords: '))


if __name__ == '__main__':
    unittest.main()
