def cfg_bool(val):
    if isinstance(val, str):
        val = val.strip().lower()
    if val in (False, 'false', 'n', 'no', 'off', 0, '0'):
        return False
    if val in (True,  'true',  'y', 'yes', 'on', 1, '1'):
        return True
    return None


class CharsetList(tuple):
    """
    An ordered, read-only list of charset names, as found in settings
    like `send_charset` or `assumed_charset`. Earlier names win ties.

    >>> CharsetList('us-ascii:iso-8859-1: utf-8')
    ('us-ascii', 'iso-8859-1', 'utf-8')
    >>> CharsetList(['utf-8', '', 'UTF-8'])
    ('utf-8', 'UTF-8')
    >>> str(CharsetList('us-ascii::utf-8'))
    'us-ascii:utf-8'
    >>> CharsetList(None)
    ()
    """
    DELIM = ':'

    def __new__(cls, value=None, delim=None):
        delim = delim or cls.DELIM
        if value is None:
            items = []
        elif isinstance(value, (str, bytes)):
            if isinstance(value, bytes):
                value = str(value, 'latin-1')
            items = value.split(delim)
        else:
            items = list(value)
        return super().__new__(cls, (str(i).strip() for i in items if i and str(i).strip()))

    def __str__(self):
        return self.DELIM.join(self)
