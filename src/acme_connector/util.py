"""ACME connector utilities."""
from typing import Any
import urllib.parse

_FORBIDDEN_URI_CHARACTERS = frozenset(' <>"{}|\\^`')


def parse_uri(value: Any) -> str:
    """Validate the syntax of an absolute or relative URI reference.

    :returns: The URI, unchanged.
    :raises ValueError: if ``value`` is not a string or contains characters
        that may not appear in a URI.

    """
    if not isinstance(value, str):
        raise ValueError('URI must be a string, got {0!r}'.format(value))
    if not value:
        raise ValueError('URI must not be empty')
    for char in value:
        if char in _FORBIDDEN_URI_CHARACTERS or not char.isprintable():
            raise ValueError('Illegal character {0!r} in URI {1!r}'.format(char, value))
    parsed = urllib.parse.urlsplit(value)
    # urlsplit only validates bracketed hosts when the port is accessed
    parsed.port  # pylint: disable=pointless-statement
    if parsed.scheme and not (parsed.netloc or parsed.path):
        raise ValueError('URI {0!r} has no authority or path'.format(value))
    return value
