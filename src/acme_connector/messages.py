"""ACME problem documents."""
from typing import Any
from typing import Optional

import josepy as jose

from acme_connector import errors

PROBLEM_CONTENT_TYPE = 'application/problem+json'

ERROR_PREFIX = "urn:ietf:params:acme:error:"

ERROR_CODES = {
    'badCSR': 'The CSR is unacceptable (e.g., due to a short key)',
    'badNonce': 'The client sent an unacceptable anti-replay nonce',
    'connection': ('The server could not connect to the client to verify the'
                   ' domain'),
    'dnssec': 'The server could not validate a DNSSEC signed domain',
    'invalidEmail': 'The provided email for a registration was invalid',
    'malformed': 'The request message was malformed',
    'rateLimited': 'There were too many requests of a given type',
    'serverInternal': 'The server experienced an internal error',
    'tls': 'The server experienced a TLS error during domain verification',
    'unauthorized': 'The client lacks sufficient authorization',
    'unknownHost': 'The server could not resolve a domain name',
}

ERROR_TYPE_DESCRIPTIONS = {
    ERROR_PREFIX + name: desc for name, desc in ERROR_CODES.items()
}


def _decode_str(value: Any) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise jose.DeserializationError(
            "Expected a string, got {0!r}".format(value))
    return value


class Problem(jose.JSONObjectWithFields, errors.ServerProtocolError):
    """Problem document reported by the ACME server.

    https://datatracker.ietf.org/doc/html/rfc7807

    Note: Although Problem inherits from JSONObjectWithFields, which is immutable,
    we add mutability for Problem to comply with the Python exception API.

    :ivar str typ: Problem type URI.
    :ivar str title: Short summary of the problem type.
    :ivar str detail: Human readable explanation.

    """
    typ: str = jose.field('type', omitempty=True, default='about:blank',
                          decoder=_decode_str)
    title: Optional[str] = jose.field('title', omitempty=True, decoder=_decode_str)
    detail: Optional[str] = jose.field('detail', omitempty=True, decoder=_decode_str)

    @classmethod
    def with_code(cls, code: str, **kwargs: Any) -> 'Problem':
        """Create a Problem instance with an ACME error code.

        :str code: An ACME error code, like 'badNonce'.
        :kwargs: kwargs to pass to Problem.

        """
        if code not in ERROR_CODES:
            raise ValueError("The supplied code: %s is not a known ACME error"
                             " code" % code)
        return cls(typ=ERROR_PREFIX + code, **kwargs)

    @property
    def description(self) -> Optional[str]:
        """Hardcoded error description based on its type.

        :returns: Description if standard ACME error or ``None``.
        :rtype: str

        """
        return ERROR_TYPE_DESCRIPTIONS.get(self.typ)

    @property
    def code(self) -> Optional[str]:
        """ACME error code.

        Basically self.typ without the ERROR_PREFIX.

        :returns: error code if standard ACME code or ``None``.
        :rtype: str

        """
        code = str(self.typ).rsplit(':', maxsplit=1)[-1]
        if code in ERROR_CODES:
            return code
        return None

    # Allow mutability, exceptions get __traceback__ and friends assigned
    def __setattr__(self, name: str, value: Any) -> None:
        return object.__setattr__(self, name, value)

    def __str__(self) -> str:
        return b' :: '.join(
            part.encode('ascii', 'backslashreplace') for part in
            (self.typ, self.description, self.detail, self.title)
            if part is not None).decode()
