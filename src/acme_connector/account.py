"""Signing identity of an ACME client."""
from typing import Optional

import josepy as jose


class Account:
    """Key pair used to sign requests.

    :ivar josepy.JWK key: Account private key.
    :ivar josepy.JWASignature alg: Algorithm used for signing requests.

    """

    def __init__(self, key: jose.JWK, alg: jose.JWASignature = jose.RS256) -> None:
        self.key = key
        self.alg = alg

    @classmethod
    def load(cls, data: bytes, password: Optional[bytes] = None,
             alg: jose.JWASignature = jose.RS256) -> 'Account':
        """Load an account from a serialized private key.

        :param bytes data: Private key serialized as PEM or DER.
        :param bytes password: Optional password of the key.
        :param josepy.JWASignature alg: Signing algorithm.

        :raises josepy.errors.Error: if the key cannot be deserialized, or
            is not a key for ``alg``.

        """
        key = jose.JWK.load(data, password=password)
        # JWK.load falls back to a symmetric key for unparsable input
        if not isinstance(key, alg.kty) or isinstance(key, jose.JWKOct):
            raise jose.Error('Expected a {0} private key for {1}, got {2}'.format(
                alg.kty.__name__, alg.name, type(key).__name__))
        return cls(key, alg=alg)

    @property
    def public_key(self) -> jose.JWK:
        """Public part of the account key."""
        return self.key.public_key()

    def __repr__(self) -> str:
        return '{0}(alg={1})'.format(self.__class__.__name__, self.alg.name)
