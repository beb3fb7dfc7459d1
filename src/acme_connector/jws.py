"""ACME-specific JWS.

The JWS implementation in josepy only implements the base JOSE standard. In
order to support the ``nonce`` header field defined in ACME, this module
defines some ACME-specific classes that layer on top of josepy, and builds
the signed body of a request from its claims.
"""
import logging
from typing import Optional

import josepy as jose

from acme_connector import account as acme_account
from acme_connector import errors

logger = logging.getLogger(__name__)


class Header(jose.Header):
    """ACME-specific JOSE Header. Implements nonce.
    """
    nonce: Optional[bytes] = jose.field('nonce', omitempty=True, encoder=jose.encode_b64jose)

    # Mypy does not understand the josepy magic happening here, and falsely claims
    # that nonce is redefined. Let's ignore the type check here.
    @nonce.decoder  # type: ignore[no-redef,attr-defined,union-attr]
    def nonce(value: str) -> bytes:  # type: ignore[misc]  # pylint: disable=no-self-argument,missing-function-docstring
        try:
            return jose.decode_b64jose(value)
        except jose.DeserializationError as error:
            raise jose.DeserializationError("Invalid nonce: {0}".format(error))


class Signature(jose.Signature):
    """ACME-specific Signature. Uses ACME-specific Header for customer fields."""
    __slots__ = jose.Signature._orig_slots  # type: ignore[attr-defined]  # pylint: disable=protected-access,no-member

    header_cls = Header
    header: Header = jose.field(
        'header', omitempty=True, default=header_cls(),
        decoder=header_cls.from_json)


class JWS(jose.JWS):
    """ACME-specific JWS. Includes alg, jwk and nonce in protected header."""
    signature_cls = Signature
    __slots__ = jose.JWS._orig_slots  # type: ignore[attr-defined]  # pylint: disable=protected-access

    @classmethod
    # type: ignore[override]  # pylint: disable=arguments-differ
    def sign(cls, payload: bytes, key: jose.JWK, alg: jose.JWASignature,
             nonce: bytes) -> jose.JWS:
        return super().sign(payload, key=key, alg=alg,
                            protect=frozenset(['nonce', 'jwk', 'alg']),
                            nonce=nonce, include_jwk=True)


def decode_nonce(value: str) -> bytes:
    """Decode the value of a ``Replay-Nonce`` header.

    :raises .BadNonce: if the value is not unpadded base64url.

    """
    try:
        return jose.decode_b64jose(value)
    except jose.DeserializationError as error:
        raise errors.BadNonce(value, error) from error


def sign_claims(claims: jose.JSONDeSerializable, nonce: bytes,
                account: acme_account.Account) -> bytes:
    """Wrap claims in a JWS signed by the account key.

    :param claims: Payload of the request, usually a `.ClaimBuilder`.
    :param bytes nonce: Replay nonce to put into the protected header.
    :param .Account account: Signing identity.

    :returns: UTF-8 encoded JSON serialization of the JWS.
    :raises .SigningError: if the JWS cannot be constructed.

    """
    if not nonce:
        raise errors.SigningError('Cannot sign a request without nonce')
    if not isinstance(account.key, account.alg.kty):
        raise errors.SigningError('{0} cannot be used with a {1} key'.format(
            account.alg.name, type(account.key).__name__))
    try:
        payload = claims.json_dumps(indent=2).encode()
        logger.debug('JWS payload:\n%s', payload)
        signed = JWS.sign(payload, key=account.key, alg=account.alg, nonce=nonce)
        return signed.json_dumps(indent=2).encode()
    except (jose.Error, TypeError, ValueError) as error:
        raise errors.SigningError('Failed to sign request: {0}'.format(error)) from error
