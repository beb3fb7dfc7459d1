"""Test utilities.

.. warning:: This module is not part of the public API.

"""
from datetime import datetime, timedelta, timezone
import functools
from typing import Dict
from typing import List
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID
import josepy as jose
from requests.structures import CaseInsensitiveDict


@functools.lru_cache(maxsize=None)
def rsa_private_key() -> rsa.RSAPrivateKey:
    """RSA private key, generated once per test run."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def rsa_jwk() -> jose.JWKRSA:
    """RSA account key as JWK."""
    return jose.JWKRSA(key=rsa_private_key())


def rsa_pem() -> bytes:
    """RSA private key serialized as unencrypted PEM."""
    return rsa_private_key().private_bytes(
        serialization.Encoding.PEM, serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption())


@functools.lru_cache(maxsize=None)
def ec_private_key() -> ec.EllipticCurvePrivateKey:
    """P-256 private key, generated once per test run."""
    return ec.generate_private_key(ec.SECP256R1())


def ec_jwk() -> jose.JWKEC:
    """P-256 account key as JWK."""
    return jose.JWKEC(key=ec_private_key())


def ec_pem() -> bytes:
    """P-256 private key serialized as unencrypted PEM."""
    return ec_private_key().private_bytes(
        serialization.Encoding.PEM, serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption())


@functools.lru_cache(maxsize=None)
def self_signed_cert(common_name: str = 'example.com') -> x509.Certificate:
    """Self signed certificate for the RSA test key."""
    key = rsa_private_key()
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .sign(key, hashes.SHA256())
    )


class FakeHandle:
    """Transport handle replaying a canned response."""

    def __init__(self, url: str, status_code: int, headers: Dict[str, str],
                 content: bytes, error: Optional[Exception] = None,
                 read_error: Optional[Exception] = None) -> None:
        self.url = url
        self.method = 'GET'
        self.headers: Dict[str, str] = {}
        self.data: Optional[bytes] = None
        self.connected = False
        self.closed = False
        self._status_code = status_code
        self._response_headers = CaseInsensitiveDict(headers)
        self._content = content
        self._error = error
        self._read_error = read_error

    def write(self, data: bytes) -> None:
        self.data = data

    def connect(self) -> None:
        if self._error is not None:
            raise self._error
        self.connected = True

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def response_headers(self) -> CaseInsensitiveDict:
        return self._response_headers

    def read(self) -> bytes:
        if self._read_error is not None:
            raise self._read_error
        return self._content

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> 'FakeHandle':
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class FakeTransport:
    """Transport serving queued responses, recording every handle opened."""

    def __init__(self) -> None:
        self.handles: List[FakeHandle] = []
        self._responses: List[tuple] = []
        self.closed = False

    def add_response(self, status_code: int = 200, headers: Optional[Dict[str, str]] = None,
                     content: bytes = b'', error: Optional[Exception] = None,
                     read_error: Optional[Exception] = None) -> None:
        """Queue the response of the next exchange.

        ``error`` is raised when connecting, ``read_error`` when reading
        the body after the headers were received.

        """
        self._responses.append(
            (status_code, dict(headers or {}), content, error, read_error))

    def open(self, url: str) -> FakeHandle:
        if not self._responses:
            raise AssertionError('Unexpected request to {0}'.format(url))
        status_code, headers, content, error, read_error = self._responses.pop(0)
        handle = FakeHandle(url, status_code, headers, content, error, read_error)
        self.handles.append(handle)
        return handle

    def close(self) -> None:
        self.closed = True

    @property
    def requests(self) -> List[tuple]:
        """(method, url) of every exchange so far."""
        return [(handle.method, handle.url) for handle in self.handles]
