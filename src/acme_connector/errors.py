"""ACME connector errors.

Every error raised by this package derives from :class:`Error`. Callers that
need to react differently to network trouble, malformed data, problems
reported by the server, or signing failures catch the respective subclass.

"""
from typing import Any
from typing import Mapping


class Error(Exception):
    """Generic ACME connector error."""


class TransportError(Error):
    """Network or I/O failure while talking to the ACME server."""


class ProtocolError(Error):
    """Malformed or missing data in a server response."""


class NonceError(ProtocolError):
    """Server response nonce error."""


class BadNonce(NonceError):
    """Bad nonce error."""
    def __init__(self, nonce: str, error: Exception, *args: Any) -> None:
        super().__init__(*args)
        self.nonce = nonce
        self.error = error

    def __str__(self) -> str:
        return 'Invalid nonce ({0!r}): {1}'.format(self.nonce, self.error)


class MissingNonce(NonceError):
    """Missing nonce error.

    The ACME server must include a Replay-Nonce header field in each
    response it provides to a client.

    :ivar str method: HTTP method of the request
    :ivar headers: Mapping of HTTP response headers

    """
    def __init__(self, method: str, headers: Mapping, *args: Any) -> None:
        super().__init__(*args)
        self.method = method
        self.headers = dict(headers)

    def __str__(self) -> str:
        return ('Server {0} response did not include a replay '
                'nonce, headers: {1} (This may be a service outage)'.format(
                    self.method, self.headers))


class ServerProtocolError(Error):
    """The server reported a problem document.

    The concrete exception raised is :class:`acme_connector.messages.Problem`,
    which exposes the machine readable ``typ`` and the human readable
    ``detail`` of the problem.

    """


class SigningError(Error):
    """The signed request body could not be constructed."""


class NotConnected(Error):
    """A response was read before any request was sent."""
