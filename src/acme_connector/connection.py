"""Connection to an ACME server."""
import json
import logging
from types import TracebackType
from typing import Any
from typing import Callable
from typing import Dict
from typing import List
from typing import Mapping
from typing import Optional
from typing import Type

from cryptography import x509
import josepy as jose
from requests.structures import CaseInsensitiveDict

from acme_connector import account as acme_account
from acme_connector import directory
from acme_connector import errors
from acme_connector import jws
from acme_connector import messages
from acme_connector import session as acme_session
from acme_connector import transport as acme_transport
from acme_connector import util

logger = logging.getLogger(__name__)


class Exchange:
    """Result of one HTTP request.

    The response body can only be read once, by :meth:`read_body`.

    :ivar str method: HTTP method of the request.
    :ivar str url: Requested URL.
    :ivar int status_code: HTTP status code of the response.
    :ivar headers: Response headers, with case-insensitive names.
    :ivar messages.Problem problem: Problem reported by the server, if any.

    """
    SUCCESS = 'success'
    ERROR = 'error'

    def __init__(self, method: str, url: str, status_code: int,
                 headers: Mapping[str, str], content: bytes = b'') -> None:
        self.method = method
        self.url = url
        self.status_code = status_code
        self.headers = CaseInsensitiveDict(headers)
        self.problem: Optional[messages.Problem] = None
        self._content = content
        self._consumed = False

    @property
    def content_type(self) -> Optional[str]:
        """Media type of the response, without parameters."""
        content_type = self.headers.get('Content-Type')
        # Strip parameters from the media-type (rfc2616#section-3.7)
        if content_type:
            return content_type.split(';')[0].strip().lower()
        return None

    @property
    def channel(self) -> str:
        """`SUCCESS` for status codes below 400, `ERROR` otherwise."""
        return self.SUCCESS if self.status_code < 400 else self.ERROR

    @property
    def consumed(self) -> bool:
        """Whether the body was read already."""
        return self._consumed

    def receive_body(self, content: bytes) -> None:
        """Store the body, once it was received after the headers."""
        self._content = content

    def read_body(self) -> bytes:
        """Consume the response body.

        :raises .ProtocolError: if the body was read before.

        """
        if self._consumed:
            raise errors.ProtocolError(
                'Response body of {0} {1} was already read'.format(self.method, self.url))
        self._consumed = True
        return self._content

    def __repr__(self) -> str:
        return '{0}({1} {2}: HTTP {3})'.format(
            self.__class__.__name__, self.method, self.url, self.status_code)


class Connection:
    """Connects to the ACME server and offers methods for invoking the API.

    Each request replaces the current :class:`Exchange`; responses must be
    read with the ``read_*`` methods before the next request is sent.

    A connection is not thread safe.

    :param transport: Transport opening the HTTP exchanges. Defaults to
        a `.RequestsTransport` owned by this connection.

    """
    JSON_CONTENT_TYPE = 'application/json'
    PROBLEM_CONTENT_TYPE = messages.PROBLEM_CONTENT_TYPE
    REPLAY_NONCE_HEADER = 'Replay-Nonce'
    LOCATION_HEADER = 'Location'

    def __init__(self, transport: Optional[acme_transport.Transport] = None) -> None:
        self._owns_transport = transport is None
        self.transport: acme_transport.Transport = (
            transport if transport is not None else acme_transport.RequestsTransport())
        self._exchange: Optional[Exchange] = None

    @property
    def exchange(self) -> Optional[Exchange]:
        """Current exchange, or ``None`` before the first request."""
        return self._exchange

    def close(self) -> None:
        """Drop the current exchange, and the transport if owned."""
        self._exchange = None
        if self._owns_transport:
            self.transport.close()

    def __enter__(self) -> 'Connection':
        return self

    def __exit__(self, exc_type: Optional[Type[BaseException]],
                 exc_value: Optional[BaseException],
                 traceback: Optional[TracebackType]) -> None:
        self.close()

    def start_session(self, url: str, session: acme_session.Session) -> None:
        """Request a fresh replay nonce.

        Usually this method is not required, as a nonce is requested
        automatically before a signed request if the session has none.
        The current exchange is not changed.

        :param str url: URL a HEAD request is sent to.
        :param .Session session: Session receiving the nonce.

        :raises .TransportError: if the request fails.
        :raises .NonceError: if the response has no valid nonce.

        """
        logger.debug('Requesting fresh nonce from %s', url)
        exchange = self._send('HEAD', url, {'Accept-Charset': 'utf-8'})
        session.nonce = self._nonce_from(exchange)

    def send_request(self, url: str) -> int:
        """Send a simple GET request.

        :param str url: URL to send the request to.

        :returns: HTTP status code.
        :raises .TransportError: if the request fails.
        :raises .ServerProtocolError: if the server reported a problem.

        """
        self._exchange = None
        self._exchange = self._send('GET', url, {'Accept-Charset': 'utf-8'})
        self._check_problem(self._exchange)
        return self._exchange.status_code

    def send_signed_request(self, url: str, claims: jose.JSONDeSerializable,
                            session: acme_session.Session,
                            account: acme_account.Account) -> int:
        """Send a signed POST request.

        The nonce of ``session`` is spent by this request and replaced by
        the nonce of the response, even if the server reported a problem.

        :param str url: URL to send the request to.
        :param claims: Claims to send, usually a `.ClaimBuilder`.
        :param .Session session: Session providing the replay nonce.
        :param .Account account: Account used for signing the request.

        :returns: HTTP status code.
        :raises .SigningError: if the request cannot be signed.
        :raises .TransportError: if the request fails.
        :raises .ProtocolError: if no nonce is available.
        :raises .ServerProtocolError: if the server reported a problem.

        """
        if session.nonce is None:
            self.start_session(url, session)
        nonce = session.nonce
        if nonce is None:
            raise errors.ProtocolError('No nonce available')

        logger.debug('Signing request to %s', url)
        data = jws.sign_claims(claims, nonce, account)

        nonce_errors: List[errors.NonceError] = []

        def refresh_nonce(exchange: Exchange) -> None:
            try:
                session.nonce = self._nonce_from(exchange)
            except errors.NonceError as error:
                nonce_errors.append(error)

        session.reset()
        self._exchange = None
        self._exchange = self._send('POST', url, {
            'Accept': self.JSON_CONTENT_TYPE,
            'Accept-Charset': 'utf-8',
            'Content-Type': self.JSON_CONTENT_TYPE,
        }, data, on_headers=refresh_nonce)

        self._check_problem(self._exchange)
        if nonce_errors:
            raise nonce_errors[0]
        return self._exchange.status_code

    def read_json(self) -> Optional[Dict[str, Any]]:
        """Read the response as JSON object.

        Reads the error body if the request failed (status 400 or above).

        :returns: Parsed JSON object, or ``None`` if the body is empty.
        :raises .ProtocolError: if the body is not a JSON object.

        """
        exchange = self._current()
        logger.debug('Reading %s body of %r', exchange.channel, exchange)
        result = self._parse_json(exchange)
        if result is not None and not isinstance(result, dict):
            raise errors.ProtocolError(
                'Expected a JSON object, got {0!r}'.format(result))
        logger.debug('Result JSON: %s', result)
        return result

    def read_certificate(self) -> x509.Certificate:
        """Read the response as X.509 certificate, in DER or PEM format.

        :raises .ProtocolError: if the body is not a valid certificate.

        """
        exchange = self._current_success('certificate')
        content = exchange.read_body()
        try:
            if content.lstrip().startswith(b'-----BEGIN'):
                return x509.load_pem_x509_certificate(content)
            return x509.load_der_x509_certificate(content)
        except ValueError as error:
            raise errors.ProtocolError(
                'Error while decoding the X.509 certificate: {0}'.format(error)) from error

    def read_resource_directory(self) -> directory.Directory:
        """Read the response as resource directory.

        :raises .ProtocolError: if the directory cannot be parsed.

        """
        exchange = self._current_success('resource directory')
        jobj = self._parse_json(exchange)
        if jobj is None:
            raise errors.ProtocolError('Empty resource directory')
        resources = directory.Directory.from_json(jobj)
        logger.debug('Resource directory: %s', resources)
        return resources

    def get_location(self) -> Optional[str]:
        """Get the URI from the ``Location`` header.

        :returns: Location URI, or ``None`` if no Location header was set.
        :raises .ProtocolError: if the header is not a valid URI.

        """
        location = self._current().headers.get(self.LOCATION_HEADER)
        if location is None:
            return None
        logger.debug('Location: %s', location)
        try:
            return util.parse_uri(location)
        except ValueError as error:
            raise errors.ProtocolError(
                'Bad Location header: {0}'.format(location)) from error

    def _send(self, method: str, url: str, headers: Mapping[str, str],
              data: Optional[bytes] = None,
              on_headers: Optional[Callable[[Exchange], None]] = None) -> Exchange:
        """Perform one exchange.

        ``on_headers`` is called as soon as the response headers are
        received, before the body is read, so it also runs when reading
        the body fails.

        """
        with self.transport.open(url) as handle:
            handle.method = method
            handle.headers.update(headers)
            if data is not None:
                handle.write(data)
            handle.connect()
            exchange = Exchange(method, url, handle.status_code, handle.response_headers)
            if on_headers is not None:
                on_headers(exchange)
            if method != 'HEAD':
                exchange.receive_body(handle.read())
            return exchange

    def _current(self) -> Exchange:
        if self._exchange is None:
            raise errors.NotConnected('Not connected')
        if self._exchange.problem is not None:
            raise self._exchange.problem
        return self._exchange

    def _current_success(self, what: str) -> Exchange:
        exchange = self._current()
        if exchange.channel == Exchange.ERROR:
            raise errors.ProtocolError('Cannot read {0} from failed request to {1} '
                                       '(HTTP {2})'.format(what, exchange.url,
                                                           exchange.status_code))
        return exchange

    def _check_problem(self, exchange: Exchange) -> None:
        """Raise the problem document the server responded with, if any.

        :raises .ServerProtocolError: if the response is a problem document.
        :raises .ProtocolError: if the problem document cannot be parsed.

        """
        if exchange.content_type != self.PROBLEM_CONTENT_TYPE:
            return
        jobj = self._parse_json(exchange)
        if not isinstance(jobj, dict):
            raise errors.ProtocolError(
                'Problem document must be a JSON object, got {0!r}'.format(jobj))
        try:
            problem = messages.Problem.from_json(jobj)
        except jose.DeserializationError as error:
            raise errors.ProtocolError(
                'Invalid problem document: {0!r}'.format(jobj)) from error
        logger.debug('Server reported problem: %s', problem)
        exchange.problem = problem
        raise problem

    @classmethod
    def _parse_json(cls, exchange: Exchange) -> Any:
        content = exchange.read_body()
        if not content.strip():
            return None
        try:
            return json.loads(content)
        except ValueError as error:
            raise errors.ProtocolError(
                'Failed to parse response: {0!r}'.format(content)) from error

    @classmethod
    def _nonce_from(cls, exchange: Exchange) -> bytes:
        nonce = exchange.headers.get(cls.REPLAY_NONCE_HEADER)
        if nonce is None:
            raise errors.MissingNonce(exchange.method, exchange.headers)
        decoded_nonce = jws.decode_nonce(nonce)
        if not decoded_nonce:
            raise errors.BadNonce(nonce, ValueError('empty nonce'))
        logger.debug('Storing nonce: %s', nonce)
        return decoded_nonce
