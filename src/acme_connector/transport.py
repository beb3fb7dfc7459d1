"""HTTP transport used by the connection."""
import base64
import logging
import re
from types import TracebackType
from typing import Dict
from typing import Mapping
from typing import Optional
from typing import Protocol
from typing import Type
from typing import Union

import requests
from requests.adapters import HTTPAdapter
from requests.structures import CaseInsensitiveDict

from acme_connector import errors

logger = logging.getLogger(__name__)

DEFAULT_NETWORK_TIMEOUT = 45

# pylint: disable=line-too-long
_ERR_REGEX = r".*host='(\S*)'.*Max retries exceeded with url\: (\/\w*).*(\[Errno \d+\])([A-Za-z ]*)"


def _transport_error(url: str, error: Exception) -> errors.TransportError:
    """Turn a requests exception into a readable `.TransportError`.

    The requests library emits exceptions with a lot of extra text, e.g.::

        HTTPSConnectionPool(host='acme-v01.api.letsencrypt.org',
        port=443): Max retries exceeded with url: /directory
        (Caused by NewConnectionError('
        <requests.packages.urllib3.connection.VerifiedHTTPSConnection
        object at 0x108356c50>: Failed to establish a new connection:
        [Errno 65] No route to host',))

    """
    m = re.match(_ERR_REGEX, str(error))
    if m is None:
        return errors.TransportError('Requesting {0} failed: {1}'.format(url, error))
    host, path, _err_no, err_msg = m.groups()
    return errors.TransportError(f"Requesting {host}{path}:{err_msg}")


class Handle(Protocol):
    """One HTTP exchange, as opened by a `Transport`."""
    method: str
    headers: Dict[str, str]

    def write(self, data: bytes) -> None: ...  # pragma: no cover

    def connect(self) -> None: ...  # pragma: no cover

    @property
    def status_code(self) -> int: ...  # pragma: no cover

    @property
    def response_headers(self) -> Mapping[str, str]: ...  # pragma: no cover

    def read(self) -> bytes: ...  # pragma: no cover

    def close(self) -> None: ...  # pragma: no cover

    def __enter__(self) -> 'Handle': ...  # pragma: no cover

    def __exit__(self, exc_type: Optional[Type[BaseException]],
                 exc_value: Optional[BaseException],
                 traceback: Optional[TracebackType]) -> None: ...  # pragma: no cover


class Transport(Protocol):
    """Opens HTTP exchanges for a `.Connection`."""

    def open(self, url: str) -> Handle: ...  # pragma: no cover

    def close(self) -> None: ...  # pragma: no cover


def _is_text(content_type: Optional[str]) -> bool:
    if not content_type:
        return True
    media_type = content_type.split(';')[0].strip().lower()
    return media_type.startswith('text/') or media_type.endswith('json')


class RequestsHandle:
    """A single HTTP exchange.

    Configure ``method``, ``headers`` and the body (:meth:`write`), then
    :meth:`connect`. Afterwards the response is available through
    :attr:`status_code`, :attr:`response_headers` and :meth:`read`. Must be
    closed, preferably by using the handle as a context manager.

    """

    def __init__(self, session: requests.Session, url: str, verify_ssl: bool,
                 timeout: float, user_agent: str) -> None:
        self.url = url
        self.method = 'GET'
        self.headers: Dict[str, str] = {'User-Agent': user_agent}
        self._session = session
        self._verify_ssl = verify_ssl
        self._timeout = timeout
        self._data: Optional[bytes] = None
        self._response: Optional[requests.Response] = None

    def write(self, data: bytes) -> None:
        """Set the request body."""
        if self._response is not None:
            raise errors.TransportError('Request to {0} was already sent'.format(self.url))
        self._data = (self._data or b'') + data

    def connect(self) -> None:
        """Send the request and receive the response headers.

        :raises .TransportError: in case of any network problems

        """
        if self.method == 'POST':
            logger.debug('Sending POST request to %s:\n%s', self.url, self._data)
        else:
            logger.debug('Sending %s request to %s.', self.method, self.url)
        try:
            self._response = self._session.request(
                self.method, self.url, data=self._data, headers=self.headers,
                verify=self._verify_ssl, timeout=self._timeout, stream=True)
        except requests.exceptions.RequestException as error:
            raise _transport_error(self.url, error) from error
        except OSError as error:
            raise errors.TransportError(
                'Requesting {0} failed: {1}'.format(self.url, error)) from error

    @property
    def response(self) -> requests.Response:
        """The response, available after `connect`."""
        if self._response is None:
            raise errors.NotConnected('Request to {0} was not sent yet'.format(self.url))
        return self._response

    @property
    def status_code(self) -> int:
        """HTTP status code of the response."""
        return self.response.status_code

    @property
    def response_headers(self) -> CaseInsensitiveDict:
        """HTTP headers of the response."""
        return self.response.headers

    def read(self) -> bytes:
        """Read the complete response body.

        :raises .TransportError: if the body cannot be received

        """
        response = self.response
        try:
            content = response.content
        except requests.exceptions.RequestException as error:
            raise _transport_error(self.url, error) from error
        except OSError as error:
            raise errors.TransportError(
                'Reading response from {0} failed: {1}'.format(self.url, error)) from error

        # Certificates are sent as binary DER. Log the base64 response instead
        # of raw bytes to keep binary data out of the logs.
        debug_content: Union[bytes, str]
        if _is_text(response.headers.get('Content-Type')):
            debug_content = content.decode('utf-8', 'replace')
        else:
            debug_content = base64.b64encode(content)
        logger.debug('Received response:\nHTTP %d\n%s\n\n%s',
                     response.status_code,
                     "\n".join("{0}: {1}".format(k, v)
                               for k, v in response.headers.items()),
                     debug_content)
        return content

    def close(self) -> None:
        """Release the underlying connection."""
        if self._response is not None:
            self._response.close()

    def __enter__(self) -> 'RequestsHandle':
        return self

    def __exit__(self, exc_type: Optional[Type[BaseException]],
                 exc_value: Optional[BaseException],
                 traceback: Optional[TracebackType]) -> None:
        self.close()


class RequestsTransport:
    """Transport based on a `requests.Session`.

    :param bool verify_ssl: Whether to verify certificates on SSL connections.
    :param str user_agent: String to send as User-Agent header.
    :param float timeout: Timeout for requests, in seconds.

    """

    def __init__(self, verify_ssl: bool = True, user_agent: str = 'acme-connector',
                 timeout: float = DEFAULT_NETWORK_TIMEOUT) -> None:
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent
        self.timeout = timeout
        self.session = requests.Session()
        adapter = HTTPAdapter()

        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def open(self, url: str) -> RequestsHandle:
        """Prepare a new exchange with ``url``."""
        return RequestsHandle(self.session, url, self.verify_ssl,
                              self.timeout, self.user_agent)

    def close(self) -> None:
        """Close all pooled connections."""
        self.session.close()

    def __del__(self) -> None:
        # Try to close the session, but don't show exceptions to the
        # user if the call to close() fails.
        try:
            self.session.close()
        except Exception:  # pylint: disable=broad-except
            pass
