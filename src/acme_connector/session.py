"""Replay nonce tracking."""
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class Session:
    """Session state shared by all requests of one ACME client.

    Holds the current replay nonce. The nonce is updated by
    :class:`acme_connector.connection.Connection` after every exchange, so
    a session must not be used by several connections concurrently without
    external locking.

    :ivar bytes nonce: Decoded replay nonce, or ``None`` if no nonce
        has been received yet.

    """

    def __init__(self, nonce: Optional[bytes] = None) -> None:
        self._nonce: Optional[bytes] = None
        if nonce is not None:
            self.nonce = nonce

    @property
    def nonce(self) -> Optional[bytes]:
        """Current replay nonce."""
        return self._nonce

    @nonce.setter
    def nonce(self, value: bytes) -> None:
        if not value:
            raise ValueError('Nonce must not be empty')
        self._nonce = value

    def reset(self) -> None:
        """Forget the current nonce.

        The next signed request will request a fresh nonce first.

        """
        if self._nonce is not None:
            logger.debug('Discarding nonce')
        self._nonce = None

    def __repr__(self) -> str:
        return '{0}(nonce={1!r})'.format(self.__class__.__name__, self._nonce)
