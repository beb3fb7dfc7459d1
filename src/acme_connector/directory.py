"""ACME resource directory."""
import enum
import logging
from typing import Any
from typing import Dict
from typing import Iterator
from typing import Mapping
from typing import Optional

from acme_connector import errors
from acme_connector import util

logger = logging.getLogger(__name__)


class Resource(enum.Enum):
    """Resources offered by an ACME server, named as in the directory."""
    NEW_REG = 'new-reg'
    NEW_AUTHZ = 'new-authz'
    NEW_CERT = 'new-cert'
    REVOKE_CERT = 'revoke-cert'

    @classmethod
    def parse(cls, name: str) -> Optional['Resource']:
        """Find the resource with the given directory name.

        :returns: Matching resource, or ``None`` if the name is unknown.

        """
        try:
            return cls(name)
        except ValueError:
            return None


class Directory(Mapping[Resource, str]):
    """Immutable mapping of :class:`Resource` to the URI that serves it."""

    def __init__(self, resources: Mapping[Resource, str]) -> None:
        self._resources: Dict[Resource, str] = dict(resources)

    def __getitem__(self, resource: Resource) -> str:
        try:
            return self._resources[resource]
        except KeyError:
            raise KeyError('Directory resource "{0}" not found'.format(
                getattr(resource, 'value', resource)))

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._resources)

    def __len__(self) -> int:
        return len(self._resources)

    def __repr__(self) -> str:
        return '{0}({1})'.format(self.__class__.__name__, ', '.join(
            '{0}={1}'.format(resource.value, uri)
            for resource, uri in self._resources.items()))

    @classmethod
    def from_json(cls, jobj: Any) -> 'Directory':
        """Build a directory from a parsed directory document.

        Unknown resource names are ignored.

        :raises .ProtocolError: if the document is not a JSON object or a
            known resource is not mapped to a valid URI.

        """
        if not isinstance(jobj, Mapping):
            raise errors.ProtocolError(
                'Resource directory must be a JSON object, got {0!r}'.format(jobj))
        resources = {}
        for name, value in jobj.items():
            resource = Resource.parse(name)
            if resource is None:
                logger.debug('Ignoring unknown directory resource %r', name)
                continue
            try:
                resources[resource] = util.parse_uri(value)
            except ValueError as error:
                raise errors.ProtocolError(
                    'Bad URI for resource {0}: {1}'.format(name, error)) from error
        return cls(resources)
