"""Claims sent in the payload of a signed request."""
from typing import Any
from typing import Dict
from typing import Iterator
from typing import Mapping

import josepy as jose

from acme_connector import directory


class ClaimBuilder(jose.JSONDeSerializable):
    """Builder for the JSON object sent to the ACME server.

    Insertion order of the claims is preserved. All ``put*`` methods
    return the builder itself, so calls can be chained::

        claims = ClaimBuilder()
        claims.put_resource(Resource.NEW_REG).put('contact', ['mailto:a@b.c'])

    """

    def __init__(self) -> None:
        self._claims: Dict[str, Any] = {}

    def put(self, key: str, value: Any) -> 'ClaimBuilder':
        """Put a claim. An existing claim with the same key is replaced."""
        if not isinstance(key, str) or not key:
            raise ValueError('Claim key must be a non-empty string')
        self._claims[key] = value
        return self

    def put_resource(self, resource: directory.Resource) -> 'ClaimBuilder':
        """Put the ``resource`` claim naming the invoked resource."""
        return self.put('resource', resource.value)

    def put_base64(self, key: str, data: bytes) -> 'ClaimBuilder':
        """Put binary data, encoded as unpadded base64url."""
        return self.put(key, jose.encode_b64jose(data))

    def put_key(self, key: str, jwk: jose.JWK) -> 'ClaimBuilder':
        """Put the public part of ``jwk`` as JSON Web Key."""
        return self.put(key, jwk.public_key())

    def object(self, key: str) -> 'ClaimBuilder':
        """Put a nested object and return its builder."""
        sub_claims = ClaimBuilder()
        self.put(key, sub_claims)
        return sub_claims

    def array(self, key: str, *values: Any) -> 'ClaimBuilder':
        """Put a JSON array."""
        return self.put(key, list(values))

    def __getitem__(self, key: str) -> Any:
        return self._claims[key]

    def __contains__(self, key: object) -> bool:
        return key in self._claims

    def __iter__(self) -> Iterator[str]:
        return iter(self._claims)

    def __len__(self) -> int:
        return len(self._claims)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ClaimBuilder):
            return NotImplemented
        return self.to_json() == other.to_json()

    def __repr__(self) -> str:
        return '{0}({1})'.format(self.__class__.__name__, self.json_dumps())

    def to_partial_json(self) -> Dict[str, Any]:
        return dict(self._claims)

    @classmethod
    def from_json(cls, jobj: Mapping[str, Any]) -> 'ClaimBuilder':
        if not isinstance(jobj, Mapping):
            raise jose.DeserializationError(
                'Claims must be a JSON object, got {0!r}'.format(jobj))
        claims = cls()
        for key, value in jobj.items():
            if isinstance(value, Mapping):
                value = cls.from_json(value)
            claims.put(key, value)
        return claims
