"""Tests for acme_connector.account."""
import sys
import unittest

import josepy as jose
import pytest

from acme_connector._internal.tests import test_util


class AccountTest(unittest.TestCase):
    """Tests for acme_connector.account.Account."""

    def setUp(self):
        from acme_connector.account import Account
        self.key = test_util.rsa_jwk()
        self.account = Account(self.key)

    def test_default_alg(self):
        assert self.account.alg == jose.RS256

    def test_public_key(self):
        assert self.account.public_key == self.key.public_key()

    def test_load(self):
        from acme_connector.account import Account
        account = Account.load(test_util.rsa_pem())
        assert account.key == self.key
        assert account.alg == jose.RS256

    def test_load_invalid(self):
        from acme_connector.account import Account
        with pytest.raises(jose.Error):
            Account.load(b'not a key')
        with pytest.raises(jose.Error):
            Account.load(b'')

    def test_load_ec(self):
        from acme_connector.account import Account
        account = Account.load(test_util.ec_pem(), alg=jose.ES256)
        assert account.key == test_util.ec_jwk()
        assert account.alg == jose.ES256

    def test_load_wrong_key_type(self):
        from acme_connector.account import Account
        with pytest.raises(jose.Error):
            Account.load(test_util.ec_pem())
        with pytest.raises(jose.Error):
            Account.load(test_util.rsa_pem(), alg=jose.ES256)

    def test_repr(self):
        assert repr(self.account) == 'Account(alg=RS256)'


if __name__ == '__main__':
    sys.exit(pytest.main(sys.argv[1:] + [__file__]))  # pragma: no cover
