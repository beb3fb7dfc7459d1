"""ACME connection layer.

This package implements the request/response plumbing of an `ACME`_ client:
replay nonce tracking, signing of requests and classification of server
responses.

.. _`ACME`: https://datatracker.ietf.org/doc/html/rfc8555

"""
__version__ = '0.1.0'
