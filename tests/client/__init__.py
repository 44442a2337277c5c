# tests/client/__init__.py

"""
Tests of the async client SDK. The API is replaced by `httpx.MockTransport` handlers.
"""
