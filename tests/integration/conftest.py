"""
Pytest configuration for integration tests.

Integration tests run the STT service end to end with the fake vosk module
from the top-level conftest and local aiohttp servers in place of the cloud.
"""
