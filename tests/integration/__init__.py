"""Integration tests for backend switching system.

Tests the end-to-end functionality of the pluggable backend architecture,
including factory patterns, config integration, and output compatibility.
"""
