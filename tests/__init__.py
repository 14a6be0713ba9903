"""Tests for the LM platform.

Lifecycle and API tests run against an in-memory engine. Backend tests stub
the native runtimes and are skipped when the backend library is not installed.
"""
