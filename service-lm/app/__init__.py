"""LM service package.

Layout:
- ``api``: FastAPI route handlers and request/response models.
- ``runtime``: service-local metrics helpers.

The lifecycle manager itself lives in ``libs.lifecycle``; this package only
exposes it over HTTP.
"""
