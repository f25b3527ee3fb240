"""Blockify API package.

Optional FastAPI service layer around the normalization pipeline and the
HTML renderer.
"""

from .server import create_app  # noqa: F401
