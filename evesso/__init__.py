"""Async OAuth2 single sign-on client with JWKS-backed token verification."""

import logging

__version__ = "0.1.0"
__homepage__ = "https://github.com/evesso/evesso"

logging.getLogger(__name__).addHandler(logging.NullHandler())
