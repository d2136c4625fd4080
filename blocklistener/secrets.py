"""Secret lookup for the store password and the Sentry DSN.

Values stored in the OS keyring under the "blocklistener" service win over the
process environment, so a container can ship env defaults that a host keyring
overrides.
"""

import logging
import os

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)

SERVICE_NAME = "blocklistener"


def get_secret(name: str) -> str | None:
    """Keyring value for name, else the environment variable of the same name."""
    try:
        stored = keyring.get_password(SERVICE_NAME, name)
    except KeyringError as e:
        logger.debug("No keyring value for %s (%s); using environment", name, e)
        stored = None
    return stored or os.environ.get(name)
