import secrets

import config.conf as conf


def generate_locator() -> str:
    """Six symbols drawn uniformly from A-Z0-9. Uniqueness is the store's job."""
    return "".join(secrets.choice(conf.LOCATOR_ALPHABET) for _ in range(conf.LOCATOR_LENGTH))
