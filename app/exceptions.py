"""Exceptions raised by the account store, token service and notifier.

The account service catches these and turns them into ``AuthResult`` failures;
nothing here is meant to reach an HTTP client directly.
"""


class AccountStoreError(Exception):
    """Unclassified failure while reading or writing user records."""


class DuplicateEmailError(AccountStoreError):
    """A user with the same email already exists."""


class RecordNotFoundError(AccountStoreError):
    """No user record matches the lookup key."""


class StaleRecordError(AccountStoreError):
    """The user row changed (or vanished) between read and write."""


class TokenError(Exception):
    """Bearer credential could not be verified."""


class InvalidSignatureError(TokenError):
    """Signature mismatch, unexpected algorithm or malformed token."""


class TokenExpiredError(TokenError):
    """Token was valid but its expiry has passed."""


class NotificationError(Exception):
    """Out-of-band message could not be delivered."""
