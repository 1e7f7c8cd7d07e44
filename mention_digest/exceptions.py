"""Exceptions raised by the mention digest pipeline."""


class MentionDigestError(Exception):
    """Base class for mention digest errors."""


class ConfigurationError(MentionDigestError):
    """Required configuration is missing or invalid."""


class SearchError(MentionDigestError):
    """The mention search failed; the run for that user cannot continue."""


class DeliveryError(MentionDigestError):
    """The digest could not be delivered to the user."""


class TokenDecryptionError(MentionDigestError):
    """A stored access token could not be decrypted."""
