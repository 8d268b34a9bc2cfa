class DaipkError(Exception):
    """Base exception for all errors raised by this package"""


class ImproperlyConfigured(DaipkError):
    """Invalid identity, separator or capacity policy"""


class LeaseError(DaipkError):
    """A command was issued with a token that is not (or no longer) leased"""


class LeaseTimeout(LeaseError):
    """No lease could be acquired from the pool within the configured timeout"""


class ShardLimitExceeded(DaipkError):
    """Auto-sharding would exceed the configured maximum number of shards"""
