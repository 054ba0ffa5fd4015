# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

""" Contains various error classes for use throughout flanker """


class FlankerError(Exception):
    """ A general catch-all for errors within flanker """
    pass


class ConfigurationError(FlankerError, ValueError):
    """ An error for when options are malformed, e.g. an empty genome set or
        a negative distance. Always raised before any data is fetched.
    """
    pass


class NotFoundError(FlankerError, KeyError):
    """ An error for when a requested sequence or feature is absent from the
        data source.

        Most lookups report absence with None instead, this is only raised by
        the strict variants.
    """
    pass


class UpstreamError(FlankerError):
    """ An error for when the external query service fails or returns
        malformed data.
    """
    pass


class InvariantViolation(FlankerError, AssertionError):
    """ An error for internal consistency failures that correct input should
        never trigger, e.g. a region ending before it starts.
    """
    pass
