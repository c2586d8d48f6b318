"""Exceptions raised by seqtransit."""


class SeqTransitError(Exception):
    """Base class for seqtransit errors."""


class FeedDownloadError(SeqTransitError):
    """The static or real-time feed could not be downloaded."""


class RouteLookupError(SeqTransitError, LookupError):
    """A route query could not be answered from the published datasets."""

    def __init__(self, message: str, origin: str, destination: str):
        super().__init__(message)
        self.origin = origin
        self.destination = destination


class OriginNotFoundError(RouteLookupError):
    """No dataset has been published for the requested origin."""


class RouteNotFoundError(RouteLookupError):
    """The origin exists but no single trip reaches the destination from it."""
