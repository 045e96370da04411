"""
Error types for track simulation and regularization.

Structural problems (bad generator parameters, a broken phase chain) are raised
immediately. Point-level timing anomalies are not exceptions; see
tracksim.data.regularization for the DriftExceeded / OffSchedule records.
"""


class TrackSimError(Exception):
    """Base class for all tracksim errors"""


class DegenerateParameters(TrackSimError, ValueError):
    """Generator called with parameters that cannot produce a walk."""


class InvalidPhaseChain(TrackSimError):
    """A phase's start location does not continue the previous phase."""


class DriftToleranceError(TrackSimError):
    """
    Raised on request when one or more fixes drifted beyond tolerance.

    Carries the offending records so callers can still report them.
    """

    def __init__(self, anomalies):
        self.anomalies = list(anomalies)
        super().__init__(
            f"{len(self.anomalies)} fix(es) exceeded the drift tolerance"
        )
