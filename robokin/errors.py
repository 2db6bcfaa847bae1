"""Exception hierarchy shared by the kinematics, IK and control modules."""
from __future__ import annotations


class KinematicsError(Exception):
    """Base class for all errors raised by :mod:`robokin`."""


class ConfigurationError(KinematicsError, ValueError):
    """Raised when a chain, arm or controller is set up inconsistently.

    Covers wrong parameter counts, mismatched vector lengths, empty chains
    and invalid joint references. Fatal to the call, never to the process.
    """


class IKError(KinematicsError):
    """Base class for recoverable inverse-kinematics failures."""


class WorkspaceError(IKError):
    """The requested target lies outside the reachable workspace."""


class DegenerateOrientationError(IKError):
    """A closed-form solution produced a non-finite joint angle."""


class IKConvergenceError(IKError):
    """An iterative solver stopped before meeting its tolerances."""

    def __init__(self, message: str, q_last=None):
        super().__init__(message)
        self.q_last = q_last
