"""Exceptions raised by the voting session for host misuse."""


class TierVoterError(Exception):
    """Base exception for all Tierlist Voter errors."""


class VoteError(TierVoterError):
    """Raised when a vote does not match the pair currently on offer."""


class UndoError(TierVoterError):
    """Raised when there is no vote to undo."""


class TierConfigError(TierVoterError):
    """Raised when a tier configuration change would leave it invalid."""
