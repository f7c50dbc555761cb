"""Event system for decoupling the voting core from presentation.

The voting session emits events without knowing who renders them. A
presentation layer (web page, terminal UI, tests) implements whichever
callbacks it cares about.
"""

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from tiervoter.ranker.models import MatchRecord, Progress, VoteOutcome


class EventHandler(Protocol):
    """Protocol for event handlers that process events from the voting session."""

    def on_vote(
        self,
        outcome: "VoteOutcome",
        **kwargs: Any
    ) -> None:
        """Called after a vote has been applied.

        Args:
            outcome: Updated competitors and their ranks before and after
            **kwargs: Additional context
        """
        ...

    def on_undo(
        self,
        record: "MatchRecord",
        **kwargs: Any
    ) -> None:
        """Called after the last vote has been undone.

        Args:
            record: The match record that was removed
            **kwargs: Additional context
        """
        ...

    def on_progress(
        self,
        progress: "Progress",
        **kwargs: Any
    ) -> None:
        """Called whenever the number of completed pairs changes.

        Args:
            progress: Completed and total pairs for the cycle
            **kwargs: Additional context
        """
        ...

    def on_finished(
        self,
        **kwargs: Any
    ) -> None:
        """Called when every pair in the cycle has been voted on."""
        ...

    def on_reset(
        self,
        **kwargs: Any
    ) -> None:
        """Called after ratings, history and the queue have been reset."""
        ...


class NullEventHandler:
    """Null event handler that does nothing.

    Useful as a default when no event handling is needed.
    """

    def on_vote(self, *args: Any, **kwargs: Any) -> None:
        pass

    def on_undo(self, *args: Any, **kwargs: Any) -> None:
        pass

    def on_progress(self, *args: Any, **kwargs: Any) -> None:
        pass

    def on_finished(self, *args: Any, **kwargs: Any) -> None:
        pass

    def on_reset(self, *args: Any, **kwargs: Any) -> None:
        pass
