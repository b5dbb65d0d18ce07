"""State machine for one fetch of a source key."""

from enum import Enum

import structlog


logger = structlog.get_logger()


class FetchState(str, Enum):
    """Lifecycle of a single fetch.

    - PENDING: Not yet started
    - FETCHING: Paging the remote source
    - MERGING: Combining fetched pages with cached records
    - DONE: Merged records stored
    - FAILED: Fetch or merge failed; cached records served
    - CACHED: Served from cache without paging (fresh, in flight, or
      cache-only mode)
    """

    PENDING = "PENDING"
    FETCHING = "FETCHING"
    MERGING = "MERGING"
    DONE = "DONE"
    FAILED = "FAILED"
    CACHED = "CACHED"


_VALID_TRANSITIONS: dict[FetchState, set[FetchState]] = {
    FetchState.PENDING: {
        FetchState.FETCHING,
        FetchState.CACHED,
        FetchState.FAILED,
    },
    FetchState.FETCHING: {FetchState.MERGING, FetchState.FAILED},
    FetchState.MERGING: {FetchState.DONE, FetchState.FAILED},
    FetchState.DONE: set(),  # Terminal state
    FetchState.FAILED: set(),  # Terminal state
    FetchState.CACHED: set(),  # Terminal state
}

TERMINAL_STATES = frozenset({FetchState.DONE, FetchState.FAILED, FetchState.CACHED})


class FetchStateTransitionError(Exception):
    """Raised when an illegal state transition is attempted."""

    def __init__(
        self,
        source_key: str,
        from_state: FetchState,
        to_state: FetchState,
    ) -> None:
        """Initialize the transition error.

        Args:
            source_key: Key of the source being fetched.
            from_state: Current state.
            to_state: Attempted target state.
        """
        self.source_key = source_key
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Illegal fetch state transition for '{source_key}': "
            f"{from_state.value} -> {to_state.value}"
        )


class FetchStateMachine:
    """Tracks and enforces the state of one fetch."""

    def __init__(
        self,
        source_key: str,
        initial_state: FetchState = FetchState.PENDING,
    ) -> None:
        """Initialize the state machine.

        Args:
            source_key: Key of the source being fetched.
            initial_state: Starting state.
        """
        self._source_key = source_key
        self._state = initial_state
        self._log = logger.bind(component="sync", source_key=source_key)

    @property
    def state(self) -> FetchState:
        """Get the current state."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return self._state in TERMINAL_STATES

    def can_transition_to(self, target: FetchState) -> bool:
        """Check if a transition to the target state is valid."""
        return target in _VALID_TRANSITIONS.get(self._state, set())

    def transition_to(self, target: FetchState) -> None:
        """Transition to a new state.

        Args:
            target: The target state.

        Raises:
            FetchStateTransitionError: If the transition is invalid.
        """
        if not self.can_transition_to(target):
            self._log.error(
                "illegal_state_transition",
                from_state=self._state.value,
                to_state=target.value,
            )
            raise FetchStateTransitionError(self._source_key, self._state, target)

        old_state = self._state
        self._state = target
        self._log.debug(
            "state_transition",
            from_state=old_state.value,
            to_state=target.value,
        )

    def to_fetching(self) -> None:
        """Transition to FETCHING state."""
        self.transition_to(FetchState.FETCHING)

    def to_merging(self) -> None:
        """Transition to MERGING state."""
        self.transition_to(FetchState.MERGING)

    def to_done(self) -> None:
        """Transition to DONE state."""
        self.transition_to(FetchState.DONE)

    def to_failed(self) -> None:
        """Transition to FAILED state."""
        self.transition_to(FetchState.FAILED)

    def to_cached(self) -> None:
        """Transition to CACHED state."""
        self.transition_to(FetchState.CACHED)
