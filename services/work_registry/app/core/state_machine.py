"""Version state machine for lifecycle management."""

from shared.schemas.work import VersionState


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(
        self,
        current_state: VersionState,
        target_state: VersionState,
        message: str | None = None,
        errors: list[str] | None = None,
    ):
        self.current_state = current_state
        self.target_state = target_state
        self.errors = errors or []
        self.message = message or (
            f"Invalid transition from {current_state.value} to {target_state.value}"
        )
        super().__init__(self.message)


class VersionStateMachine:
    """Work version lifecycle state machine.

    Valid transitions:
    - draft -> published (publish)

    Published versions are immutable; edits produce a new draft version.
    """

    VALID_TRANSITIONS: set[tuple[VersionState, VersionState]] = {
        (VersionState.DRAFT, VersionState.PUBLISHED),
    }

    @classmethod
    def is_valid_transition(
        cls,
        current_state: VersionState,
        target_state: VersionState,
    ) -> bool:
        """Check if a state transition is valid.

        Args:
            current_state: Current version state
            target_state: Desired new state

        Returns:
            True if transition is valid, False otherwise
        """
        return (current_state, target_state) in cls.VALID_TRANSITIONS

    @classmethod
    def validate_transition(
        cls,
        current_state: VersionState,
        target_state: VersionState,
    ) -> None:
        """Validate a state transition, raising an error if invalid.

        Raises:
            InvalidTransitionError: If transition is not valid
        """
        if not cls.is_valid_transition(current_state, target_state):
            raise InvalidTransitionError(current_state, target_state)

    @classmethod
    def reject(
        cls,
        current_state: VersionState,
        target_state: VersionState,
        errors: list[str],
    ) -> None:
        """Refuse an otherwise valid transition because the record is incomplete."""
        raise InvalidTransitionError(
            current_state,
            target_state,
            message=f"Cannot move to {target_state.value}: {'; '.join(errors)}",
            errors=errors,
        )

    @classmethod
    def is_terminal_state(cls, state: VersionState) -> bool:
        """Check if a state is terminal (no valid transitions out)."""
        return not any(source == state for (source, _) in cls.VALID_TRANSITIONS)
