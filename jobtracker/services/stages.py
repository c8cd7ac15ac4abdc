"""Pipeline stage registry.

Single source of truth for stage codes, names and the action a caller should
take after an application enters a stage. No other module hardcodes stage
names; the engine only uses the role codes (closed, screening, interview,
offer) exposed here.

Default pipeline:
    1 Opportunity Received → 2 Discussion → 3 Screening → 4 Shortlisted
    → 5 Interviewing → 6 Offer Stage, plus 0 Closed (terminal).

Any open stage may move to any other stage. Closed is terminal.
"""

from dataclasses import dataclass
from enum import Enum

# =============================================================================
# Enums
# =============================================================================


class ActionCode(Enum):
    """Prompt the caller should show after a stage transition."""

    NONE = "none"
    PROMPT_DETAILS = "prompt_details"
    START_FOLLOWUP = "start_followup"
    SCHEDULE_INTERVIEW = "schedule_interview"
    PROMPT_RESULT = "prompt_result"
    PROMPT_CLOSE_REASON = "prompt_close_reason"


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class StageDefinition:
    """One pipeline stage.

    Attributes:
        code: Integer stored on Application.current_stage.
        name: Display name.
        description: Short explanation of the stage.
        action: Prompt signalled when an application enters the stage.
    """

    code: int
    name: str
    description: str
    action: ActionCode = ActionCode.NONE


class StageRegistry:
    """Ordered, read-only table of stages.

    Args:
        stages: Stage definitions in pipeline order.
        closed_code: Terminal stage code.
        screening_code: Stage that starts follow-up tracking on entry.
        interview_code: Stage scheduling an interview advances to.
        offer_code: Stage recorded when an offer is received.

    Raises:
        ValueError: If codes are duplicated or a role code is not registered.
    """

    def __init__(
        self,
        stages: tuple[StageDefinition, ...],
        *,
        closed_code: int,
        screening_code: int,
        interview_code: int,
        offer_code: int,
    ) -> None:
        codes = [stage.code for stage in stages]
        if len(set(codes)) != len(codes):
            raise ValueError(f"Duplicate stage codes: {codes}")
        self._stages = stages
        self._by_code = {stage.code: stage for stage in stages}
        self._order = {stage.code: index for index, stage in enumerate(stages)}
        for role, code in (
            ("closed", closed_code),
            ("screening", screening_code),
            ("interview", interview_code),
            ("offer", offer_code),
        ):
            if code not in self._by_code:
                raise ValueError(f"{role} stage code {code} is not registered")
        self.closed_code = closed_code
        self.screening_code = screening_code
        self.interview_code = interview_code
        self.offer_code = offer_code

    def __iter__(self):
        return iter(self._stages)

    def __len__(self) -> int:
        return len(self._stages)

    @property
    def codes(self) -> tuple[int, ...]:
        """All stage codes in pipeline order."""
        return tuple(stage.code for stage in self._stages)

    @property
    def open_codes(self) -> tuple[int, ...]:
        """Stage codes other than the closed stage, in pipeline order."""
        return tuple(code for code in self.codes if code != self.closed_code)

    def get(self, code: int) -> StageDefinition | None:
        return self._by_code.get(code)

    def is_valid(self, code: object) -> bool:
        """Whether ``code`` is a registered stage code (bools excluded)."""
        return isinstance(code, int) and not isinstance(code, bool) and (
            code in self._by_code
        )

    def name_of(self, code: int) -> str:
        """Display name, or ``Stage <code>`` for unknown codes."""
        stage = self._by_code.get(code)
        return stage.name if stage else f"Stage {code}"

    def action_for(self, code: int) -> ActionCode:
        stage = self._by_code.get(code)
        return stage.action if stage else ActionCode.NONE

    def precedes(self, code: int, other: int) -> bool:
        """Whether ``code`` comes before ``other`` in pipeline order.

        The closed stage is never before or after anything.
        """
        if self.closed_code in (code, other):
            return False
        if code not in self._order or other not in self._order:
            return False
        return self._order[code] < self._order[other]


DEFAULT_STAGES: tuple[StageDefinition, ...] = (
    StageDefinition(1, "Opportunity Received", "HR or vendor reached out"),
    StageDefinition(
        2,
        "Discussion",
        "Talked about the role, salary and notice period",
        ActionCode.PROMPT_DETAILS,
    ),
    StageDefinition(
        3,
        "Screening",
        "Profile shared, waiting for screening",
        ActionCode.START_FOLLOWUP,
    ),
    StageDefinition(
        4,
        "Shortlisted",
        "Profile shortlisted for interviews",
        ActionCode.SCHEDULE_INTERVIEW,
    ),
    StageDefinition(
        5,
        "Interviewing",
        "Interview rounds in progress",
        ActionCode.SCHEDULE_INTERVIEW,
    ),
    StageDefinition(
        6,
        "Offer Stage",
        "Offer discussion or received",
        ActionCode.PROMPT_RESULT,
    ),
    StageDefinition(
        0,
        "Closed",
        "Application finished",
        ActionCode.PROMPT_CLOSE_REASON,
    ),
)

DEFAULT_REGISTRY = StageRegistry(
    DEFAULT_STAGES,
    closed_code=0,
    screening_code=3,
    interview_code=5,
    offer_code=6,
)
