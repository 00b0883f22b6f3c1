"""Seniority wage ladder resolution and progression detection."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal
from uuid import UUID

from payroll_export.calculators.types import (
    EmployeeWageState,
    LevelResolution,
    PendingProgression,
    WageLadder,
)


class LadderConfigurationError(Exception):
    """Raised when a ladder cannot be used to price anything."""

    def __init__(self, ladder_id: UUID | None, reason: str):
        self.ladder_id = ladder_id
        self.reason = reason
        super().__init__(f"Wage ladder {ladder_id}: {reason}")


class LadderGapOrOverlapError(LadderConfigurationError):
    """Raised at ladder-edit time when levels are not contiguous."""

    def __init__(self, ladder_id: UUID | None, errors: list[str]):
        self.errors = errors
        super().__init__(ladder_id, "; ".join(errors))


class LadderResolver:
    """Resolves ladder levels from accumulated qualifying hours.

    Resolution never fails on imperfect ladders: when no level's
    [min_hours, max_hours) contains the hours, the highest level whose
    min_hours has been reached wins. Integrity problems are reported by
    validate_ladder when the ladder is edited.
    """

    @staticmethod
    def resolve(ladder: WageLadder, accumulated_hours: Decimal) -> LevelResolution:
        """Resolve level, rate and progress towards the next level.

        Raises:
            LadderConfigurationError: if the ladder has no levels.
        """
        levels = ladder.levels
        if not levels:
            raise LadderConfigurationError(ladder.ladder_id, "ladder has no levels")

        current = None
        for level in levels:
            if level.contains(accumulated_hours):
                current = level
                break
        if current is None:
            reached = [lvl for lvl in levels if lvl.min_hours <= accumulated_hours]
            current = reached[-1] if reached else levels[0]

        return LadderResolver._with_progress(ladder, current.level, accumulated_hours)

    @staticmethod
    def resolve_for_state(
        ladder: WageLadder, state: EmployeeWageState
    ) -> LevelResolution:
        """Resolution used for pricing: the recorded level is authoritative.

        Accumulated hours only drive the progress figures. Employees with no
        recorded level (or one missing from the ladder) are resolved from
        their hours.
        """
        if state.current_level is not None and ladder.get_level(state.current_level):
            return LadderResolver._with_progress(
                ladder, state.current_level, state.accumulated_hours
            )
        return LadderResolver.resolve(ladder, state.accumulated_hours)

    @staticmethod
    def _with_progress(
        ladder: WageLadder, level_number: int, accumulated_hours: Decimal
    ) -> LevelResolution:
        levels = ladder.levels
        index = next(i for i, lvl in enumerate(levels) if lvl.level == level_number)
        current = levels[index]
        nxt = levels[index + 1] if index + 1 < len(levels) else None
        return LevelResolution(
            level=current.level,
            hourly_rate=current.hourly_rate,
            next_level=nxt.level if nxt else None,
            hours_to_next_level=(
                max(nxt.min_hours - accumulated_hours, Decimal("0")) if nxt else None
            ),
            next_hourly_rate=nxt.hourly_rate if nxt else None,
        )

    @staticmethod
    def validate_ladder(ladder: WageLadder) -> list[str]:
        """Validate ladder integrity.

        Returns list of error messages (empty if valid).
        """
        errors: list[str] = []
        levels = ladder.levels

        if not levels:
            return ["Ladder has no levels"]

        numbers = [lvl.level for lvl in levels]
        if len(set(numbers)) != len(numbers):
            errors.append("Duplicate level numbers")

        open_ended = [lvl for lvl in levels if lvl.max_hours is None]
        if len(open_ended) != 1:
            errors.append(
                f"Expected exactly one open-ended top level, found {len(open_ended)}"
            )
        elif open_ended[0] is not levels[-1]:
            errors.append(f"Open-ended level {open_ended[0].level} is not the top level")

        for lvl in levels:
            if lvl.max_hours is not None and lvl.max_hours <= lvl.min_hours:
                errors.append(
                    f"Level {lvl.level} has max_hours {lvl.max_hours} <= min_hours {lvl.min_hours}"
                )
            if lvl.hourly_rate < 0:
                errors.append(f"Level {lvl.level} has negative hourly rate")

        for prev, cur in zip(levels, levels[1:]):
            if cur.min_hours <= prev.min_hours:
                errors.append(
                    f"Level {cur.level} min_hours {cur.min_hours} is not above "
                    f"level {prev.level} min_hours {prev.min_hours}"
                )
            if prev.max_hours is None:
                continue
            if cur.min_hours > prev.max_hours:
                errors.append(
                    f"Gap between level {prev.level} ({prev.max_hours}) "
                    f"and level {cur.level} ({cur.min_hours})"
                )
            elif cur.min_hours < prev.max_hours:
                errors.append(
                    f"Level {cur.level} overlaps level {prev.level} "
                    f"({cur.min_hours} < {prev.max_hours})"
                )

        return errors

    @staticmethod
    def ensure_valid_ladder(ladder: WageLadder) -> None:
        """Raise LadderGapOrOverlapError if validate_ladder reports anything."""
        errors = LadderResolver.validate_ladder(ladder)
        if errors:
            raise LadderGapOrOverlapError(ladder.ladder_id, errors)

    @staticmethod
    def find_pending_progressions(
        states: Iterable[EmployeeWageState],
        ladders: Mapping[UUID, WageLadder],
    ) -> list[PendingProgression]:
        """Employees whose accumulated hours now imply a higher level.

        Only upward moves are reported. Employees with an unknown or empty
        ladder are skipped; the batch keeps going for everyone else.
        """
        pending: list[PendingProgression] = []
        for state in states:
            if state.ladder_id is None:
                continue
            ladder = ladders.get(state.ladder_id)
            if ladder is None or not ladder.levels:
                continue

            implied = LadderResolver.resolve(ladder, state.accumulated_hours)
            recorded = state.current_level if state.current_level is not None else ladder.levels[0].level
            if implied.level <= recorded:
                continue

            recorded_level = ladder.get_level(recorded)
            pending.append(
                PendingProgression(
                    employee_id=state.employee_id,
                    ladder_id=ladder.ladder_id,
                    ladder_name=ladder.name,
                    accumulated_hours=state.accumulated_hours,
                    current_level=recorded,
                    current_rate=recorded_level.hourly_rate if recorded_level else Decimal("0"),
                    new_level=implied.level,
                    new_rate=implied.hourly_rate,
                    state_version=state.version,
                )
            )
        return sorted(pending, key=lambda p: str(p.employee_id))
