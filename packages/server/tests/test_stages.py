"""
Unit tests for the funnel stage model.

Tests cover:
- Cumulative rendering and active/completed/read-only derivation
- next/previous stage at both ends of the funnel
- Transition validation (adjacent forward, immediate backward only)
- Rejection of unknown stage values
- Stage views offered to the funnel page
"""

from __future__ import annotations

import pytest

from magic_cards_shared.schemas.common import (
    InvalidStageError,
    PROJECT_STAGE_ORDER,
    ProjectStage,
)
from magic_cards_shared.schemas.projects import (
    build_stage_views,
    coerce_stage,
    is_active,
    is_completed,
    is_read_only,
    is_writable,
    next_stage,
    previous_stage,
    should_render,
    stage_index,
    validate_transition,
)


class TestStagePredicates:
    def test_eight_stages_in_order(self):
        assert len(PROJECT_STAGE_ORDER) == 8
        assert PROJECT_STAGE_ORDER[0] == ProjectStage.CONTACTS
        assert PROJECT_STAGE_ORDER[-1] == ProjectStage.PROJECT_COMPLETE

    def test_copy_stage_rendering(self):
        """At Copy: Contacts completed, Copy active, Design Brief hidden."""
        current = ProjectStage.COPY
        assert should_render(ProjectStage.CONTACTS, current)
        assert is_completed(ProjectStage.CONTACTS, current)
        assert is_active(ProjectStage.COPY, current)
        assert should_render(ProjectStage.COPY, current)
        assert not should_render(ProjectStage.DESIGN_BRIEF, current)

    def test_terminal_stage_renders_everything(self):
        current = ProjectStage.PROJECT_COMPLETE
        for stage in PROJECT_STAGE_ORDER:
            assert should_render(stage, current)
        assert is_active(ProjectStage.PROJECT_COMPLETE, current)
        assert not is_completed(ProjectStage.PROJECT_COMPLETE, current)

    def test_exactly_one_active_stage(self):
        for current in PROJECT_STAGE_ORDER:
            active = [s for s in PROJECT_STAGE_ORDER if is_active(s, current)]
            assert active == [current]

    def test_completed_implies_rendered(self):
        for current in PROJECT_STAGE_ORDER:
            for target in PROJECT_STAGE_ORDER:
                if is_completed(target, current):
                    assert should_render(target, current)
                    assert not is_active(target, current)

    def test_writable_only_on_active_stage(self):
        for current in PROJECT_STAGE_ORDER:
            for target in PROJECT_STAGE_ORDER:
                assert is_writable(target, current) == (target == current)
                assert is_read_only(target, current) == is_completed(target, current)

    def test_accepts_raw_strings(self):
        assert is_active("Copy", ProjectStage.COPY)
        assert stage_index("Design Round 2") == 4

    def test_unknown_stage_rejected(self):
        with pytest.raises(InvalidStageError) as excinfo:
            is_active(ProjectStage.CONTACTS, "Archived")
        assert excinfo.value.value == "Archived"

    def test_coerce_stage(self):
        assert coerce_stage("Handoff") is ProjectStage.HANDOFF
        with pytest.raises(InvalidStageError):
            coerce_stage("handoff")


class TestNeighbours:
    def test_next_stage(self):
        assert next_stage(ProjectStage.CONTACTS) == ProjectStage.COPY
        assert next_stage(ProjectStage.READY_FOR_PRINT) == ProjectStage.PROJECT_COMPLETE
        assert next_stage(ProjectStage.PROJECT_COMPLETE) is None

    def test_previous_stage(self):
        assert previous_stage(ProjectStage.CONTACTS) is None
        assert previous_stage(ProjectStage.HANDOFF) == ProjectStage.DESIGN_ROUND_2

    def test_next_then_previous_round_trips(self):
        for stage in PROJECT_STAGE_ORDER[:-1]:
            assert previous_stage(next_stage(stage)) == stage


class TestTransitionValidation:
    def test_forward_one_step(self):
        for i in range(len(PROJECT_STAGE_ORDER) - 1):
            current, target = PROJECT_STAGE_ORDER[i], PROJECT_STAGE_ORDER[i + 1]
            valid, msg = validate_transition(current, target)
            assert valid, f"{current} -> {target} should be valid: {msg}"

    def test_backward_one_step(self):
        for i in range(1, len(PROJECT_STAGE_ORDER)):
            current, target = PROJECT_STAGE_ORDER[i], PROJECT_STAGE_ORDER[i - 1]
            valid, _ = validate_transition(current, target)
            assert valid

    def test_forward_skip_rejected(self):
        valid, msg = validate_transition(ProjectStage.CONTACTS, ProjectStage.DESIGN_BRIEF)
        assert not valid
        assert "copy" in msg.lower()

    def test_backward_skip_rejected(self):
        valid, msg = validate_transition(ProjectStage.HANDOFF, ProjectStage.COPY)
        assert not valid
        assert "Design Round 2" in msg

    def test_same_stage_rejected(self):
        valid, msg = validate_transition(ProjectStage.COPY, ProjectStage.COPY)
        assert not valid
        assert "already" in msg.lower()


class TestStageViews:
    def test_views_stop_at_current_stage(self):
        views = build_stage_views(ProjectStage.DESIGN_BRIEF, contact_count=2)
        assert [v.stage for v in views] == PROJECT_STAGE_ORDER[:3]
        assert [v.number for v in views] == [1, 2, 3]
        assert views[-1].is_active
        assert all(v.is_read_only for v in views[:-1])

    def test_titles(self):
        views = build_stage_views(ProjectStage.CONTACTS, contact_count=1)
        assert views[0].title.startswith("Stage 1")

    def test_advance_offered_only_on_active_stage(self):
        views = build_stage_views(ProjectStage.COPY, contact_count=3)
        assert [v.can_advance for v in views] == [False, True]
        assert views[-1].revert_target == ProjectStage.CONTACTS
        assert views[0].revert_target is None

    def test_advance_needs_contacts_on_early_stages(self):
        views = build_stage_views(ProjectStage.CONTACTS, contact_count=0)
        assert not views[0].can_advance
        views = build_stage_views(ProjectStage.HANDOFF, contact_count=0)
        assert views[-1].can_advance

    def test_terminal_stage_offers_no_advance(self):
        views = build_stage_views(ProjectStage.PROJECT_COMPLETE, contact_count=5)
        assert len(views) == 8
        assert not views[-1].can_advance
        assert views[-1].revert_target == ProjectStage.READY_FOR_PRINT
