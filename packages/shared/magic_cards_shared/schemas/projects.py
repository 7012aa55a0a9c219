from datetime import datetime
from typing import Optional, List, Union
from pydantic import BaseModel, Field
from .common import (
    Attachment,
    InvalidStageError,
    ProjectStage,
    PROJECT_STAGE_ORDER,
    STAGE_TITLES,
)

StageLike = Union[ProjectStage, str]


class ProjectBase(BaseModel):
    name: str = ""
    tracking_number: str = ""
    printer_submission_date: str = ""
    shipped_to_packsmith_date: str = ""
    final_design_file_link: str = ""


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1)
    tracking_number: Optional[str] = None
    printer_submission_date: Optional[str] = None
    shipped_to_packsmith_date: Optional[str] = None
    final_design_file_link: Optional[str] = None


class ProjectUpdate(BaseModel):
    # No stage: it only moves through advance/revert
    name: Optional[str] = None
    tracking_number: Optional[str] = None
    printer_submission_date: Optional[str] = None
    shipped_to_packsmith_date: Optional[str] = None
    final_design_file_link: Optional[str] = None


class Project(ProjectBase):
    id: str
    stage: ProjectStage = ProjectStage.CONTACTS
    illustrator_files: List[Attachment] = Field(default_factory=list)
    linked_contacts: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProjectTransition(BaseModel):
    to_stage: ProjectStage


class ProjectFieldValue(BaseModel):
    value: str = ""


class ProjectStats(BaseModel):
    total: int
    active: int
    completed: int


class ProjectSummary(Project):
    tracking_url: Optional[str] = None


# Which funnel stage editor owns each project field. None = not stage gated.
PROJECT_FIELD_STAGES: dict[str, Optional[ProjectStage]] = {
    "name": None,
    "final_design_file_link": ProjectStage.HANDOFF,
    "illustrator_files": ProjectStage.HANDOFF,
    "printer_submission_date": ProjectStage.READY_FOR_PRINT,
    "shipped_to_packsmith_date": ProjectStage.READY_FOR_PRINT,
    "tracking_number": ProjectStage.READY_FOR_PRINT,
}

# "Complete stage" is only offered on these stages once contacts exist.
STAGES_REQUIRING_CONTACTS = frozenset({
    ProjectStage.CONTACTS,
    ProjectStage.COPY,
    ProjectStage.DESIGN_BRIEF,
    ProjectStage.DESIGN_ROUND_1,
    ProjectStage.DESIGN_ROUND_2,
})


# ---------------------------------------------------------------------------
# Stage model
# ---------------------------------------------------------------------------


def coerce_stage(value: StageLike) -> ProjectStage:
    if isinstance(value, ProjectStage):
        return value
    try:
        return ProjectStage(value)
    except ValueError:
        raise InvalidStageError(value) from None


def stage_index(stage: StageLike) -> int:
    return PROJECT_STAGE_ORDER.index(coerce_stage(stage))


def should_render(target: StageLike, current: StageLike) -> bool:
    """Stages are revealed cumulatively up to and including the current one."""
    return stage_index(target) <= stage_index(current)


def is_active(target: StageLike, current: StageLike) -> bool:
    return coerce_stage(target) == coerce_stage(current)


def is_completed(target: StageLike, current: StageLike) -> bool:
    """The terminal stage is never completed: nothing follows it."""
    return stage_index(target) < stage_index(current)


def is_read_only(target: StageLike, current: StageLike) -> bool:
    return is_completed(target, current)


def is_writable(target: StageLike, current: StageLike) -> bool:
    """Rendered and not completed, i.e. the active stage."""
    return should_render(target, current) and not is_completed(target, current)


def next_stage(current: StageLike) -> Optional[ProjectStage]:
    idx = stage_index(current)
    if idx + 1 >= len(PROJECT_STAGE_ORDER):
        return None
    return PROJECT_STAGE_ORDER[idx + 1]


def previous_stage(current: StageLike) -> Optional[ProjectStage]:
    idx = stage_index(current)
    if idx == 0:
        return None
    return PROJECT_STAGE_ORDER[idx - 1]


def validate_transition(current: StageLike, target: StageLike) -> tuple[bool, str]:
    """Validate a funnel stage transition.

    Rules:
    - Forward: only to the next adjacent stage.
    - Backward: only to the immediately preceding stage.

    Returns (is_valid, error_message).
    """
    current = coerce_stage(current)
    target = coerce_stage(target)

    if current == target:
        return False, f"Project is already in {current.value} stage"

    if target == next_stage(current) or target == previous_stage(current):
        return True, ""

    if stage_index(target) > stage_index(current):
        return False, (
            f"Cannot advance from {current.value} to {target.value}. "
            f"Next stage is {next_stage(current).value}"
        )
    return False, (
        f"Cannot revert from {current.value} to {target.value}. "
        f"Only {previous_stage(current).value} can be restored"
    )


class StageView(BaseModel):
    stage: ProjectStage
    number: int
    title: str
    is_active: bool
    is_completed: bool
    is_read_only: bool
    can_advance: bool = False
    revert_target: Optional[ProjectStage] = None


def build_stage_views(current: StageLike, contact_count: int = 0) -> list[StageView]:
    """Compute the rendered funnel sections for a project's current stage.

    Everything is derived from ``current``; nothing here is stored.
    """
    current = coerce_stage(current)
    views = []
    for number, stage in enumerate(PROJECT_STAGE_ORDER, start=1):
        if not should_render(stage, current):
            break
        active = is_active(stage, current)
        can_advance = active and next_stage(current) is not None
        if stage in STAGES_REQUIRING_CONTACTS and contact_count == 0:
            can_advance = False
        views.append(
            StageView(
                stage=stage,
                number=number,
                title=STAGE_TITLES[stage],
                is_active=active,
                is_completed=is_completed(stage, current),
                is_read_only=is_read_only(stage, current),
                can_advance=can_advance,
                revert_target=previous_stage(current) if active else None,
            )
        )
    return views
