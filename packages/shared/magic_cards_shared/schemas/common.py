from enum import Enum
from typing import Optional, List
from pydantic import BaseModel


class InvalidStageError(ValueError):
    """Raised when a stage value is not one of the eight funnel stages."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Unrecognized project stage: {value!r}")


class ProjectStage(str, Enum):
    CONTACTS = "Contacts"
    COPY = "Copy"
    DESIGN_BRIEF = "Design Brief"
    DESIGN_ROUND_1 = "Design Round 1"
    DESIGN_ROUND_2 = "Design Round 2"
    HANDOFF = "Handoff"
    READY_FOR_PRINT = "Ready for Print"
    PROJECT_COMPLETE = "Project Complete"

# Ordered list for the funnel state machine
PROJECT_STAGE_ORDER: list["ProjectStage"] = [
    ProjectStage.CONTACTS,
    ProjectStage.COPY,
    ProjectStage.DESIGN_BRIEF,
    ProjectStage.DESIGN_ROUND_1,
    ProjectStage.DESIGN_ROUND_2,
    ProjectStage.HANDOFF,
    ProjectStage.READY_FOR_PRINT,
    ProjectStage.PROJECT_COMPLETE,
]

# Admin filter dropdown labels
STAGE_LABELS: dict["ProjectStage", str] = {
    ProjectStage.CONTACTS: "Contacts",
    ProjectStage.COPY: "Copy",
    ProjectStage.DESIGN_BRIEF: "Design Brief",
    ProjectStage.DESIGN_ROUND_1: "Designs (Round I)",
    ProjectStage.DESIGN_ROUND_2: "Designs (Round II)",
    ProjectStage.HANDOFF: "Final Design File(s)",
    ProjectStage.READY_FOR_PRINT: "Production & Fulfillment",
    ProjectStage.PROJECT_COMPLETE: "Completed",
}

# Section titles on the funnel page
STAGE_TITLES: dict["ProjectStage", str] = {
    ProjectStage.CONTACTS: "Stage 1 — Add & Review Contacts",
    ProjectStage.COPY: "Stage 2 — Add & Review Copy",
    ProjectStage.DESIGN_BRIEF: "Stage 3 — Project Design Brief",
    ProjectStage.DESIGN_ROUND_1: "Stage 4 — Review & Approve Designs (Round I)",
    ProjectStage.DESIGN_ROUND_2: "Stage 5 — Review & Approve Designs (Round II)",
    ProjectStage.HANDOFF: "Stage 6 — Upload Final Design File(s)",
    ProjectStage.READY_FOR_PRINT: "Stage 7 — Ready for Print",
    ProjectStage.PROJECT_COMPLETE: "Stage 8 — Completed",
}

class ContactReview(str, Enum):
    APPROVE = "Approve"
    FLAG = "Flag"
    DO_NOT_SEND = "Do Not Send"

class EditorStatus(str, Enum):
    IDLE = "idle"
    SAVING = "saving"
    SUCCESS = "success"
    ERROR = "error"

class Attachment(BaseModel):
    url: str
    filename: str = ""
    id: Optional[str] = None
    size: Optional[int] = None
    type: Optional[str] = None


def append_attachments(current: List[Attachment], new: List[Attachment]) -> List[Attachment]:
    """Append in upload order. No dedup."""
    return [*current, *new]


def remove_attachment(current: List[Attachment], index: int) -> List[Attachment]:
    if index < 0 or index >= len(current):
        raise IndexError(f"No attachment at index {index}")
    return [a for i, a in enumerate(current) if i != index]
