from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field
from .common import Attachment, ContactReview, ProjectStage


class ContactBase(BaseModel):
    name: str = ""
    company: str = ""
    email: str = ""
    phone: str = ""
    street_line1: str = ""
    street_number: str = ""
    street_line2: str = ""
    city: str = ""
    state: str = ""
    post_code: str = ""
    country_code: str = ""
    linkedin_url: str = ""
    confirm_address_url: str = ""
    additional_contact_context: str = ""
    contact_added_by: str = ""


class Contact(ContactBase):
    id: str
    headshot: List[Attachment] = Field(default_factory=list)
    company_logo: List[Attachment] = Field(default_factory=list)
    magic_cards: bool = False
    sfs_book: bool = False
    golden_record: bool = False
    copy_title1: str = ""
    copy_title2: str = ""
    copy_title3: str = ""
    copy_main_text: str = ""
    image_direction: str = ""
    round1_draft: List[Attachment] = Field(default_factory=list)
    round1_draft_feedback: str = ""
    reject_round1: bool = False
    round2_draft: List[Attachment] = Field(default_factory=list)
    round2_draft_feedback: str = ""
    reject_round2: bool = False
    # No stage reaches a third design round; kept as stored data only.
    round3_draft: List[Attachment] = Field(default_factory=list)
    contact_review: Optional[ContactReview] = None
    contact_review_feedback: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_address(self) -> bool:
        return bool(self.street_line1)


class ContactCreate(BaseModel):
    name: str = Field(min_length=1)
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    street_line1: Optional[str] = None
    street_number: Optional[str] = None
    street_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    post_code: Optional[str] = None
    country_code: Optional[str] = None
    linkedin_url: Optional[str] = None
    additional_contact_context: Optional[str] = None
    contact_added_by: Optional[str] = None
    magic_cards: Optional[bool] = None
    sfs_book: Optional[bool] = None
    golden_record: Optional[bool] = None


class ContactUpdate(BaseModel):
    name: Optional[str] = None
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    street_line1: Optional[str] = None
    street_number: Optional[str] = None
    street_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    post_code: Optional[str] = None
    country_code: Optional[str] = None
    linkedin_url: Optional[str] = None
    confirm_address_url: Optional[str] = None
    additional_contact_context: Optional[str] = None
    contact_added_by: Optional[str] = None


class ContactCopyUpdate(BaseModel):
    copy_title1: Optional[str] = None
    copy_title2: Optional[str] = None
    copy_title3: Optional[str] = None
    copy_main_text: Optional[str] = None
    image_direction: Optional[str] = None


class ContactFlagsUpdate(BaseModel):
    magic_cards: Optional[bool] = None
    sfs_book: Optional[bool] = None
    golden_record: Optional[bool] = None


class ContactReviewUpdate(BaseModel):
    verdict: ContactReview
    feedback: str = ""
    confirm_clear: bool = False


class DesignRoundFeedback(BaseModel):
    feedback: str = ""


# ---------------------------------------------------------------------------
# Editor gating: which stage's editor owns each persisted contact field.
# None = editable regardless of stage.
# ---------------------------------------------------------------------------

IDENTITY_FIELDS = frozenset({
    "name", "company", "email", "phone",
    "street_line1", "street_number", "street_line2",
    "city", "state", "post_code", "country_code",
    "linkedin_url", "confirm_address_url", "additional_contact_context",
    "contact_added_by", "headshot", "company_logo",
    "magic_cards", "sfs_book", "golden_record",
})

COPY_FIELDS = frozenset({
    "copy_title1", "copy_title2", "copy_title3", "copy_main_text", "image_direction",
})

REVIEW_FIELDS = frozenset({"contact_review", "contact_review_feedback"})

DESIGN_ROUND_STAGES: dict[int, ProjectStage] = {
    1: ProjectStage.DESIGN_ROUND_1,
    2: ProjectStage.DESIGN_ROUND_2,
}

DESIGN_ROUND_FIELDS: dict[int, tuple[str, str, str]] = {
    1: ("round1_draft", "round1_draft_feedback", "reject_round1"),
    2: ("round2_draft", "round2_draft_feedback", "reject_round2"),
}

CONTACT_FIELD_STAGES: dict[str, Optional[ProjectStage]] = {
    **{f: ProjectStage.CONTACTS for f in IDENTITY_FIELDS},
    **{f: ProjectStage.COPY for f in COPY_FIELDS},
    **{f: None for f in REVIEW_FIELDS},
    **{
        f: DESIGN_ROUND_STAGES[round_number]
        for round_number, fields in DESIGN_ROUND_FIELDS.items()
        for f in fields
    },
}


# ---------------------------------------------------------------------------
# Review verdict rules
# ---------------------------------------------------------------------------


def needs_feedback_clear_confirmation(contact: Contact, verdict: ContactReview) -> bool:
    """Approve / Do Not Send wipe existing feedback, which must be confirmed first."""
    if verdict == ContactReview.FLAG:
        return False
    return bool(contact.contact_review_feedback.strip())


def validate_review_change(
    contact: Contact, verdict: ContactReview, feedback: str = ""
) -> tuple[bool, str]:
    """Validate a review verdict change. Returns (is_valid, error_message)."""
    if verdict == ContactReview.FLAG:
        if not feedback.strip():
            return False, "Feedback is required when flagging a contact"
        return True, ""

    if verdict == ContactReview.APPROVE:
        if contact.magic_cards:
            missing = []
            if not contact.has_address:
                missing.append("address")
            if not contact.company.strip():
                missing.append("company")
            if not contact.headshot:
                missing.append("headshot")
            if not contact.company_logo:
                missing.append("company logo")
            if missing:
                return False, (
                    "All items are required to approve for Magic Cards. "
                    f"Missing: {', '.join(missing)}"
                )
        elif (contact.sfs_book or contact.golden_record) and not contact.has_address:
            return False, "An address is required before approving this contact"

    return True, ""


def review_updates(verdict: ContactReview, feedback: str = "") -> dict:
    """Persisted fields for a verdict. Only Flag keeps feedback."""
    if verdict == ContactReview.FLAG:
        return {"contact_review": verdict, "contact_review_feedback": feedback.strip()}
    return {"contact_review": verdict, "contact_review_feedback": ""}
