"""
Persistence gateway: Project and Contact records in the remote record store.

Handles:
- Translation between domain models and the store's human-named columns
- Legacy review verdicts ("Send Later", "Remove") read from older records
- Contact <-> Project links kept in the project's ``Contacts`` column

Link and unlink are read-modify-write on that column and are not atomic
against concurrent writers.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

import structlog

from magic_cards_server.core.errors import (
    NotFoundError,
    PersistenceError,
    StageConfigurationError,
)
from magic_cards_server.core.record_store import (
    RecordNotFound,
    RecordStoreClient,
    RecordStoreError,
)
from magic_cards_shared.schemas.common import (
    Attachment,
    ContactReview,
    InvalidStageError,
    ProjectStage,
)
from magic_cards_shared.schemas.contacts import Contact
from magic_cards_shared.schemas.projects import Project, coerce_stage

log = structlog.get_logger()

PROJECT_COLUMNS: dict[str, str] = {
    "name": "Project",
    "stage": "Stage",
    "tracking_number": "Tracking Number",
    "illustrator_files": "Final Design File",
    "final_design_file_link": "Final Design File Link",
    "linked_contacts": "Contacts",
    "printer_submission_date": "Printer Submission Date",
    "shipped_to_packsmith_date": "Orders Fulfillment Date",
}

CONTACT_COLUMNS: dict[str, str] = {
    "name": "Recipient Name*",
    "company": "Company",
    "email": "Email",
    "phone": "Phone",
    "street_line1": "Street Line 1",
    "street_number": "Street Number (Leave Blank)",
    "street_line2": "Street Line 2 (Unit Number)",
    "city": "City",
    "state": "State",
    "post_code": "Post Code (5 digits)",
    "country_code": "Country Code",
    "company_logo": "Company Logo",
    "headshot": "Headshot",
    "linkedin_url": "LinkedIn URL",
    "confirm_address_url": "Confirm Address URL",
    "additional_contact_context": "Additional Contact Context",
    "contact_added_by": "Contact Added By",
    "magic_cards": "Magic Cards",
    "sfs_book": "SFS Book",
    "golden_record": "Golden Record",
    "copy_title1": "Copy Title 1",
    "copy_title2": "Copy Title 2",
    "copy_title3": "Copy Title 3",
    "copy_main_text": "Copy Main Text",
    "image_direction": "Image Direction",
    "round1_draft": "Round 1 Draft",
    "round1_draft_feedback": "Round 1 Draft Feedback",
    "reject_round1": "Reject Round 1",
    "round2_draft": "Round 2 Draft",
    "round2_draft_feedback": "Round 2 Draft Feedback",
    "reject_round2": "Reject Round 2",
    "round3_draft": "Round 3 Draft",
    "contact_review": "Contact Review",
    "contact_review_feedback": "Contact Review Feedback",
}

ATTACHMENT_FIELDS = frozenset({
    "illustrator_files", "company_logo", "headshot",
    "round1_draft", "round2_draft", "round3_draft",
})

# Older records carry the previous verdict vocabulary.
REVIEW_VALUES: dict[str, ContactReview] = {
    "Approve": ContactReview.APPROVE,
    "Flag": ContactReview.FLAG,
    "Send Later": ContactReview.FLAG,
    "Do Not Send": ContactReview.DO_NOT_SEND,
    "Remove": ContactReview.DO_NOT_SEND,
}

# Single-select columns reject an empty string.
_SKIP_EMPTY = frozenset({"contact_added_by"})


def _attachment_payload(value: Iterable[Attachment | dict]) -> list[dict]:
    """Existing attachments are kept by id; new ones are fetched from their URL."""
    payload = []
    for item in value:
        att = item if isinstance(item, Attachment) else Attachment.model_validate(item)
        if att.id:
            payload.append({"id": att.id})
        else:
            payload.append({"url": att.url, "filename": att.filename})
    return payload


def _to_columns(columns: dict[str, str], updates: dict[str, Any]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in updates.items():
        if value is None:
            continue
        if key not in columns:
            raise ValueError(f"Unknown field: {key}")
        if key in _SKIP_EMPTY and value == "":
            continue
        if key in ATTACHMENT_FIELDS:
            value = _attachment_payload(value)
        elif isinstance(value, (ProjectStage, ContactReview)):
            value = value.value
        fields[columns[key]] = value
    return fields


def _from_columns(columns: dict[str, str], fields: dict[str, Any]) -> dict[str, Any]:
    data = {}
    for key, column in columns.items():
        if column in fields and fields[column] is not None:
            data[key] = fields[column]
    return data


def to_project(record: dict) -> Project:
    fields = record.get("fields", {})
    data = _from_columns(PROJECT_COLUMNS, fields)
    # Raises InvalidStageError for values outside the funnel; see parse_project.
    data["stage"] = coerce_stage(fields.get("Stage") or ProjectStage.CONTACTS.value)
    data["created_at"] = fields.get("Created At") or record.get("createdTime")
    data["updated_at"] = fields.get("Last Modified") or record.get("createdTime")
    return Project(id=record["id"], **data)


def to_contact(record: dict) -> Contact:
    fields = record.get("fields", {})
    data = _from_columns(CONTACT_COLUMNS, fields)
    raw_review = data.pop("contact_review", None)
    if raw_review:
        review = REVIEW_VALUES.get(raw_review)
        if review is None:
            log.warning("gateway.unknown_review_value", contact_id=record["id"], value=raw_review)
        data["contact_review"] = review
    data["created_at"] = fields.get("Created At") or record.get("createdTime")
    data["updated_at"] = fields.get("Updated At")
    return Contact(id=record["id"], **data)


def parse_project(record: dict) -> Project:
    """``to_project`` with parse failures mapped onto the funnel errors."""
    try:
        return to_project(record)
    except InvalidStageError as exc:
        log.error("gateway.invalid_stage", project_id=record.get("id"), value=exc.value)
        raise StageConfigurationError(
            f"Project {record.get('id')} has an unrecognized stage: {exc.value!r}"
        ) from exc
    except (KeyError, TypeError, ValueError) as exc:
        log.error("gateway.unreadable_project", project_id=record.get("id"), error=str(exc))
        raise PersistenceError("Record store returned an unreadable project") from exc


def parse_contact(record: dict) -> Contact:
    try:
        return to_contact(record)
    except (KeyError, TypeError, ValueError) as exc:
        log.error("gateway.unreadable_contact", contact_id=record.get("id"), error=str(exc))
        raise PersistenceError("Record store returned an unreadable contact") from exc


class PersistenceGateway:
    """CRUD and link/unlink for projects and contacts."""

    def __init__(
        self,
        client: RecordStoreClient,
        projects_table: str = "Projects",
        contacts_table: str = "Contacts",
    ):
        self._client = client
        self._projects = projects_table
        self._contacts = contacts_table

    # --- Projects ---

    async def list_projects(self) -> list[Project]:
        try:
            records = await self._client.list_records(
                self._projects, sort=[("Created At", "desc")]
            )
        except RecordStoreError as exc:
            log.error("gateway.list_projects_failed", error=str(exc))
            raise PersistenceError("Failed to load projects") from exc
        return [parse_project(r) for r in records]

    async def get_project(self, project_id: str) -> Optional[Project]:
        try:
            record = await self._client.get_record(self._projects, project_id)
        except RecordNotFound:
            return None
        except RecordStoreError as exc:
            log.error("gateway.get_project_failed", project_id=project_id, error=str(exc))
            raise PersistenceError("Failed to load project") from exc
        return parse_project(record)

    async def create_project(self, fields: dict[str, Any]) -> Project:
        payload = _to_columns(PROJECT_COLUMNS, fields)
        payload.setdefault("Stage", ProjectStage.CONTACTS.value)
        try:
            record = await self._client.create_record(self._projects, payload)
        except RecordStoreError as exc:
            log.error("gateway.create_project_failed", error=str(exc))
            raise PersistenceError("Failed to create project") from exc
        return parse_project(record)

    async def update_project(self, project_id: str, updates: dict[str, Any]) -> Project:
        payload = _to_columns(PROJECT_COLUMNS, updates)
        try:
            record = await self._client.update_record(self._projects, project_id, payload)
        except RecordNotFound as exc:
            raise NotFoundError("Project not found") from exc
        except RecordStoreError as exc:
            log.error("gateway.update_project_failed", project_id=project_id, error=str(exc))
            raise PersistenceError("Failed to update project") from exc
        return parse_project(record)

    async def delete_project(self, project_id: str) -> None:
        try:
            await self._client.delete_record(self._projects, project_id)
        except RecordNotFound as exc:
            raise NotFoundError("Project not found") from exc
        except RecordStoreError as exc:
            log.error("gateway.delete_project_failed", project_id=project_id, error=str(exc))
            raise PersistenceError("Failed to delete project") from exc

    # --- Contacts ---

    async def get_contacts_by_ids(self, contact_ids: list[str]) -> list[Contact]:
        """Batch fetch. Result order is whatever the store returns."""
        if not contact_ids:
            return []
        conditions = ", ".join(f'RECORD_ID() = "{cid}"' for cid in contact_ids)
        try:
            records = await self._client.list_records(
                self._contacts, formula=f"OR({conditions})"
            )
        except RecordStoreError as exc:
            log.error("gateway.get_contacts_failed", count=len(contact_ids), error=str(exc))
            raise PersistenceError("Failed to load contacts") from exc
        return [parse_contact(r) for r in records]

    async def create_contact(self, fields: dict[str, Any]) -> Contact:
        payload = _to_columns(CONTACT_COLUMNS, fields)
        try:
            record = await self._client.create_record(self._contacts, payload)
        except RecordStoreError as exc:
            log.error("gateway.create_contact_failed", error=str(exc))
            raise PersistenceError("Failed to create contact") from exc
        return parse_contact(record)

    async def update_contact(self, contact_id: str, updates: dict[str, Any]) -> Contact:
        payload = _to_columns(CONTACT_COLUMNS, updates)
        try:
            record = await self._client.update_record(self._contacts, contact_id, payload)
        except RecordNotFound as exc:
            raise NotFoundError("Contact not found") from exc
        except RecordStoreError as exc:
            log.error("gateway.update_contact_failed", contact_id=contact_id, error=str(exc))
            raise PersistenceError("Failed to update contact") from exc
        return parse_contact(record)

    async def delete_contact(self, contact_id: str) -> None:
        try:
            await self._client.delete_record(self._contacts, contact_id)
        except RecordNotFound as exc:
            raise NotFoundError("Contact not found") from exc
        except RecordStoreError as exc:
            log.error("gateway.delete_contact_failed", contact_id=contact_id, error=str(exc))
            raise PersistenceError("Failed to delete contact") from exc

    # --- Links ---

    async def _require_project(self, project_id: str) -> Project:
        project = await self.get_project(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        return project

    async def link_contact_to_project(self, project_id: str, contact_id: str) -> Project:
        project = await self._require_project(project_id)
        if contact_id in project.linked_contacts:
            return project
        linked = [*project.linked_contacts, contact_id]
        return await self.update_project(project_id, {"linked_contacts": linked})

    async def unlink_contact_from_project(self, project_id: str, contact_id: str) -> Project:
        project = await self._require_project(project_id)
        linked = [cid for cid in project.linked_contacts if cid != contact_id]
        return await self.update_project(project_id, {"linked_contacts": linked})
