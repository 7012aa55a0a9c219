"""
Funnel controller: session state and stage transitions for one project view.

Owns ``project`` and ``contacts`` for the lifetime of a page view. Every user
action goes through the gateway and replaces the in-memory entity with what
the store returned; nothing is patched optimistically.

Action methods never raise. A failure is logged, recorded on the editor that
triggered it and kept in ``last_error``; the method returns ``False``.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

import structlog

from magic_cards_server.core.errors import (
    ConfirmationRequired,
    EditorBusy,
    FunnelError,
    NotFoundError,
    PersistenceError,
    ReadOnlyError,
    UnexpectedError,
    ValidationFailure,
)
from magic_cards_server.core.metrics import MetricsCollector
from magic_cards_server.core.uploads import (
    DESIGN_FILE_EXTENSIONS,
    IMAGE_EXTENSIONS,
    MAX_FILE_BYTES,
    AssetUploader,
    UploadedFile,
    upload_batch,
)
from magic_cards_server.services.editors import (
    EditorBoard,
    contact_editor,
    field_editor,
    stage_editor,
)
from magic_cards_server.services.exports import build_design_brief
from magic_cards_server.services.gateway import PersistenceGateway
from magic_cards_server.utils.urls import clean_link, clean_linkedin_url
from magic_cards_shared.schemas.common import (
    Attachment,
    ContactReview,
    InvalidStageError,
    ProjectStage,
    append_attachments,
    remove_attachment,
)
from magic_cards_shared.schemas.contacts import (
    CONTACT_FIELD_STAGES,
    DESIGN_ROUND_FIELDS,
    DESIGN_ROUND_STAGES,
    Contact,
    ContactCopyUpdate,
    ContactCreate,
    ContactFlagsUpdate,
    ContactUpdate,
    needs_feedback_clear_confirmation,
    review_updates,
    validate_review_change,
)
from magic_cards_shared.schemas.funnel import DesignBrief, FunnelView
from magic_cards_shared.schemas.projects import (
    PROJECT_FIELD_STAGES,
    Project,
    StageLike,
    build_stage_views,
    coerce_stage,
    is_completed,
    is_writable,
    next_stage,
    previous_stage,
)

log = structlog.get_logger()

CONTACT_IMAGE_FIELDS = ("headshot", "company_logo")

ContactBuilder = Callable[[Contact], Awaitable[dict]]


class FunnelController:
    """Stage state machine and editor dispatch for a single project."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        uploader: AssetUploader | None = None,
        *,
        contact_creators: list[str] | None = None,
        scroll_delay_seconds: float = 0.3,
        saved_badge_seconds: float = 2.0,
        max_upload_bytes: int = MAX_FILE_BYTES,
        on_stage_revealed: Callable[[ProjectStage], None] | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self._gateway = gateway
        self._uploader = uploader
        self._contact_creators = sorted(contact_creators or [])
        self._scroll_delay_seconds = scroll_delay_seconds
        self._max_upload_bytes = max_upload_bytes
        self._on_stage_revealed = on_stage_revealed
        self._metrics = metrics

        self.project: Optional[Project] = None
        self.contacts: list[Contact] = []
        self.loading = False
        self.error: Optional[FunnelError] = None
        self.last_error: Optional[FunnelError] = None
        self.scroll_to: Optional[ProjectStage] = None
        self.editors = EditorBoard(saved_badge_seconds)

    # ------------------------------------------------------------------
    # Loading and views
    # ------------------------------------------------------------------

    async def load(self, project_id: str) -> bool:
        """Fetch the project and its linked contacts. Failures block the page."""
        self.loading = True
        self.error = None
        try:
            project = await self._gateway.get_project(project_id)
            if project is None:
                raise NotFoundError("Project not found")
            contacts = []
            if project.linked_contacts:
                contacts = await self._gateway.get_contacts_by_ids(project.linked_contacts)
        except FunnelError as exc:
            self.error = exc
        except Exception as exc:
            log.exception("funnel.load_crashed", project_id=project_id)
            self.error = UnexpectedError(f"Unexpected error while loading: {exc}")
        else:
            order = {cid: i for i, cid in enumerate(project.linked_contacts)}
            self.project = project
            self.contacts = sorted(contacts, key=lambda c: order.get(c.id, len(order)))
        finally:
            self.loading = False

        if self.error is not None:
            log.error(
                "funnel.load_failed",
                project_id=project_id,
                code=self.error.code,
                error=self.error.message,
            )
            return False
        log.info("funnel.loaded", project_id=project_id, contacts=len(self.contacts))
        return True

    def filter_contacts(self, added_by: str | None = None) -> list[Contact]:
        if not added_by:
            return list(self.contacts)
        return [c for c in self.contacts if c.contact_added_by == added_by]

    def view(self, added_by: str | None = None) -> FunnelView:
        if self.project is None:
            raise self.error or ValidationFailure("No project loaded")
        return FunnelView(
            project=self.project,
            contacts=self.filter_contacts(added_by),
            stages=build_stage_views(self.project.stage, len(self.contacts)),
            editors=self.editors.snapshot(),
            scroll_to=self.scroll_to,
            contact_creators=self._contact_creators,
            added_by_filter=added_by or None,
        )

    def design_brief(self) -> DesignBrief:
        if self.project is None:
            raise self.error or ValidationFailure("No project loaded")
        return build_design_brief(self.project, self.contacts)

    # ------------------------------------------------------------------
    # Stage transitions
    # ------------------------------------------------------------------

    async def advance(self) -> bool:
        """Move to the next stage. On the terminal stage this is a no-op."""
        if self.project is None:
            return self._not_loaded()
        target = next_stage(self.project.stage)
        if target is None:
            self.last_error = None
            log.info("funnel.advance_noop", project_id=self.project.id)
            return False
        return await self._transition(target, "funnel.advanced")

    async def revert(self, target: StageLike) -> bool:
        """Step back to the stage immediately before the current one."""
        if self.project is None:
            return self._not_loaded()
        current = self.project.stage

        async def check() -> ProjectStage:
            try:
                stage = coerce_stage(target)
            except InvalidStageError as exc:
                raise ValidationFailure(str(exc)) from exc
            expected = previous_stage(current)
            if expected is None:
                raise ValidationFailure(f"{current.value} is the first stage")
            if stage != expected:
                raise ValidationFailure(
                    f"Only {expected.value} can be restored from {current.value}"
                )
            return stage

        return await self._transition(check, "funnel.reverted")

    async def _transition(
        self,
        target: ProjectStage | Callable[[], Awaitable[ProjectStage]],
        event: str,
    ) -> bool:
        project = self.project
        from_stage = project.stage

        async def operation() -> None:
            stage = target if isinstance(target, ProjectStage) else await target()
            updated = await self._gateway.update_project(project.id, {"stage": stage})
            self.project = updated
            self.scroll_to = updated.stage
            if self._metrics:
                self._metrics.inc("stage_transitions_total")
            self._reveal(updated.stage)

        ok = await self._perform(stage_editor(from_stage.value), operation)
        if ok:
            log.info(event, project_id=project.id, from_stage=from_stage.value,
                     to_stage=self.project.stage.value)
        return ok

    def _reveal(self, stage: ProjectStage) -> None:
        if self._on_stage_revealed is None:
            return
        # The new section needs to exist before it can be scrolled to.
        asyncio.get_running_loop().call_later(
            self._scroll_delay_seconds, self._on_stage_revealed, stage
        )

    # ------------------------------------------------------------------
    # Contacts
    # ------------------------------------------------------------------

    async def create_contact(self, data: ContactCreate) -> bool:
        """Create a contact and link it to this project."""
        if self.project is None:
            return self._not_loaded()

        async def operation() -> None:
            project = self._require_project()
            self._require_writable(ProjectStage.CONTACTS)
            fields = data.model_dump(exclude_none=True)
            if not fields.get("name", "").strip():
                raise ValidationFailure("Recipient name is required")
            if "linkedin_url" in fields:
                fields["linkedin_url"] = clean_linkedin_url(fields["linkedin_url"])

            contact = await self._gateway.create_contact(fields)
            try:
                linked = await self._gateway.link_contact_to_project(project.id, contact.id)
            except FunnelError as exc:
                log.error("funnel.link_failed", project_id=project.id, contact_id=contact.id)
                raise PersistenceError(
                    "Contact was created but could not be linked to this project"
                ) from exc
            self.contacts.append(contact)
            self.project = project.model_copy(
                update={"linked_contacts": linked.linked_contacts}
            )

        return await self._perform(contact_editor("new"), operation)

    async def delete_contact(self, contact_id: str) -> bool:
        """Unlink, then delete. A failed unlink means delete is never attempted."""
        if self.project is None:
            return self._not_loaded()

        async def operation() -> None:
            project = self._require_project()
            self._require_contact(contact_id)
            self._require_writable(ProjectStage.CONTACTS)
            linked = await self._gateway.unlink_contact_from_project(project.id, contact_id)
            try:
                await self._gateway.delete_contact(contact_id)
            except FunnelError:
                # The link is not restored.
                log.error("funnel.delete_after_unlink_failed",
                          project_id=project.id, contact_id=contact_id)
                raise
            self.contacts = [c for c in self.contacts if c.id != contact_id]
            self.project = project.model_copy(
                update={"linked_contacts": linked.linked_contacts}
            )

        return await self._perform(contact_editor(contact_id), operation)

    async def update_contact(self, contact_id: str, data: ContactUpdate) -> bool:
        """Identity/address edits from the contact modal (Contacts stage)."""

        async def build(contact: Contact) -> dict:
            self._require_writable(ProjectStage.CONTACTS)
            updates = data.model_dump(exclude_none=True)
            if "name" in updates and not updates["name"].strip():
                raise ValidationFailure("Recipient name is required")
            if "linkedin_url" in updates:
                updates["linkedin_url"] = clean_linkedin_url(updates["linkedin_url"])
            if "confirm_address_url" in updates:
                updates["confirm_address_url"] = clean_link(updates["confirm_address_url"])
            return updates

        return await self._save_contact(contact_id, contact_editor(contact_id), build)

    async def set_contact_flags(self, contact_id: str, data: ContactFlagsUpdate) -> bool:
        async def build(contact: Contact) -> dict:
            self._require_writable(ProjectStage.CONTACTS)
            return data.model_dump(exclude_none=True)

        return await self._save_contact(contact_id, contact_editor(contact_id), build)

    async def add_contact_images(
        self, contact_id: str, kind: str, files: list[UploadedFile]
    ) -> bool:
        """Append headshot or company logo images."""

        async def build(contact: Contact) -> dict:
            if kind not in CONTACT_IMAGE_FIELDS:
                raise ValidationFailure(f"Unknown image kind: {kind}")
            self._require_writable(ProjectStage.CONTACTS)
            uploaded = await upload_batch(
                self._uploader, files, IMAGE_EXTENSIONS, self._max_upload_bytes
            )
            return {kind: append_attachments(getattr(contact, kind), uploaded)}

        return await self._save_contact(contact_id, contact_editor(contact_id), build)

    async def save_contact_copy(self, contact_id: str, data: ContactCopyUpdate) -> bool:
        async def build(contact: Contact) -> dict:
            self._require_writable(ProjectStage.COPY)
            return data.model_dump(exclude_none=True)

        return await self._save_contact(contact_id, contact_editor(contact_id, "copy"), build)

    async def set_contact_review(
        self,
        contact_id: str,
        verdict: ContactReview,
        feedback: str = "",
        confirm_clear: bool = False,
    ) -> bool:
        """Record a review verdict. Not tied to any stage."""

        async def build(contact: Contact) -> dict:
            if needs_feedback_clear_confirmation(contact, verdict) and not confirm_clear:
                raise ConfirmationRequired(
                    "This contact has review feedback that will be cleared. "
                    "Confirm to continue."
                )
            ok, msg = validate_review_change(contact, verdict, feedback)
            if not ok:
                raise ValidationFailure(msg)
            return review_updates(verdict, feedback)

        return await self._save_contact(contact_id, contact_editor(contact_id, "review"), build)

    # --- Design rounds ---

    async def save_round_feedback(self, contact_id: str, round_number: int, feedback: str) -> bool:
        async def build(contact: Contact) -> dict:
            _, feedback_field, _ = self._round_fields(round_number)
            return {feedback_field: feedback}

        return await self._save_contact(
            contact_id, contact_editor(contact_id, f"round{round_number}"), build
        )

    async def toggle_round_reject(self, contact_id: str, round_number: int) -> bool:
        async def build(contact: Contact) -> dict:
            _, _, reject_field = self._round_fields(round_number)
            return {reject_field: not getattr(contact, reject_field)}

        return await self._save_contact(
            contact_id, contact_editor(contact_id, f"round{round_number}"), build
        )

    async def add_round_drafts(
        self, contact_id: str, round_number: int, files: list[UploadedFile]
    ) -> bool:
        async def build(contact: Contact) -> dict:
            draft_field, _, _ = self._round_fields(round_number)
            uploaded = await upload_batch(
                self._uploader, files, DESIGN_FILE_EXTENSIONS, self._max_upload_bytes
            )
            return {draft_field: append_attachments(getattr(contact, draft_field), uploaded)}

        return await self._save_contact(
            contact_id, contact_editor(contact_id, f"round{round_number}"), build
        )

    async def remove_round_draft(self, contact_id: str, round_number: int, index: int) -> bool:
        async def build(contact: Contact) -> dict:
            draft_field, _, _ = self._round_fields(round_number)
            return {draft_field: self._without(getattr(contact, draft_field), index)}

        return await self._save_contact(
            contact_id, contact_editor(contact_id, f"round{round_number}"), build
        )

    def _round_fields(self, round_number: int) -> tuple[str, str, str]:
        if round_number not in DESIGN_ROUND_FIELDS:
            raise ValidationFailure(f"Design round {round_number} has no editor")
        self._require_writable(DESIGN_ROUND_STAGES[round_number])
        return DESIGN_ROUND_FIELDS[round_number]

    # --- Generic passthrough ---

    async def save_contact_fields(
        self, contact_id: str, updates: dict, editor: str | None = None
    ) -> bool:
        """Persist a subset of contact fields, gated by each field's stage."""

        async def build(contact: Contact) -> dict:
            return dict(updates)

        return await self._save_contact(
            contact_id, editor or contact_editor(contact_id), build
        )

    async def _save_contact(self, contact_id: str, key: str, build: ContactBuilder) -> bool:
        if self.project is None:
            return self._not_loaded()

        async def operation() -> None:
            contact = self._require_contact(contact_id)
            updates = await build(contact)
            if not updates:
                raise ValidationFailure("Nothing to save")
            self._check_contact_fields(updates)
            updated = await self._gateway.update_contact(contact_id, updates)
            self.contacts = [updated if c.id == contact_id else c for c in self.contacts]

        return await self._perform(key, operation)

    # ------------------------------------------------------------------
    # Project fields and final design files
    # ------------------------------------------------------------------

    async def save_project_field(self, field: str, value: str) -> bool:
        if self.project is None:
            return self._not_loaded()

        async def operation() -> None:
            project = self._require_project()
            if field not in PROJECT_FIELD_STAGES or field == "illustrator_files":
                raise ValidationFailure(f"Unknown project field: {field}")
            stage = PROJECT_FIELD_STAGES[field]
            if stage is not None:
                self._require_writable(stage)
            cleaned = value
            if field == "final_design_file_link":
                cleaned = clean_link(value)
            elif field == "name" and not value.strip():
                raise ValidationFailure("Project name is required")
            self.project = await self._gateway.update_project(project.id, {field: cleaned})

        return await self._perform(field_editor(field), operation)

    async def save_final_design_link(self, url: str) -> bool:
        return await self.save_project_field("final_design_file_link", url)

    async def add_final_design_files(self, files: list[UploadedFile]) -> bool:
        async def build(project: Project) -> list[Attachment]:
            uploaded = await upload_batch(
                self._uploader, files, DESIGN_FILE_EXTENSIONS, self._max_upload_bytes
            )
            return append_attachments(project.illustrator_files, uploaded)

        return await self._save_final_design_files(build)

    async def remove_final_design_file(self, index: int) -> bool:
        async def build(project: Project) -> list[Attachment]:
            return self._without(project.illustrator_files, index)

        return await self._save_final_design_files(build)

    async def _save_final_design_files(
        self, build: Callable[[Project], Awaitable[list[Attachment]]]
    ) -> bool:
        if self.project is None:
            return self._not_loaded()

        async def operation() -> None:
            project = self._require_project()
            self._require_writable(ProjectStage.HANDOFF)
            files = await build(project)
            self.project = await self._gateway.update_project(
                project.id, {"illustrator_files": files}
            )

        return await self._perform(field_editor("illustrator_files"), operation)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _perform(self, key: str, operation: Callable[[], Awaitable[None]]) -> bool:
        try:
            self.editors.begin(key)
        except EditorBusy as exc:
            self.last_error = exc
            log.warning("funnel.editor_busy", editor=key)
            return False

        try:
            await operation()
        except FunnelError as exc:
            error = exc
        except Exception as exc:
            log.exception("funnel.action_crashed", editor=key)
            error = UnexpectedError(f"Unexpected error while saving: {exc}")
        else:
            self.editors.succeed(key)
            self.last_error = None
            return True
        finally:
            # Cancellation skips both branches above.
            self.editors.release(key)

        self.editors.fail(key, error)
        self.last_error = error
        log.warning(
            "funnel.action_failed",
            project_id=self.project.id if self.project else None,
            editor=key,
            code=error.code,
            error=error.message,
        )
        return False

    def _not_loaded(self) -> bool:
        self.last_error = self.error or ValidationFailure("No project loaded")
        return False

    def _require_project(self) -> Project:
        if self.project is None:
            raise ValidationFailure("No project loaded")
        return self.project

    def _require_contact(self, contact_id: str) -> Contact:
        for contact in self.contacts:
            if contact.id == contact_id:
                return contact
        raise NotFoundError("Contact not found in this project")

    def _require_writable(self, stage: ProjectStage) -> None:
        current = self._require_project().stage
        if is_writable(stage, current):
            return
        if is_completed(stage, current):
            raise ReadOnlyError(f"The {stage.value} stage is completed and read-only")
        raise ReadOnlyError(f"The {stage.value} stage has not been reached yet")

    def _check_contact_fields(self, updates: dict) -> None:
        for field in updates:
            if field not in CONTACT_FIELD_STAGES:
                raise ValidationFailure(f"Field {field} cannot be edited")
            stage = CONTACT_FIELD_STAGES[field]
            if stage is not None:
                self._require_writable(stage)

    @staticmethod
    def _without(items: list[Attachment], index: int) -> list[Attachment]:
        try:
            return remove_attachment(items, index)
        except IndexError as exc:
            raise ValidationFailure(str(exc)) from exc
