"""
Shared fixtures: an in-memory gateway, a fake asset uploader and an API
client wired to both through dependency overrides.
"""

from __future__ import annotations

from typing import Any, Optional

import pytest
from httpx import ASGITransport, AsyncClient

from magic_cards_server.api.deps import get_gateway, get_uploader
from magic_cards_server.core.config import Settings, get_settings
from magic_cards_server.core.errors import NotFoundError, UploadError
from magic_cards_server.core.metrics import MetricsCollector
from magic_cards_server.core.uploads import UploadedFile
from magic_cards_server.main import create_app
from magic_cards_server.services.funnel import FunnelController
from magic_cards_shared.schemas.common import ProjectStage
from magic_cards_shared.schemas.contacts import Contact
from magic_cards_shared.schemas.projects import Project


class FakeGateway:
    """In-memory stand-in for ``PersistenceGateway``.

    Every call is recorded in ``calls``. Put an exception in ``fail_on`` under
    a method name to make that method raise it.
    """

    def __init__(self):
        self.projects: dict[str, Project] = {}
        self.contacts: dict[str, Contact] = {}
        self.calls: list[tuple] = []
        self.fail_on: dict[str, BaseException] = {}
        self._seq = 0

    def _next_id(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}{self._seq:04d}"

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        exc = self.fail_on.get(name)
        if exc is not None:
            raise exc

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    # --- Seeding helpers (not recorded) ---

    def add_project(self, stage: ProjectStage = ProjectStage.CONTACTS, **fields) -> Project:
        project = Project(id=self._next_id("rec_p"), name=fields.pop("name", "Acme Launch"),
                          stage=stage, **fields)
        self.projects[project.id] = project
        return project

    def add_contact(self, project: Optional[Project] = None, **fields) -> Contact:
        contact = Contact(id=self._next_id("rec_c"), name=fields.pop("name", "Ada Lovelace"),
                          **fields)
        self.contacts[contact.id] = contact
        if project is not None:
            current = self.projects[project.id]
            self.projects[project.id] = current.model_copy(
                update={"linked_contacts": [*current.linked_contacts, contact.id]}
            )
        return contact

    # --- Projects ---

    async def list_projects(self) -> list[Project]:
        self._record("list_projects")
        return list(reversed(self.projects.values()))

    async def get_project(self, project_id: str) -> Optional[Project]:
        self._record("get_project", project_id)
        return self.projects.get(project_id)

    async def create_project(self, fields: dict) -> Project:
        self._record("create_project", fields)
        project = Project(id=self._next_id("rec_p"), **fields)
        self.projects[project.id] = project
        return project

    async def update_project(self, project_id: str, updates: dict) -> Project:
        self._record("update_project", project_id, updates)
        if project_id not in self.projects:
            raise NotFoundError("Project not found")
        project = self.projects[project_id].model_copy(update=updates)
        self.projects[project_id] = project
        return project

    async def delete_project(self, project_id: str) -> None:
        self._record("delete_project", project_id)
        if self.projects.pop(project_id, None) is None:
            raise NotFoundError("Project not found")

    # --- Contacts ---

    async def get_contacts_by_ids(self, contact_ids: list[str]) -> list[Contact]:
        self._record("get_contacts_by_ids", list(contact_ids))
        # The store does not promise any order.
        return [self.contacts[cid] for cid in reversed(contact_ids) if cid in self.contacts]

    async def create_contact(self, fields: dict) -> Contact:
        self._record("create_contact", fields)
        contact = Contact(id=self._next_id("rec_c"), **fields)
        self.contacts[contact.id] = contact
        return contact

    async def update_contact(self, contact_id: str, updates: dict) -> Contact:
        self._record("update_contact", contact_id, updates)
        if contact_id not in self.contacts:
            raise NotFoundError("Contact not found")
        contact = self.contacts[contact_id].model_copy(update=updates)
        self.contacts[contact_id] = contact
        return contact

    async def delete_contact(self, contact_id: str) -> None:
        self._record("delete_contact", contact_id)
        if self.contacts.pop(contact_id, None) is None:
            raise NotFoundError("Contact not found")

    async def link_contact_to_project(self, project_id: str, contact_id: str) -> Project:
        self._record("link_contact_to_project", project_id, contact_id)
        project = self.projects[project_id]
        if contact_id in project.linked_contacts:
            return project
        project = project.model_copy(
            update={"linked_contacts": [*project.linked_contacts, contact_id]}
        )
        self.projects[project_id] = project
        return project

    async def unlink_contact_from_project(self, project_id: str, contact_id: str) -> Project:
        self._record("unlink_contact_from_project", project_id, contact_id)
        project = self.projects[project_id]
        project = project.model_copy(
            update={"linked_contacts": [c for c in project.linked_contacts if c != contact_id]}
        )
        self.projects[project_id] = project
        return project


class FakeUploader:
    """Returns a CDN URL per file; filenames in ``fail_for`` raise UploadError."""

    def __init__(self):
        self.uploaded: list[str] = []
        self.fail_for: set[str] = set()

    async def upload(self, file: UploadedFile) -> str:
        if file.filename in self.fail_for:
            raise UploadError("Upload preset not found")
        self.uploaded.append(file.filename)
        return f"https://cdn.test/{file.filename}"


def make_file(name: str = "draft.pdf", size: int = 128, content_type: str = "application/pdf"):
    return UploadedFile(filename=name, content=b"x" * size, content_type=content_type)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def make_controller(gateway, uploader, metrics):
    def _make(**kwargs) -> FunnelController:
        kwargs.setdefault("saved_badge_seconds", 60)
        return FunnelController(gateway, uploader, metrics=metrics, **kwargs)

    return _make


@pytest.fixture
def loaded(gateway, make_controller):
    """Factory: seed a project at ``stage`` with ``contacts`` and load it."""

    async def _loaded(stage=ProjectStage.CONTACTS, contacts: int = 1, **kwargs):
        project = gateway.add_project(stage)
        for i in range(contacts):
            gateway.add_contact(project, name=f"Contact {i + 1}", company="Acme")
        controller = make_controller(**kwargs)
        assert await controller.load(project.id)
        gateway.calls.clear()
        return controller

    return _loaded


@pytest.fixture
def settings() -> Settings:
    return Settings(
        contact_creators=["Zoe", "Ben"],
        saved_badge_seconds=60,
        log_format="text",
        _env_file=None,
    )


@pytest.fixture
def app(gateway, uploader, settings):
    app = create_app(settings)
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_uploader] = lambda: uploader
    app.dependency_overrides[get_settings] = lambda: settings
    return app


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
