from typing import Optional, List
from pydantic import BaseModel, Field
from .common import EditorStatus, ProjectStage
from .contacts import Contact
from .projects import Project, StageView


class EditorStatusRead(BaseModel):
    key: str
    status: EditorStatus = EditorStatus.IDLE
    message: str = ""
    code: Optional[str] = None


class FunnelView(BaseModel):
    project: Project
    contacts: List[Contact] = Field(default_factory=list)
    stages: List[StageView] = Field(default_factory=list)
    editors: List[EditorStatusRead] = Field(default_factory=list)
    scroll_to: Optional[ProjectStage] = None
    contact_creators: List[str] = Field(default_factory=list)
    added_by_filter: Optional[str] = None


class BriefEntry(BaseModel):
    contact_id: str
    name: str
    company: str = ""
    linkedin_url: str = ""
    additional_contact_context: str = ""
    contact_added_by: str = ""
    copy_title1: str = ""
    copy_title2: str = ""
    copy_title3: str = ""
    copy_main_text: str = ""
    image_direction: str = ""
    headshot_urls: List[str] = Field(default_factory=list)
    company_logo_urls: List[str] = Field(default_factory=list)


class DesignBrief(BaseModel):
    project_id: str
    project_name: str
    entries: List[BriefEntry] = Field(default_factory=list)
