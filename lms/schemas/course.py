from typing import List, Optional

from pydantic import Field

from lms.schemas.assessment import CamelModel


class CourseCreate(CamelModel):
    title: str


class CourseUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    grade: Optional[str] = None
    subject: Optional[str] = None
    semester: Optional[str] = None
    is_published: Optional[bool] = None


class ChapterCreate(CamelModel):
    title: str


class ChapterUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    video_url: Optional[str] = None
    is_free: Optional[bool] = None
    max_views: Optional[int] = Field(default=None, ge=0)


class ReorderItem(CamelModel):
    id: int
    type: str
    position: int


class ReorderIn(CamelModel):
    items: List[ReorderItem]
