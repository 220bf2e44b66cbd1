from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuestionIn(CamelModel):
    text: Optional[str] = None
    type: str
    options: Optional[List[str]] = None
    # index into the non-blank options for multiple choice, "true"/"false" or text otherwise
    correct_answer: Optional[Union[int, str]] = None
    points: Optional[float] = None
    image_url: Optional[str] = None


class AssessmentIn(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    course_id: Optional[int] = None
    questions: List[QuestionIn] = []
    position: Optional[int] = None
    timer: Optional[int] = None
    max_attempts: Optional[int] = None


class PublishIn(CamelModel):
    is_published: bool


class SubmittedAnswer(CamelModel):
    question_id: int
    answer: Optional[str] = ""


class SubmissionIn(CamelModel):
    answers: List[SubmittedAnswer] = []
