from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Ratings arrive as JSON numbers or numeric strings; coercion happens in the writer
RatingValue = Union[int, float, str]

IDENTITY_FIELDS = ('email', 'client_name', 'project')
OPTIONAL_TEXT_FIELDS = (
    'reactivity_suggestion', 'deadlines_suggestion',
    'deliverables_suggestion', 'professionalism_suggestion',
    'global_comment',
)


# ---------------------------
# Requests
# ---------------------------
class FeedbackSubmission(BaseModel):
    """Body of POST /api/feedback.

    Every field is optional at the schema level so that a missing required
    field is reported by name with a 400 rather than a generic 422.
    """
    model_config = ConfigDict(extra='ignore')

    email: Optional[str] = None
    client_name: Optional[str] = None
    project: Optional[str] = None
    reactivity: Optional[RatingValue] = None
    deadlines: Optional[RatingValue] = None
    deliverables: Optional[RatingValue] = None
    professionalism: Optional[RatingValue] = None
    reactivity_suggestion: Optional[str] = None
    deadlines_suggestion: Optional[str] = None
    deliverables_suggestion: Optional[str] = None
    professionalism_suggestion: Optional[str] = None
    global_comment: Optional[str] = None

    @field_validator(*IDENTITY_FIELDS, mode='before')
    @classmethod
    def _scalars_as_text(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator(*OPTIONAL_TEXT_FIELDS, mode='before')
    @classmethod
    def _falsy_as_null(cls, v):
        if not v and not isinstance(v, str):
            return None
        if isinstance(v, bool):
            return 'true'
        if isinstance(v, (int, float)):
            return str(v)
        return v


# ---------------------------
# Responses
# ---------------------------
class SubmitResponse(BaseModel):
    ok: bool = True
    message: str


class HealthResponse(BaseModel):
    ok: bool
    version: Optional[str] = None
    error: Optional[str] = None


class ProjectStats(BaseModel):
    project: str
    responses: int
    avg_reactivity: float
    avg_deadlines: float
    avg_deliverables: float
    avg_professionalism: float
    avg_total: float


class ActionPlanEntry(BaseModel):
    project: str
    recommendations: List[str]


class StatsResponse(BaseModel):
    month: str
    start: str
    projects: List[ProjectStats] = Field(default_factory=list)
    action_plan: List[ActionPlanEntry] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
