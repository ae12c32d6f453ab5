from __future__ import annotations

from datetime import date as dt_date
from datetime import datetime as dt_datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class SimpleStatusResponse(BaseModel):
    status: str


class GroupCreateRequest(BaseModel):
    name: str
    description: str = ""


class GroupOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    name: str
    description: str
    coach_id: int
    created_at: dt_datetime
    active: bool


class MembershipOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    athlete_id: int
    group_code: str
    joined_at: dt_datetime


class GroupSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    group_code: str
    name: str
    member_count: int
    active_tests: int
    average_percent: float


class TierOut(BaseModel):
    label: str
    min: float
    max: float


class TestDefinitionOut(BaseModel):
    __test__ = False  # not a pytest class
    model_config = ConfigDict(from_attributes=True)

    id: int
    coach_id: int
    name: str
    description: str
    metric_kind: str
    tiers: list[TierOut]
    created_at: dt_datetime


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    test_id: int
    group_code: str
    coach_id: int
    assigned_on: dt_datetime
    due_on: dt_date
    roster_size: int = 0


class CompletionStatusOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    assignment_id: int
    pending: list[int]
    completed: list[int]


class ParticipantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    athlete_id: int
    name: str
    status: str
    value: Optional[float] = None
    tier: Optional[str] = None
    comment: Optional[str] = None


class AssignmentDetailOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    assignment_id: int
    test_id: int
    test_name: str
    group_code: str
    due_on: dt_date
    participants: list[ParticipantOut]


class AthleteAssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    assignment_id: int
    test_id: int
    test_name: str
    group_code: str
    due_on: dt_date
    status: str
    value: Optional[float] = None
    tier: Optional[str] = None


class ResetOut(BaseModel):
    assignment_id: int
    athlete_id: int
    results_deleted: int


class ResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    assignment_id: int
    athlete_id: int
    value: float
    recorded_on: dt_datetime


class CommentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    result_id: int
    coach_id: int
    body: str
    commented_on: dt_datetime


class ClassifyRequest(BaseModel):
    value: Any = None
    tiers: list[dict[str, Any]] = Field(default_factory=list)


class ClassifyResponse(BaseModel):
    label: Optional[str] = None


class ProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    assignment_id: int
    total: int
    completed_count: int
    percent: int
    due_on: Optional[dt_date] = None
    group_code: Optional[str] = None
    test_id: Optional[int] = None
    test_name: Optional[str] = None


class GroupProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    group_code: str
    test_id: int
    test_name: str
    assignment_ids: list[int]
    total: int
    completed_count: int
    percent: int


class AssignmentListingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    active: list[ProgressOut]
    history: list[ProgressOut]


class FeedItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: str
    title: str
    message: str
    occurred_on: dt_datetime
    reference_id: int
    unread: bool


class PaginatedResponse(BaseModel, Generic[T]):
    items: list[T]
    total: int
    offset: int
    limit: int
