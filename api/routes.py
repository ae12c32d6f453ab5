from __future__ import annotations

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from api.deps import Page, get_db, get_page
from api.schemas import (
    AssignmentDetailOut,
    AssignmentListingOut,
    AssignmentOut,
    AthleteAssignmentOut,
    ClassifyRequest,
    ClassifyResponse,
    CommentOut,
    CompletionStatusOut,
    FeedItemOut,
    GroupCreateRequest,
    GroupOut,
    GroupProgressOut,
    GroupSummaryOut,
    MembershipOut,
    PaginatedResponse,
    ProgressOut,
    ResetOut,
    ResultOut,
    SimpleStatusResponse,
    TestDefinitionOut,
)
from tracker.services import catalog, completion, feed, groups, progress, results, roster
from tracker.services.tiers import classify
from tracker.validators import (
    AssignmentCreateInput,
    CommentInput,
    MembershipInput,
    ResultInput,
    TestDefinitionInput,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1")

DbSession = Annotated[Session, Depends(get_db)]
Paging = Annotated[Page, Depends(get_page)]


@router.get("/health", response_model=SimpleStatusResponse, tags=["system"])
def health():
    return SimpleStatusResponse(status="ok")


# -- Groups --


@router.post("/coaches/{coach_id}/groups", response_model=GroupOut, status_code=201, tags=["groups"])
def create_group(coach_id: int, body: GroupCreateRequest, db: DbSession):
    group = groups.create_group(db, coach_id, body.name, body.description)
    return GroupOut.model_validate(group)


@router.post("/groups/{group_code}/members", response_model=MembershipOut, status_code=201, tags=["groups"])
def join_group(group_code: str, body: MembershipInput, db: DbSession):
    return MembershipOut.model_validate(groups.add_member(db, group_code, body.athlete_id))


@router.delete("/groups/{group_code}/members/{athlete_id}", status_code=204, tags=["groups"])
def leave_group(group_code: str, athlete_id: int, db: DbSession):
    groups.remove_member(db, group_code, athlete_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/coaches/{coach_id}/groups/{group_code}/summary", response_model=GroupSummaryOut, tags=["groups"])
def group_summary(coach_id: int, group_code: str, db: DbSession):
    return GroupSummaryOut.model_validate(progress.group_summary(db, group_code, coach_id=coach_id))


# -- Test catalog --


@router.post("/coaches/{coach_id}/tests", response_model=TestDefinitionOut, status_code=201, tags=["tests"])
def create_test(coach_id: int, body: TestDefinitionInput, db: DbSession):
    return TestDefinitionOut.model_validate(catalog.create_test_definition(db, coach_id, body))


@router.get("/coaches/{coach_id}/tests", response_model=PaginatedResponse[TestDefinitionOut], tags=["tests"])
def list_tests(coach_id: int, db: DbSession, page: Paging):
    rows = catalog.list_test_definitions(db, coach_id, offset=page.offset, limit=page.limit)
    return PaginatedResponse[TestDefinitionOut](
        items=[TestDefinitionOut.model_validate(t) for t in rows],
        total=catalog.count_test_definitions(db, coach_id),
        offset=page.offset,
        limit=page.limit,
    )


@router.delete("/coaches/{coach_id}/tests/{test_id}", status_code=204, tags=["tests"])
def delete_test(coach_id: int, test_id: int, db: DbSession):
    catalog.delete_test_definition(db, coach_id, test_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/classify", response_model=ClassifyResponse, tags=["tests"])
def classify_value(body: ClassifyRequest):
    return ClassifyResponse(label=classify(body.value, body.tiers))


# -- Assignments --


@router.post("/coaches/{coach_id}/assignments", response_model=AssignmentOut, status_code=201, tags=["assignments"])
def create_assignment(coach_id: int, body: AssignmentCreateInput, db: DbSession):
    assignment = roster.snapshot_roster(db, coach_id, body.group_code, body.test_id, body.due_on)
    out = AssignmentOut.model_validate(assignment)
    out.roster_size = len(roster.roster_athlete_ids(db, assignment.id))
    return out


@router.get("/coaches/{coach_id}/assignments", response_model=AssignmentListingOut, tags=["assignments"])
def list_assignments(
    coach_id: int,
    db: DbSession,
    status_filter: str = Query("all", alias="status", pattern="^(all|pending|completed)$"),
):
    listing = progress.coach_assignment_listing(db, coach_id)
    return AssignmentListingOut(
        active=[ProgressOut.model_validate(p) for p in progress.filter_by_completion(listing.active, status_filter)],
        history=[ProgressOut.model_validate(p) for p in progress.filter_by_completion(listing.history, status_filter)],
    )


@router.get("/assignments/{assignment_id}/status", response_model=CompletionStatusOut, tags=["assignments"])
def assignment_status(assignment_id: int, db: DbSession):
    derived = completion.derive_status(db, assignment_id)
    return CompletionStatusOut(assignment_id=assignment_id, pending=derived.pending, completed=derived.completed)


@router.get("/assignments/{assignment_id}/detail", response_model=AssignmentDetailOut, tags=["assignments"])
def assignment_detail(assignment_id: int, db: DbSession):
    return AssignmentDetailOut.model_validate(completion.assignment_detail(db, assignment_id))


@router.delete("/assignments/{assignment_id}/results/{athlete_id}", response_model=ResetOut, tags=["assignments"])
def reset_result(assignment_id: int, athlete_id: int, db: DbSession):
    deleted = completion.reset_completion(db, assignment_id, athlete_id)
    return ResetOut(assignment_id=assignment_id, athlete_id=athlete_id, results_deleted=deleted)


@router.post("/assignments/{assignment_id}/results", response_model=ResultOut, status_code=201, tags=["results"])
def submit_result(assignment_id: int, body: ResultInput, db: DbSession):
    return ResultOut.model_validate(results.submit_result(db, assignment_id, body.athlete_id, body.value))


@router.post("/results/{result_id}/comments", response_model=CommentOut, status_code=201, tags=["results"])
def comment_result(result_id: int, body: CommentInput, db: DbSession):
    return CommentOut.model_validate(results.add_comment(db, result_id, body.coach_id, body.body))


# -- Progress --


@router.get("/progress", response_model=list[ProgressOut], tags=["progress"])
def assignment_progress(
    db: DbSession,
    assignment_ids: list[int] = Query([], alias="assignment_id"),
    skip_missing: bool = False,
):
    return [ProgressOut.model_validate(p) for p in progress.aggregate(db, assignment_ids, skip_missing=skip_missing)]


@router.get("/progress/groups", response_model=list[GroupProgressOut], tags=["progress"])
def group_progress(
    db: DbSession,
    assignment_ids: list[int] = Query([], alias="assignment_id"),
    skip_missing: bool = False,
):
    return [
        GroupProgressOut.model_validate(g)
        for g in progress.aggregate_by_group(db, assignment_ids, skip_missing=skip_missing)
    ]


# -- Athlete views --


@router.get("/athletes/{athlete_id}/assignments", response_model=list[AthleteAssignmentOut], tags=["athletes"])
def athlete_assignments(athlete_id: int, db: DbSession):
    return [AthleteAssignmentOut.model_validate(r) for r in completion.athlete_assignments(db, athlete_id)]


@router.get("/athletes/{athlete_id}/feed", response_model=list[FeedItemOut], tags=["athletes"])
def athlete_feed(athlete_id: int, db: DbSession, window_days: Optional[int] = Query(None, ge=0, le=365)):
    return [FeedItemOut.model_validate(item) for item in feed.build_feed(db, athlete_id, window_days=window_days)]
