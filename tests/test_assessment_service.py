"""Tests for the server-side session service."""

import pytest
from conftest import answer_all

from api.sample_questions import SAMPLE_POOL
from leadership_assessment.models.question_model import ChunkSubmission
from leadership_assessment.models.session_state import AssessmentVersion, SessionStatus
from leadership_assessment.services import assessment_service as svc


def submissions(questions, **overrides):
    answers = answer_all(questions)
    answers.update(overrides)
    return [ChunkSubmission(question_id=qid, answer_value=v, response_time_ms=500) for qid, v in answers.items()]


def run_to_completion(record, started):
    questions = started.questions
    while True:
        result = svc.submit_chunk(record, submissions(questions), SAMPLE_POOL)
        if result.complete:
            return result
        questions = result.questions


# ── start ──────────────────────────────────────────────────────────────────────

def test_start_quick():
    record, started = svc.start_assessment(AssessmentVersion.QUICK, SAMPLE_POOL)

    assert record.status is SessionStatus.IN_PROGRESS
    assert record.current_chunk == 1
    assert started.total_chunks == record.total_chunks == 3
    assert len(started.questions) == 5
    assert started.session_id == record.id
    assert started.token == record.token
    assert record.current_chunk_question_ids == [q.id for q in started.questions]


def test_tokens_are_unique_and_url_safe():
    tokens = {svc.start_assessment("quick", SAMPLE_POOL)[0].token for _ in range(50)}
    assert len(tokens) == 50
    assert all(len(t) == 12 and "/" not in t and "+" not in t for t in tokens)


def test_client_questions_hide_pool_metadata():
    _, started = svc.start_assessment(AssessmentVersion.DEEP, SAMPLE_POOL)
    dumped = started.model_dump()
    assert all("dimension" not in q and "version_availability" not in q for q in dumped["questions"])


def test_quick_excludes_deep_only_questions():
    deep_only = {q.id for q in SAMPLE_POOL if q.version_availability == ["deep"]}
    assert deep_only
    quick_ids = {q.id for q in svc.version_pool(SAMPLE_POOL, AssessmentVersion.QUICK)}
    assert not quick_ids & deep_only
    assert len(quick_ids) == 22


def test_select_chunk_prefers_unanswered_then_oldest_answered():
    pool = svc.version_pool(SAMPLE_POOL, AssessmentVersion.QUICK)[:6]
    answered = [q.id for q in pool[:5]]

    chunk = svc.select_chunk(pool, AssessmentVersion.QUICK, answered, size=3)

    assert [q.id for q in chunk] == [pool[5].id, pool[0].id, pool[1].id]


def test_select_chunk_without_questions():
    with pytest.raises(svc.SessionStateError):
        svc.select_chunk([], AssessmentVersion.QUICK)


# ── submit ─────────────────────────────────────────────────────────────────────

def test_submit_advances_to_next_chunk():
    record, started = svc.start_assessment(AssessmentVersion.QUICK, SAMPLE_POOL)

    result = svc.submit_chunk(record, submissions(started.questions), SAMPLE_POOL)

    assert not result.complete
    assert result.current_chunk == record.current_chunk == 2
    assert len(record.responses) == 5
    next_ids = {q.id for q in result.questions}
    assert not next_ids & {q.id for q in started.questions}


def test_last_chunk_completes_session():
    record, started = svc.start_assessment(AssessmentVersion.QUICK, SAMPLE_POOL)

    result = run_to_completion(record, started)

    assert result.complete
    assert result.questions is None
    assert result.current_chunk == result.total_chunks == 3
    assert record.status is SessionStatus.COMPLETED
    assert record.completed_at is not None
    assert len(record.responses) == 15
    assert len(record.answered_ids) == 15


def test_deep_reuses_questions_once_pool_runs_out():
    record, started = svc.start_assessment(AssessmentVersion.DEEP, SAMPLE_POOL)
    run_to_completion(record, started)
    assert record.total_chunks == 10
    assert len(record.responses) == 50
    assert len(set(record.answered_ids)) == 30


@pytest.mark.parametrize("mutate", [
    lambda subs: subs[:-1],                      # missing one
    lambda subs: subs + [subs[0]],               # duplicate
    lambda subs: subs[:-1] + [ChunkSubmission(question_id="nope", answer_value=3)],
])
def test_submission_must_match_current_chunk(mutate):
    record, started = svc.start_assessment(AssessmentVersion.QUICK, SAMPLE_POOL)
    with pytest.raises(svc.InvalidSubmissionError):
        svc.submit_chunk(record, mutate(submissions(started.questions)), SAMPLE_POOL)
    assert record.responses == []
    assert record.current_chunk == 1


def test_submission_rejects_out_of_range_answer():
    record, started = svc.start_assessment(AssessmentVersion.QUICK, SAMPLE_POOL)
    likert_id = next(q.id for q in started.questions if q.type == "likert")
    with pytest.raises(svc.InvalidSubmissionError):
        svc.submit_chunk(record, submissions(started.questions, **{likert_id: 6}), SAMPLE_POOL)


def test_submit_to_missing_or_finished_session():
    with pytest.raises(svc.SessionNotFoundError):
        svc.submit_chunk(None, [], SAMPLE_POOL)

    record, started = svc.start_assessment(AssessmentVersion.QUICK, SAMPLE_POOL)
    run_to_completion(record, started)
    with pytest.raises(svc.SessionStateError):
        svc.submit_chunk(record, submissions(started.questions), SAMPLE_POOL)


# ── resume ─────────────────────────────────────────────────────────────────────

def test_resume_describes_current_chunk():
    record, started = svc.start_assessment(AssessmentVersion.DEEP, SAMPLE_POOL)
    result = svc.submit_chunk(record, submissions(started.questions), SAMPLE_POOL)

    descriptor = svc.resume_assessment(record, SAMPLE_POOL)

    assert descriptor.session_id == record.id
    assert descriptor.token == record.token
    assert descriptor.version is AssessmentVersion.DEEP
    assert descriptor.current_chunk == 2
    assert descriptor.total_chunks == 10
    assert [q.id for q in descriptor.questions] == [q.id for q in result.questions]


def test_resume_of_missing_or_completed_session_is_none():
    assert svc.resume_assessment(None, SAMPLE_POOL) is None

    record, started = svc.start_assessment(AssessmentVersion.QUICK, SAMPLE_POOL)
    run_to_completion(record, started)
    assert svc.resume_assessment(record, SAMPLE_POOL) is None

    abandoned, _ = svc.start_assessment(AssessmentVersion.QUICK, SAMPLE_POOL)
    abandoned.status = SessionStatus.ABANDONED
    assert svc.resume_assessment(abandoned, SAMPLE_POOL) is None


# ── upgrade ────────────────────────────────────────────────────────────────────

def test_upgrade_from_completed_quick():
    quick, started = svc.start_assessment(AssessmentVersion.QUICK, SAMPLE_POOL)
    run_to_completion(quick, started)

    record, upgraded = svc.start_upgrade_assessment(quick, SAMPLE_POOL)

    assert record.version is AssessmentVersion.DEEP
    assert record.upgrade_from_token == quick.token
    assert record.token != quick.token
    assert upgraded.total_chunks == 7


def test_upgrade_preconditions():
    with pytest.raises(svc.SessionNotFoundError):
        svc.start_upgrade_assessment(None, SAMPLE_POOL)

    in_progress, _ = svc.start_assessment(AssessmentVersion.QUICK, SAMPLE_POOL)
    with pytest.raises(svc.SessionStateError):
        svc.start_upgrade_assessment(in_progress, SAMPLE_POOL)

    deep, started = svc.start_assessment(AssessmentVersion.DEEP, SAMPLE_POOL)
    run_to_completion(deep, started)
    with pytest.raises(svc.SessionStateError):
        svc.start_upgrade_assessment(deep, SAMPLE_POOL)


def test_sample_pool_question_types():
    by_id = {q.id: q for q in SAMPLE_POOL}
    assert len(by_id) == len(SAMPLE_POOL) == 30
    assert [by_id[i].type for i in ("sit-01", "sit-02", "sit-03")] == ["situational"] * 3
    assert [by_id[i].type for i in ("fc-01", "fc-02", "fc-03")] == ["forced_choice"] * 3
    assert sum(q.type == "likert" for q in SAMPLE_POOL) == 24
