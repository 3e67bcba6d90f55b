"""Test feedback validation and submission."""
from datetime import timedelta

import pytest

from intrack.services.checkin_service import CheckInService
from intrack.services.feedback_service import FeedbackService
from intrack.utils.validators import ValidationError
from conftest import T0, VISIT_LAT, VISIT_LNG

QUESTIONS = [
    {'id': 'q1', 'label': 'Favourite section', 'type': 'text', 'required': True, 'options': []},
    {'id': 'q2', 'label': 'Topics covered', 'type': 'checkbox', 'required': False,
     'options': ['Safety', 'Automation', 'Quality']},
    {'id': 'q3', 'label': 'Would visit again', 'type': 'checkbox', 'required': False, 'options': []},
]


def _payload(**overrides):
    payload = {
        'starsContent': 5,
        'starsDelivery': 4,
        'starsRelevance': 3,
        'recommend': True,
        'shortAnswer': 'Very informative tour',
        'longAnswer': 'The automation line was explained in a lot of detail.',
        'extraResponses': {'q1': 'Assembly', 'q2': ['Safety', 'Quality'], 'q3': True},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def attended_visit(make_visit, company, student):
    visit = make_visit(company, extra_questions=QUESTIONS)
    CheckInService.check_in(visit.active_token.value, student.id,
                            {'lat': VISIT_LAT, 'lng': VISIT_LNG}, now=T0 + timedelta(minutes=5))
    return visit


def test_validate_payload_types_extra_responses(app):
    fields = FeedbackService.validate_payload(_payload(), QUESTIONS)

    assert fields['stars_content'] == 5
    assert fields['extra_responses'] == [
        {'question_id': 'q1', 'question_label': 'Favourite section', 'kind': 'text', 'value': 'Assembly'},
        {'question_id': 'q2', 'question_label': 'Topics covered', 'kind': 'checkbox',
         'value': ['Safety', 'Quality']},
        {'question_id': 'q3', 'question_label': 'Would visit again', 'kind': 'checkbox', 'value': True},
    ]


def test_validate_payload_accepts_list_of_responses(app):
    fields = FeedbackService.validate_payload(
        _payload(extraResponses=[{'questionId': 'q1', 'response': 'Paint shop'}]), QUESTIONS
    )
    assert [r['question_id'] for r in fields['extra_responses']] == ['q1']


@pytest.mark.parametrize('overrides', [
    {'starsContent': 0},
    {'starsDelivery': 6},
    {'starsRelevance': True},
    {'recommend': 'yes'},
    {'shortAnswer': 'short'},
    {'longAnswer': 'too short'},
    {'extraResponses': {'q2': ['Safety']}},
    {'extraResponses': {'q1': 'x', 'q2': ['Marketing']}},
    {'extraResponses': {'q1': 'x', 'q3': 'yes'}},
    {'extraResponses': {'q1': 42}},
    {'extraResponses': {'q1': 'x', 'q9': 'unknown'}},
])
def test_validate_payload_rejects(app, overrides):
    with pytest.raises(ValidationError):
        FeedbackService.validate_payload(_payload(**overrides), QUESTIONS)


def test_submit_updates_derived_counters(attended_visit, student):
    feedback, error = FeedbackService.submit(attended_visit, student.id, _payload(), now=T0 + timedelta(hours=3))

    assert error is None
    assert feedback.average_rating == 4.0
    assert attended_visit.feedback_count == 1
    assert attended_visit.average_rating == 4.0


def test_submit_requires_attendance(make_visit, company, other_student):
    visit = make_visit(company, extra_questions=QUESTIONS)

    feedback, error = FeedbackService.submit(visit, other_student.id, _payload())

    assert feedback is None
    assert error.message == "Only students who attended the visit can submit feedback"
    assert error.status_code == 403


def test_submit_once_per_student(attended_visit, student):
    FeedbackService.submit(attended_visit, student.id, _payload())

    feedback, error = FeedbackService.submit(attended_visit, student.id, _payload())

    assert feedback is None
    assert error.message == "Feedback already submitted for this visit"
    assert error.status_code == 409
    assert attended_visit.feedback_count == 1


def test_anonymous_feedback_hides_student(attended_visit, student):
    feedback, _ = FeedbackService.submit(attended_visit, student.id, _payload(isAnonymous=True))
    assert feedback.to_dict()['student_id'] is None
