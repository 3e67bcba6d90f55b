"""Feedback submitted by attendees after a visit."""
from intrack import db
from intrack.models.base import BaseModel
from intrack.utils.helpers import utcnow


class Feedback(BaseModel):
    """Star ratings, free text and answers to the visit's extra questions."""

    __tablename__ = 'feedbacks'

    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    visit_id = db.Column(db.Integer, db.ForeignKey('visits.id'), nullable=False)

    stars_content = db.Column(db.Integer, nullable=False)
    stars_delivery = db.Column(db.Integer, nullable=False)
    stars_relevance = db.Column(db.Integer, nullable=False)
    recommend = db.Column(db.Boolean, nullable=False)

    short_answer = db.Column(db.String(200), nullable=False)
    long_answer = db.Column(db.String(1000), nullable=False)

    # [{question_id, question_label, kind, value}]
    extra_responses = db.Column(db.JSON, nullable=False, default=list)

    is_anonymous = db.Column(db.Boolean, nullable=False, default=False)
    submitted_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.UniqueConstraint('student_id', 'visit_id', name='uq_feedback_student_visit'),
        db.CheckConstraint('stars_content BETWEEN 1 AND 5', name='ck_feedback_content'),
        db.CheckConstraint('stars_delivery BETWEEN 1 AND 5', name='ck_feedback_delivery'),
        db.CheckConstraint('stars_relevance BETWEEN 1 AND 5', name='ck_feedback_relevance'),
    )

    @property
    def average_rating(self) -> float:
        return round((self.stars_content + self.stars_delivery + self.stars_relevance) / 3, 2)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'visit_id': self.visit_id,
            'student_id': None if self.is_anonymous else self.student_id,
            'stars_content': self.stars_content,
            'stars_delivery': self.stars_delivery,
            'stars_relevance': self.stars_relevance,
            'average_rating': self.average_rating,
            'recommend': self.recommend,
            'short_answer': self.short_answer,
            'long_answer': self.long_answer,
            'extra_responses': self.extra_responses or [],
            'is_anonymous': self.is_anonymous,
            'submitted_at': self.submitted_at.isoformat()
        }

    def __repr__(self):
        return f'<Feedback {self.student_id}-{self.visit_id}>'
