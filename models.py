from dataclasses import dataclass
from datetime import datetime
from typing import Union

from sqlalchemy.ext.hybrid import hybrid_property
from werkzeug.security import generate_password_hash, check_password_hash
from extensions import db

UP_VOTE = 1
DOWN_VOTE = -1


@dataclass(frozen=True)
class Active:
    pass


@dataclass(frozen=True)
class Deleted:
    at: datetime


PostState = Union[Active, Deleted]
ACTIVE = Active()


class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(32), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    reputation = db.Column(db.Integer, default=1, nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    questions = db.relationship("Question", back_populates="user")
    answers = db.relationship("Answer", back_populates="user")
    votes = db.relationship("Vote", back_populates="user", cascade="all, delete-orphan")
    notifications = db.relationship(
        "Notification",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Notification.created_at.desc()",
    )

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def has_privilege(self, name: str) -> bool:
        if self.is_admin:
            return True
        privilege = Privilege.query.filter_by(name=name).first()
        if privilege is None:
            return False
        return (self.reputation or 0) >= privilege.threshold

    def create_notification(self, content: str, link: str) -> "Notification":
        # committed by the caller together with whatever triggered it
        notification = Notification(content=content, link=link)
        self.notifications.append(notification)
        return notification


class Privilege(db.Model):
    __tablename__ = "privileges"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)
    threshold = db.Column(db.Integer, nullable=False)


class Question(db.Model):
    __tablename__ = "questions"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    body = db.Column(db.Text, nullable=False)
    tags = db.Column(db.String(255), default="", nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    user = db.relationship("User", back_populates="questions")

    answers = db.relationship(
        "Answer",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="Answer.created_at.asc()",
    )


class Answer(db.Model):
    __tablename__ = "answers"
    id = db.Column(db.Integer, primary_key=True)
    body = db.Column(db.Text, nullable=False)
    score = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    # the only soft-delete column; `deleted` and `state` are both derived from it
    deleted_at = db.Column(db.DateTime, nullable=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    question_id = db.Column(db.Integer, db.ForeignKey("questions.id"), nullable=False)

    user = db.relationship("User", back_populates="answers")
    question = db.relationship("Question", back_populates="answers")

    votes = db.relationship("Vote", back_populates="answer", cascade="all, delete-orphan")
    history = db.relationship(
        "PostHistory",
        back_populates="answer",
        cascade="all, delete-orphan",
        order_by="PostHistory.created_at.asc()",
    )

    @hybrid_property
    def deleted(self) -> bool:
        return self.deleted_at is not None

    @deleted.expression
    def deleted(cls):
        return cls.deleted_at.is_not(None)

    @property
    def state(self) -> PostState:
        if self.deleted_at is None:
            return ACTIVE
        return Deleted(at=self.deleted_at)

    @state.setter
    def state(self, value: PostState) -> None:
        self.deleted_at = value.at if isinstance(value, Deleted) else None

    @staticmethod
    def body_errors(body: str, min_length: int, max_length: int) -> list[str]:
        body = (body or "").strip()
        if not body:
            return ["Body can't be blank."]
        errors = []
        if len(body) < min_length:
            errors.append(f"Body is too short (minimum is {min_length} characters).")
        if len(body) > max_length:
            errors.append(f"Body is too long (maximum is {max_length} characters).")
        return errors


class Vote(db.Model):
    __tablename__ = "votes"
    id = db.Column(db.Integer, primary_key=True)
    vote_type = db.Column(db.Integer, nullable=False)  # UP_VOTE or DOWN_VOTE

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    answer_id = db.Column(db.Integer, db.ForeignKey("answers.id"), nullable=False, index=True)

    user = db.relationship("User", back_populates="votes")
    answer = db.relationship("Answer", back_populates="votes")

    __table_args__ = (
        db.UniqueConstraint("user_id", "answer_id", name="uq_user_answer_vote"),
    )


class Setting(db.Model):
    __tablename__ = "settings"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    value = db.Column(db.Text, nullable=True)


def get_setting(name: str, default=None):
    setting = Setting.query.filter_by(name=name).first()
    if setting is None or setting.value is None:
        return default
    return setting.value


class PostHistory(db.Model):
    __tablename__ = "post_histories"
    id = db.Column(db.Integer, primary_key=True)
    event = db.Column(db.String(20), nullable=False)  # 'edited', 'deleted' or 'undeleted'
    before_body = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    answer_id = db.Column(db.Integer, db.ForeignKey("answers.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    answer = db.relationship("Answer", back_populates="history")
    user = db.relationship("User")

    @classmethod
    def _record(cls, event: str, post: Answer, user: User, before_body=None) -> "PostHistory":
        entry = cls(event=event, answer=post, user=user, before_body=before_body)
        db.session.add(entry)
        return entry

    @classmethod
    def post_edited(cls, post: Answer, user: User) -> "PostHistory":
        return cls._record("edited", post, user, before_body=post.body)

    @classmethod
    def post_deleted(cls, post: Answer, user: User) -> "PostHistory":
        return cls._record("deleted", post, user)

    @classmethod
    def post_undeleted(cls, post: Answer, user: User) -> "PostHistory":
        return cls._record("undeleted", post, user)


class Notification(db.Model):
    __tablename__ = "notifications"
    id = db.Column(db.Integer, primary_key=True)
    content = db.Column(db.String(255), nullable=False)
    link = db.Column(db.String(255), nullable=False)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    user = db.relationship("User", back_populates="notifications")
