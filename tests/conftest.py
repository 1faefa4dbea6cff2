"""Shared pytest fixtures: a fresh in-memory app per test plus small factories."""

import pytest
from flask import template_rendered

from app import create_app
from config import TestConfig
from extensions import db
from models import Answer, Privilege, Question, Setting, User, Vote

BODY = "This is a sufficiently long answer body for validation."


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.session.add_all([
            Privilege(name="Edit", threshold=1000),
            Privilege(name="Delete", threshold=3000),
            Setting(name="AnswerUpVoteRep", value="10"),
            Setting(name="AnswerDownVoteRep", value="-2"),
        ])
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(user: User) -> None:
        with client.session_transaction() as s:
            s["user_id"] = user.id
    return _login


@pytest.fixture
def flashes(client):
    def _flashes() -> list:
        with client.session_transaction() as s:
            return [tuple(f) for f in s.get("_flashes", [])]
    return _flashes


@pytest.fixture
def captured_templates(app):
    recorded = []

    def record(sender, template, context, **extra):
        recorded.append((template, context))

    template_rendered.connect(record, app)
    yield recorded
    template_rendered.disconnect(record, app)


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(username=None, reputation=1, is_admin=False) -> User:
        counter["n"] += 1
        u = User(username=username or f"user{counter['n']}", reputation=reputation, is_admin=is_admin)
        u.set_password("password123")
        db.session.add(u)
        db.session.commit()
        return u
    return _make


@pytest.fixture
def make_question(app, make_user):
    def _make(title="How do I do the thing?", tags="", user=None) -> Question:
        q = Question(title=title, body="Question body.", tags=tags, user=user or make_user())
        db.session.add(q)
        db.session.commit()
        return q
    return _make


@pytest.fixture
def make_answer(app, make_user, make_question):
    def _make(question=None, user=None, body=BODY, ups=0, downs=0) -> Answer:
        a = Answer(body=body, question=question or make_question(), user=user or make_user(), score=ups - downs)
        db.session.add(a)
        db.session.flush()
        for _ in range(ups):
            db.session.add(Vote(answer_id=a.id, user=make_user(), vote_type=1))
        for _ in range(downs):
            db.session.add(Vote(answer_id=a.id, user=make_user(), vote_type=-1))
        db.session.commit()
        return a
    return _make
