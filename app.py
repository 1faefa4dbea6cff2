import logging
from datetime import datetime

from flask import Flask, render_template, request, redirect, url_for, flash, session, abort
from sqlalchemy import event, or_
from sqlalchemy.exc import SQLAlchemyError

from config import Config
from extensions import db
from models import User, Question, Answer, Vote, PostHistory, Deleted, ACTIVE
from reputation import calculate_reputation, apply_vote
from rendering import MarkdownRenderer

log = logging.getLogger(__name__)


def truncate(text: str, length: int, omission: str = "...") -> str:
    if len(text) <= length:
        return text
    return text[: max(length - len(omission), 0)] + omission


def _sqlite_case_sensitive_like(dbapi_connection, connection_record):
    # SQLite only: its LIKE ignores ASCII case, and tag filtering is a
    # case-sensitive substring match. The pragma is deprecated upstream but
    # still honoured by stock builds.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA case_sensitive_like = ON")
    cursor.close()


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    logging.basicConfig(level=app.config["LOG_LEVEL"])
    db.init_app(app)

    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            event.listen(db.engine, "connect", _sqlite_case_sensitive_like)
        db.create_all()

    renderer = MarkdownRenderer()
    app.extensions["markdown_renderer"] = renderer

    # ---------- helpers ----------
    def current_user():
        uid = session.get("user_id")
        if not uid:
            return None
        return db.session.get(User, uid)

    def login_required():
        if current_user() is None:
            flash("Please login first.", "error")
            return False
        return True

    def check_your_privilege(name: str, post: Answer) -> bool:
        me = current_user()
        if me is not None and (post.user_id == me.id or me.has_privilege(name)):
            return True
        log.info("privilege denied: user=%s privilege=%s answer=%s", me.id if me else None, name, post.id)
        flash(f"You need the '{name}' privilege to do that.", "error")
        return False

    def load_answer(answer_id: int) -> Answer:
        a = db.session.get(Answer, answer_id)
        if not a:
            abort(404)
        return a

    def body_errors(body: str) -> list[str]:
        return Answer.body_errors(
            body,
            app.config["ANSWER_BODY_MIN_LENGTH"],
            app.config["ANSWER_BODY_MAX_LENGTH"],
        )

    def change_deletion_state(a: Answer, me: User, deleting: bool):
        answer_id = a.id
        question_id = a.question_id
        verb = "deleted" if deleting else "undeleted"

        if a.deleted == deleting:
            flash(f"This answer is already {verb}.", "error")
            return redirect(url_for("question_detail", question_id=question_id))

        if deleting:
            PostHistory.post_deleted(a, me)
            a.state = Deleted(at=datetime.utcnow())
        else:
            PostHistory.post_undeleted(a, me)
            a.state = ACTIVE

        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            log.exception("answer %s could not be %s", answer_id, verb)
            flash(f"The answer could not be {verb}.", "error")
        else:
            log.info("answer %s %s by user %s", answer_id, verb, me.id)
            calculate_reputation(a.user, a, -1 if deleting else 1)
            flash(f"Answer {verb}.", "ok")
        return redirect(url_for("question_detail", question_id=question_id))

    @app.context_processor
    def inject_user():
        return {"me": current_user()}

    @app.template_filter("md")
    def markdown_filter(text: str | None):
        return renderer.render(text)

    # ---------- auth ----------
    @app.get("/login")
    def login_page():
        return render_template("auth_login.html")

    @app.post("/login")
    def login_post():
        username = (request.form.get("username") or "").strip()
        password = request.form.get("password") or ""

        u = User.query.filter_by(username=username).first()
        if not u or not u.check_password(password):
            flash("Invalid username or password.", "error")
            return redirect(url_for("login_page"))

        session["user_id"] = u.id
        flash("Logged in!", "ok")
        return redirect(url_for("questions_index"))

    @app.post("/logout")
    def logout():
        session.pop("user_id", None)
        flash("Logged out.", "ok")
        return redirect(url_for("questions_index"))

    # ---------- questions ----------
    @app.get("/")
    def home():
        return redirect(url_for("questions_index"))

    @app.get("/questions")
    def questions_index():
        page = request.args.get("page", 1, type=int)
        pagination = Question.query.order_by(Question.id).paginate(
            page=page,
            per_page=app.config["QUESTIONS_PER_PAGE"],
            error_out=False,
        )
        return render_template("questions.html", questions=pagination.items, pagination=pagination)

    @app.get("/questions/<int:question_id>")
    def question_detail(question_id: int):
        q = db.session.get(Question, question_id)
        if not q:
            abort(404)
        me = current_user()

        answers_query = Answer.query.filter_by(question_id=q.id)
        if not (me and me.has_privilege("Delete")):
            visible = Answer.deleted_at.is_(None)
            if me:
                visible = or_(visible, Answer.user_id == me.id)
            answers_query = answers_query.filter(visible)
        answers = answers_query.order_by(Answer.score.desc(), Answer.created_at.asc()).all()

        my_votes = {}
        if me and answers:
            rows = Vote.query.filter(
                Vote.user_id == me.id,
                Vote.answer_id.in_([a.id for a in answers])
            ).all()
            my_votes = {v.answer_id: v.vote_type for v in rows}

        return render_template("question_detail.html", question=q, answers=answers, my_votes=my_votes)

    @app.get("/questions/tagged")
    def questions_tagged():
        tag = request.args.get("tag")
        if tag is None:
            abort(400)
        questions = (
            Question.query
            .filter(Question.tags.contains(tag, autoescape=True))
            .order_by(Question.id)
            .all()
        )
        return render_template("tagged.html", questions=questions, tag=tag)

    # ---------- answers ----------
    @app.get("/questions/<int:question_id>/answers/new")
    def new_answer(question_id: int):
        if not login_required():
            return redirect(url_for("login_page"))

        q = db.session.get(Question, question_id)
        if not q:
            abort(404)
        return render_template("new_answer.html", question=q, body="", errors=[])

    @app.post("/questions/<int:question_id>/answers")
    def create_answer(question_id: int):
        if not login_required():
            return redirect(url_for("login_page"))

        me = current_user()
        q = db.session.get(Question, question_id)
        if not q:
            abort(404)

        # only the body comes from the client
        body = (request.form.get("body") or "").strip()
        errors = body_errors(body)
        if errors:
            return render_template("new_answer.html", question=q, body=body, errors=errors), 422

        a = Answer(body=body, user=me, question=q, score=0)
        db.session.add(a)
        title = truncate(q.title, app.config["NOTIFICATION_TITLE_LENGTH"])
        q.user.create_notification(f"New answer to your question '{title}'", f"/questions/{q.id}")
        db.session.commit()
        log.info("answer %s created on question %s by user %s", a.id, q.id, me.id)

        flash("Answer posted!", "ok")
        return redirect(url_for("question_detail", question_id=q.id))

    @app.get("/answers/<int:answer_id>/edit")
    def edit_answer_page(answer_id: int):
        if not login_required():
            return redirect(url_for("login_page"))

        a = load_answer(answer_id)
        if not check_your_privilege("Edit", a):
            return redirect(url_for("question_detail", question_id=a.question_id))

        return render_template("edit_answer.html", answer=a, body=a.body, errors=[])

    @app.post("/answers/<int:answer_id>/edit")
    def update_answer(answer_id: int):
        if not login_required():
            return redirect(url_for("login_page"))

        me = current_user()
        a = load_answer(answer_id)
        if not check_your_privilege("Edit", a):
            return redirect(url_for("question_detail", question_id=a.question_id))

        body = (request.form.get("body") or "").strip()
        errors = body_errors(body)
        if errors:
            return render_template("edit_answer.html", answer=a, body=body, errors=errors)

        PostHistory.post_edited(a, me)
        a.body = body
        db.session.commit()
        log.info("answer %s edited by user %s", a.id, me.id)

        flash("Answer updated.", "ok")
        return redirect(url_for("question_detail", question_id=a.question_id))

    @app.post("/answers/<int:answer_id>/delete")
    def destroy_answer(answer_id: int):
        if not login_required():
            return redirect(url_for("login_page"))

        me = current_user()
        a = load_answer(answer_id)
        if not check_your_privilege("Delete", a):
            return redirect(url_for("question_detail", question_id=a.question_id))
        return change_deletion_state(a, me, deleting=True)

    @app.post("/answers/<int:answer_id>/undelete")
    def undelete_answer(answer_id: int):
        if not login_required():
            return redirect(url_for("login_page"))

        me = current_user()
        a = load_answer(answer_id)
        if not check_your_privilege("Delete", a):
            return redirect(url_for("question_detail", question_id=a.question_id))
        return change_deletion_state(a, me, deleting=False)

    # ---------- votes ----------
    @app.post("/answers/<int:answer_id>/vote")
    def vote(answer_id: int):
        if not login_required():
            return redirect(url_for("login_page"))

        me = current_user()
        a = load_answer(answer_id)

        value = request.form.get("value")
        if value not in ("1", "-1"):
            flash("Invalid vote.", "error")
            return redirect(url_for("question_detail", question_id=a.question_id))
        if a.user_id == me.id:
            flash("You can't vote on your own answer.", "error")
            return redirect(url_for("question_detail", question_id=a.question_id))
        if a.deleted:
            flash("You can't vote on a deleted answer.", "error")
            return redirect(url_for("question_detail", question_id=a.question_id))

        value = int(value)

        existing = Vote.query.filter_by(user_id=me.id, answer_id=a.id).first()
        old_type = existing.vote_type if existing else None
        if existing:
            if existing.vote_type == value:
                db.session.delete(existing)   # toggle off
                new_type = None
            else:
                existing.vote_type = value    # switch
                new_type = value
        else:
            db.session.add(Vote(user_id=me.id, answer_id=a.id, vote_type=value))
            new_type = value

        apply_vote(a.user, a, old_type, new_type)
        db.session.commit()
        log.info("vote on answer %s by user %s: %s -> %s", a.id, me.id, old_type, new_type)
        return redirect(url_for("question_detail", question_id=a.question_id))

    return app


if __name__ == "__main__":
    create_app().run()
