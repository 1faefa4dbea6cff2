from app import create_app
from extensions import db
from models import User, Question, Answer, Privilege, Setting

app = create_app()
with app.app_context():
    db.drop_all()
    db.create_all()

    db.session.add_all([
        Privilege(name="Edit", threshold=1000),
        Privilege(name="Delete", threshold=3000),
        Setting(name="AnswerUpVoteRep", value="10"),
        Setting(name="AnswerDownVoteRep", value="-2"),
    ])

    admin = User(username="admin", is_admin=True)
    admin.set_password("admin123")
    u1 = User(username="becca")
    u1.set_password("password123")
    u2 = User(username="guest")
    u2.set_password("password123")
    db.session.add_all([admin, u1, u2])
    db.session.commit()

    q1 = Question(
        title="How do I iterate over a dict in sorted key order?",
        body="I want the keys of a `dict` in sorted order while looping.",
        tags="python dict sorting",
        user_id=u1.id,
    )
    q2 = Question(
        title="Why does my goroutine never finish?",
        body="The program exits before the goroutine prints anything.",
        tags="go concurrency",
        user_id=u2.id,
    )
    db.session.add_all([q1, q2])
    db.session.commit()

    a1 = Answer(
        body="Use `for key in sorted(d):` which iterates the keys in ascending order.",
        user_id=u2.id,
        question_id=q1.id,
    )
    a2 = Answer(
        body="Wait for it with a `sync.WaitGroup` before main returns.",
        user_id=u1.id,
        question_id=q2.id,
    )
    db.session.add_all([a1, a2])
    db.session.commit()

    print("Seeded.")
