import logging

from sqlalchemy import func, select

from extensions import db
from models import Answer, User, Vote, UP_VOTE, DOWN_VOTE, get_setting

log = logging.getLogger(__name__)

WEIGHT_SETTINGS = {
    UP_VOTE: "AnswerUpVoteRep",
    DOWN_VOTE: "AnswerDownVoteRep",
}


def count_votes_by_type(post_id: int, vote_type: int) -> int:
    stmt = select(func.count(Vote.id)).where(Vote.answer_id == post_id, Vote.vote_type == vote_type)
    return db.session.scalar(stmt) or 0


def vote_weight(vote_type: int) -> int:
    # unset or non-numeric weights count as 0
    raw = get_setting(WEIGHT_SETTINGS[vote_type])
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


def calculate_reputation(user: User, post: Answer, direction: int) -> int:
    if direction not in (1, -1):
        raise ValueError(f"direction must be 1 or -1, got {direction!r}")

    upvote_rep = count_votes_by_type(post.id, UP_VOTE) * vote_weight(UP_VOTE)
    downvote_rep = count_votes_by_type(post.id, DOWN_VOTE) * vote_weight(DOWN_VOTE)
    delta = direction * (upvote_rep + downvote_rep)
    if delta == 0:
        return 0

    user.reputation = (user.reputation or 0) + delta
    db.session.commit()
    log.info("reputation user=%s answer=%s delta=%+d total=%s", user.id, post.id, delta, user.reputation)
    return delta


def apply_vote(user: User, post: Answer, old_type: int | None, new_type: int | None) -> int:
    # None means "no vote"; the caller commits
    score_delta = (new_type or 0) - (old_type or 0)
    post.score = (post.score or 0) + score_delta

    rep_delta = 0
    if not post.deleted:
        if old_type is not None:
            rep_delta -= vote_weight(old_type)
        if new_type is not None:
            rep_delta += vote_weight(new_type)
        user.reputation = (user.reputation or 0) + rep_delta
    return rep_delta
