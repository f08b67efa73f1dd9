import pytest
from sqlalchemy.exc import OperationalError

from pollboard import db
from pollboard.database.models import Choice, VoteLogEntry
from pollboard.errors import StorageFailure, ValidationError
from pollboard.poll.engine import PollEngine


@pytest.fixture
def poll(services):
    return services.poll


def _tally(choices):
    return {c['label']: c['pick_count'] for c in choices}


def test_seeded_choices_in_stable_order(poll):
    choices = poll.list_choices()

    assert [c['label'] for c in choices] == ['HTML', 'JavaScript', 'CSS']
    assert all(c['pick_count'] == 0 for c in choices)
    assert poll.list_choices() == choices


def test_cast_vote_increments_and_logs(poll):
    choices = poll.cast_vote("CSS")

    assert _tally(choices) == {'HTML': 0, 'JavaScript': 0, 'CSS': 1}
    log = poll.recent_log()
    assert len(log) == 1
    assert log[0]['choice_label'] == "CSS"


def test_unknown_choice_is_rejected_without_mutation(poll):
    poll.cast_vote("CSS")

    with pytest.raises(ValidationError):
        poll.cast_vote("Rust")

    assert _tally(poll.list_choices()) == {'HTML': 0, 'JavaScript': 0, 'CSS': 1}
    assert len(poll.recent_log()) == 1


@pytest.mark.parametrize("label", [None, "", 42, "css"])
def test_invalid_labels(poll, label):
    with pytest.raises(ValidationError):
        poll.cast_vote(label)
    assert db.session.query(VoteLogEntry).count() == 0


def test_tallies_match_log(poll):
    for label in ["HTML", "CSS", "CSS", "JavaScript", "CSS"]:
        poll.cast_vote(label)

    for choice in poll.list_choices():
        logged = db.session.query(VoteLogEntry).filter_by(choice_label=choice['label']).count()
        assert choice['pick_count'] == logged
    choices = poll.list_choices()
    assert [c['label'] for c in choices] == ['HTML', 'JavaScript', 'CSS']
    assert [c['pick_count'] for c in choices] == [1, 1, 3]


def test_recent_log_is_newest_first_and_capped(poll):
    for _ in range(12):
        poll.cast_vote("HTML")
    for _ in range(12):
        poll.cast_vote("CSS")

    log = poll.recent_log()
    assert len(log) == 20
    assert log[0]['choice_label'] == "CSS"
    ids = [entry['id'] for entry in log]
    assert ids == sorted(ids, reverse=True)
    assert len(poll.recent_log(5)) == 5


def test_reset_clears_log_and_counts(poll):
    poll.cast_vote("HTML")
    poll.cast_vote("CSS")

    assert poll.reset_all() == []
    assert all(c['pick_count'] == 0 for c in poll.list_choices())
    assert poll.recent_log(20) == []


def test_reset_is_idempotent(poll):
    poll.cast_vote("JavaScript")
    poll.reset_all()
    after_once = (poll.list_choices(), poll.recent_log())

    assert poll.reset_all() == []
    assert (poll.list_choices(), poll.recent_log()) == after_once


def test_votes_count_again_after_reset(poll):
    poll.cast_vote("CSS")
    poll.reset_all()

    assert _tally(poll.cast_vote("CSS"))['CSS'] == 1


class FailingSession:
    def __init__(self):
        self.rolled_back = False

    def query(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    def rollback(self):
        self.rolled_back = True


def test_storage_errors_surface_as_storage_failure():
    session = FailingSession()
    engine = PollEngine(session)

    with pytest.raises(StorageFailure):
        engine.cast_vote("CSS")
    with pytest.raises(StorageFailure):
        engine.list_choices()
    assert session.rolled_back is True


class CommitFailsSession:
    """Real session whose commit blows up, as on a dropped connection."""

    def __init__(self, inner):
        self._inner = inner

    def __getattr__(self, name):
        return getattr(self._inner, name)

    def commit(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))


def test_failed_vote_leaves_no_partial_state(app):
    engine = PollEngine(CommitFailsSession(db.session))

    with pytest.raises(StorageFailure):
        engine.cast_vote("HTML")

    assert db.session.query(VoteLogEntry).count() == 0
    assert db.session.query(Choice).filter_by(label="HTML").one().pick_count == 0


def test_failed_reset_keeps_history(app, poll):
    poll.cast_vote("HTML")

    with pytest.raises(StorageFailure):
        PollEngine(CommitFailsSession(db.session)).reset_all()

    assert db.session.query(VoteLogEntry).count() == 1
    assert db.session.query(Choice).filter_by(label="HTML").one().pick_count == 1
