from pointless.game import ReconnectionManager

from tests.conftest import FakeClock


def make_tokens(window=300):
    clock = FakeClock()
    return ReconnectionManager(window_sec=window, clock=clock), clock


def test_redeem_within_window():
    tokens, clock = make_tokens()
    token = tokens.issue("player-1", "ABCD")
    clock.now += 299
    assert tokens.redeem(token, "ABCD") == "player-1"


def test_single_use():
    tokens, _ = make_tokens()
    token = tokens.issue("player-1", "ABCD")
    assert tokens.redeem(token, "ABCD") == "player-1"
    assert tokens.redeem(token, "ABCD") is None


def test_expired_token_rejected_and_dropped():
    tokens, clock = make_tokens()
    token = tokens.issue("player-1", "ABCD")
    clock.now += 300
    assert tokens.redeem(token, "ABCD") is None
    assert len(tokens) == 0


def test_wrong_room_rejected_but_kept():
    tokens, _ = make_tokens()
    token = tokens.issue("player-1", "ABCD")
    assert tokens.redeem(token, "WXYZ") is None
    assert tokens.redeem(token, "ABCD") == "player-1"


def test_unknown_and_empty_tokens():
    tokens, _ = make_tokens()
    assert tokens.redeem(None, "ABCD") is None
    assert tokens.redeem("", "ABCD") is None
    assert tokens.redeem("made-up", "ABCD") is None


def test_issue_with_existing_key():
    tokens, _ = make_tokens()
    key = tokens.new_token()
    assert tokens.issue("player-1", "ABCD", token=key) == key
    assert tokens.redeem(key, "ABCD") == "player-1"


def test_tokens_are_unguessable():
    assert len({ReconnectionManager.new_token() for _ in range(100)}) == 100


def test_issue_purges_expired():
    tokens, clock = make_tokens()
    tokens.issue("player-1", "ABCD")
    clock.now += 301
    tokens.issue("player-2", "ABCD")
    assert len(tokens) == 1


def test_revoke():
    tokens, _ = make_tokens()
    a = tokens.issue("player-1", "ABCD")
    b = tokens.issue("player-2", "ABCD")
    c = tokens.issue("player-3", "WXYZ")

    tokens.revoke_player("player-1")
    assert tokens.redeem(a, "ABCD") is None

    tokens.revoke_room("ABCD")
    assert tokens.redeem(b, "ABCD") is None
    assert tokens.redeem(c, "WXYZ") == "player-3"
