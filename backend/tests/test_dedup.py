import itertools

from brandpulse.core.dedup import merge

from helpers import make_mention


def _chosen(mentions):
    return {m.content_hash: m.id for m in mentions}


def test_higher_engagement_wins():
    low = make_mention(content_hash="h", upvotes=10)
    high = make_mention(content_hash="h", upvotes=20, comments=5)
    assert merge([low, high]) == [high]


def test_merge_is_order_independent():
    mentions = [
        make_mention(content_hash="a", upvotes=3),
        make_mention(content_hash="a", upvotes=1, comments=9),
        make_mention(content_hash="b", comments=2),
        make_mention(content_hash="b", upvotes=50),
        make_mention(content_hash="c", upvotes=7),
        make_mention(content_hash="a", hours_ago=1),
    ]
    expected = _chosen(merge(mentions))

    for permutation in itertools.permutations(mentions):
        assert _chosen(merge(list(permutation))) == expected


def test_at_most_one_entry_per_hash():
    mentions = [make_mention(content_hash=h) for h in "aabbbc"]
    assert sorted(m.content_hash for m in merge(mentions)) == ["a", "b", "c"]


def test_zero_scores_prefer_most_recent():
    older = make_mention(content_hash="h", hours_ago=5)
    newer = make_mention(content_hash="h", hours_ago=1)
    assert merge([older, newer]) == [newer]
    assert merge([newer, older]) == [newer]


def test_explicit_zero_counts_as_missing_engagement():
    older = make_mention(content_hash="h", upvotes=0, comments=0, hours_ago=5)
    newer = make_mention(content_hash="h", hours_ago=1)
    assert merge([older, newer]) == [newer]


def test_equal_nonzero_scores_keep_first_seen():
    first = make_mention(content_hash="h", upvotes=10, hours_ago=5)
    second = make_mention(content_hash="h", upvotes=10, hours_ago=1)
    assert merge([first, second]) == [first]


def test_recency_does_not_beat_engagement():
    engaged = make_mention(content_hash="h", upvotes=1, hours_ago=48)
    fresh = make_mention(content_hash="h", hours_ago=0)
    assert merge([fresh, engaged]) == [engaged]


def test_output_follows_first_appearance_order():
    a = make_mention(content_hash="a")
    b = make_mention(content_hash="b")
    a_better = make_mention(content_hash="a", upvotes=10)
    assert merge([a, b, a_better]) == [a_better, b]


def test_empty_input():
    assert merge([]) == []
