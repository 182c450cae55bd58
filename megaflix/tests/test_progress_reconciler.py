import pytest

from megaflix.schemas.media import EpisodeInfo, SubjectKind
from megaflix.schemas.watch_history import MovieProgress, NextEpisodeReason, SeriesProgress
from megaflix.services.progress_reconciler import (
    DuplicateEpisodeError,
    InvalidWatchEventError,
    continue_watching,
    deduplicate_history,
    group_key,
    last_watched_episode,
    parse_watch_event,
    select_next_episode,
    watched_episode_keys,
)


def series(subject_id, season, episode, progress, **extra):
    return SeriesProgress(
        subject_id=subject_id,
        season_number=season,
        episode_number=episode,
        progress_percent=progress,
        **extra,
    )


def movie(subject_id, progress, **extra):
    return MovieProgress(subject_id=subject_id, progress_percent=progress, **extra)


def season_list(season, numbers):
    return [EpisodeInfo(season_number=season, episode_number=n) for n in numbers]


# ==================== Ingestion ====================

def test_parse_front_end_record():
    event = parse_watch_event({
        "subjectId": 10,
        "subjectType": "series",
        "progressPercent": 40,
        "seasonNumber": 1,
        "episodeNumber": 5,
        "title": "Dark",
        "posterPath": "/dark.jpg",
    })
    assert isinstance(event, SeriesProgress)
    assert event.position == (1, 5)
    assert event.title == "Dark"
    assert event.poster_path == "/dark.jpg"


def test_parse_history_row_reads_tv_as_series():
    event = parse_watch_event({
        "tmdb_id": 1399,
        "item_type": "tv",
        "progress": 100,
        "season_number": 2,
        "episode_number": 3,
    })
    assert event.kind == SubjectKind.SERIES.value
    assert group_key(event) == "1399-series"


def test_parse_movie_ignores_episode_fields():
    event = parse_watch_event({"tmdb_id": 550, "item_type": "movie", "progress": 12, "season_number": 1})
    assert isinstance(event, MovieProgress)
    assert group_key(event) == "550-movie"


def test_parse_missing_progress_defaults_to_started():
    event = parse_watch_event({"subjectId": 550, "subjectType": "movie"})
    assert event.progress_percent == 0


@pytest.mark.parametrize("raw", [
    {"subjectType": "movie", "progressPercent": 10},
    {"subjectId": 1, "progressPercent": 10},
    {"subjectId": 1, "subjectType": "person", "progressPercent": 10},
    {"subjectId": 1, "subjectType": "series", "progressPercent": 10, "seasonNumber": 1},
    {"subjectId": 1, "subjectType": "movie", "progressPercent": 140},
])
def test_parse_rejects_structurally_invalid_events(raw):
    with pytest.raises(InvalidWatchEventError):
        parse_watch_event(raw)


# ==================== Continue watching ====================

def test_empty_history_has_no_entries():
    assert deduplicate_history([]) == {}
    assert continue_watching([]) == []


def test_most_advanced_episode_wins_regardless_of_progress():
    history = [
        {"subjectId": 10, "subjectType": "series", "seasonNumber": 1, "episodeNumber": 2, "progressPercent": 100},
        {"subjectId": 10, "subjectType": "series", "seasonNumber": 1, "episodeNumber": 5, "progressPercent": 40},
    ]
    entries = deduplicate_history(history)

    assert list(entries) == ["10-series"]
    entry = entries["10-series"]
    assert entry.episode_number == 5
    assert entry.progress_percent == 40
    assert entry.label == "T1:E5"
    assert entry.event == series(10, 1, 5, 40)


def test_later_season_beats_higher_episode_number():
    history = [series(7, 2, 1, 0), series(7, 1, 9, 100), series(7, 1, 3, 100)]
    entry = deduplicate_history(history)["7-series"]
    assert (entry.season_number, entry.episode_number) == (2, 1)
    assert entry.progress_percent == 0


def test_one_entry_per_subject_and_type():
    history = [
        series(10, 1, 1, 100),
        movie(10, 30),
        movie(550, 80),
        series(10, 1, 2, 10),
        series(20, 3, 4, 50),
    ]
    entries = deduplicate_history(history)

    assert list(entries) == ["10-series", "10-movie", "550-movie", "20-series"]
    assert entries["10-movie"].label is None
    assert entries["10-movie"].season_number is None
    assert entries["10-series"].label == "T1:E2"


def test_repeated_movie_keeps_last_event():
    entries = deduplicate_history([movie(550, 80, title="Fight Club"), movie(550, 20)])
    assert entries["550-movie"].progress_percent == 20


def test_same_episode_twice_keeps_last_event():
    entries = deduplicate_history([series(10, 1, 4, 35), series(10, 1, 4, 90)])
    assert entries["10-series"].progress_percent == 90


def test_winner_is_never_behind_a_loser():
    history = [series(3, s, e, (s * e) % 101) for s in (3, 1, 2) for e in (4, 1, 7)]
    winner = deduplicate_history(history)["3-series"]
    for event in history:
        assert (winner.season_number, winner.episode_number) >= event.position


def test_deduplication_is_idempotent_and_leaves_input_alone():
    history = [series(10, 1, 2, 100), movie(5, 10), series(10, 2, 1, 0)]
    snapshot = list(history)

    first = continue_watching(history)
    second = continue_watching(history)

    assert first == second
    assert history == snapshot
    assert continue_watching([entry.event for entry in first]) == first


def test_invalid_row_fails_the_whole_reconciliation():
    with pytest.raises(InvalidWatchEventError):
        continue_watching([series(1, 1, 1, 10), {"subjectType": "movie", "progressPercent": 5}])


# ==================== Next episode ====================

def test_scenario_completed_episode_suggests_the_following_one():
    candidate = select_next_episode(season_list(1, [1, 2, 3, 4]), [series(10, 1, 3, 100)], 1, 10)
    assert candidate.episode_number == 4
    assert candidate.reason == NextEpisodeReason.NEXT


def test_scenario_completed_last_episode_does_not_roll_over():
    candidate = select_next_episode(season_list(1, [1, 2, 3]), [series(10, 1, 3, 100)], 1, 10)
    assert (candidate.season_number, candidate.episode_number) == (1, 3)
    assert candidate.reason == NextEpisodeReason.LAST_IN_SEASON


def test_scenario_switching_season_starts_at_its_first_episode():
    candidate = select_next_episode(season_list(2, [1, 2, 3]), [series(10, 1, 2, 100)], 2, 10)
    assert (candidate.season_number, candidate.episode_number) == (2, 1)
    assert candidate.reason == NextEpisodeReason.START


def test_scenario_no_history_starts_at_first_episode():
    candidate = select_next_episode(season_list(1, [1, 2]), [], 1, 10)
    assert candidate.episode_number == 1
    assert candidate.reason == NextEpisodeReason.START


def test_scenario_unfinished_episode_resumes_in_place():
    candidate = select_next_episode(season_list(1, [1, 2, 3]), [series(10, 1, 2, 35)], 1, 10)
    assert candidate.episode_number == 2
    assert candidate.reason == NextEpisodeReason.RESUME
    assert candidate.progress_percent == 35


def test_unfinished_episode_in_other_season_starts_selected_season():
    candidate = select_next_episode(season_list(1, [1, 2, 3]), [series(10, 2, 2, 35)], 1, 10)
    assert candidate.episode_number == 1
    assert candidate.reason == NextEpisodeReason.START


def test_last_watched_is_taken_across_all_seasons():
    history = [series(10, 1, 8, 100), series(10, 2, 1, 100), series(10, 1, 2, 20)]
    assert last_watched_episode(history, 10).position == (2, 1)

    candidate = select_next_episode(season_list(1, list(range(1, 9))), history, 1, 10)
    assert candidate.episode_number == 1
    assert candidate.reason == NextEpisodeReason.START


def test_history_of_other_subjects_is_ignored():
    history = [series(99, 1, 3, 100), movie(10, 50)]
    candidate = select_next_episode(season_list(1, [1, 2, 3, 4]), history, 1, 10)
    assert candidate.episode_number == 1
    assert candidate.reason == NextEpisodeReason.START


def test_empty_season_has_no_suggestion():
    assert select_next_episode([], [series(10, 1, 3, 100)], 1, 10) is None
    assert select_next_episode([], [], 1, 10) is None


def test_completed_episode_missing_from_list_suggests_last_episode():
    candidate = select_next_episode(season_list(1, [1, 2, 3]), [series(10, 1, 7, 100)], 1, 10)
    assert candidate.episode_number == 3
    assert candidate.reason == NextEpisodeReason.LAST_IN_SEASON


def test_unfinished_episode_missing_from_list_falls_back_to_first():
    candidate = select_next_episode(season_list(1, [1, 2, 3]), [series(10, 1, 7, 50)], 1, 10)
    assert candidate.episode_number == 1
    assert candidate.reason == NextEpisodeReason.START


def test_follows_list_order_not_numbering():
    episodes = season_list(1, [1, 2, 5, 9])
    candidate = select_next_episode(episodes, [series(10, 1, 2, 100)], 1, 10)
    assert candidate.episode == episodes[2]
    assert candidate.episode_number == 5


def test_duplicate_episode_numbers_are_rejected():
    with pytest.raises(DuplicateEpisodeError):
        select_next_episode(season_list(1, [1, 2, 2, 3]), [], 1, 10)


def test_selection_is_idempotent():
    episodes = season_list(1, [1, 2, 3, 4])
    history = [series(10, 1, 3, 100)]
    assert select_next_episode(episodes, history, 1, 10) == select_next_episode(episodes, history, 1, 10)


def test_watched_episode_keys_only_counts_finished_episodes():
    history = [series(10, 1, 1, 100), series(10, 1, 2, 99), series(10, 2, 1, 100), series(11, 1, 1, 100)]
    assert watched_episode_keys(history, 10) == frozenset({(1, 1), (2, 1)})
    assert watched_episode_keys([], 10) == frozenset()


def test_rewatched_episode_uses_its_latest_progress():
    history = [series(10, 1, 4, 100), series(10, 1, 4, 40), series(10, 1, 5, 20), series(10, 1, 5, 100)]

    assert deduplicate_history(history[:2])["10-series"].progress_percent == 40
    assert watched_episode_keys(history, 10) == frozenset({(1, 5)})
