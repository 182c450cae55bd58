from megaflix.services.player import episode_player_url, movie_player_url, player_url_for
from megaflix.services.progress_reconciler import to_resume_entry
from megaflix.schemas.watch_history import MovieProgress, SeriesProgress


def test_movie_url():
    assert movie_player_url(550, "https://player.test/embed/") == "https://player.test/embed/movie?tmdb=550"


def test_episode_url():
    assert episode_player_url(10, 2, 7, "https://player.test/embed") == (
        "https://player.test/embed/series?tmdb=10&sea=2&epi=7"
    )


def test_player_url_for_resume_entries():
    series = to_resume_entry(SeriesProgress(subject_id=10, season_number=1, episode_number=5, progress_percent=40))
    movie = to_resume_entry(MovieProgress(subject_id=550, progress_percent=10))

    assert player_url_for(series) == "https://megaembed.com/embed/series?tmdb=10&sea=1&epi=5"
    assert player_url_for(movie) == "https://megaembed.com/embed/movie?tmdb=550"
