"""
Watch progress reconciliation.

Turns the flat list of progress rows a user has submitted into:
- one continue-watching entry per subject (movie or series)
- the episode to suggest on a series page for the selected season

Every function here is pure: inputs are only read and each call returns
fresh immutable models.

Recency is inferred from (season, episode) ordering only. Progress rows carry
no reliable timestamp, so a rewatch of an earlier episode never moves the
resume point backwards.
"""
import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import TypeAdapter, ValidationError

from ..schemas.media import EpisodeInfo, SubjectKind
from ..schemas.watch_history import (
    MovieProgress,
    NextEpisodeCandidate,
    NextEpisodeReason,
    ResumeEntry,
    SeriesProgress,
    WatchEvent,
)

logger = logging.getLogger(__name__)

COMPLETED_PERCENT = 100

_watch_event_adapter = TypeAdapter(WatchEvent)

# ============================================================
# Errors
# ============================================================

class ReconciliationError(ValueError):
    """Structurally invalid data handed over by an upstream collaborator"""


class InvalidWatchEventError(ReconciliationError):
    """A watch event without a usable subject identity"""


class DuplicateEpisodeError(ReconciliationError):
    """A season episode list with repeated episode numbers"""


# ============================================================
# Ingestion
# ============================================================

_FIELD_NAMES = {
    "subject_id": ("subject_id", "subjectId", "tmdb_id"),
    "kind": ("kind", "subject_type", "subjectType", "item_type"),
    "progress_percent": ("progress_percent", "progressPercent", "progress"),
    "season_number": ("season_number", "seasonNumber"),
    "episode_number": ("episode_number", "episodeNumber"),
    "title": ("title", "name"),
    "poster_path": ("poster_path", "posterPath"),
}

_KIND_NAMES = {
    "movie": SubjectKind.MOVIE.value,
    "series": SubjectKind.SERIES.value,
    "tv": SubjectKind.SERIES.value,
}

RawWatchEvent = Union[MovieProgress, SeriesProgress, Mapping[str, Any]]


def _pick(raw: Mapping[str, Any], field: str) -> Any:
    for name in _FIELD_NAMES[field]:
        value = raw.get(name)
        if value is not None:
            return value
    return None


def parse_watch_event(raw: RawWatchEvent) -> WatchEvent:
    """
    Build a typed watch event from a loose record.

    Accepts the camelCase names of the front end contract as well as the
    column names of the history table. ``tv`` is read as ``series``.

    Raises:
        InvalidWatchEventError: subject id or type missing, unknown subject
            type, series row without season/episode, or out of range values
    """
    if isinstance(raw, (MovieProgress, SeriesProgress)):
        return raw

    subject_id = _pick(raw, "subject_id")
    if subject_id is None:
        raise InvalidWatchEventError("Watch event is missing subjectId")

    raw_kind = _pick(raw, "kind")
    if raw_kind is None:
        raise InvalidWatchEventError(f"Watch event for subject {subject_id} is missing subjectType")

    kind = _KIND_NAMES.get(str(getattr(raw_kind, "value", raw_kind)).strip().lower())
    if kind is None:
        raise InvalidWatchEventError(f"Unknown subjectType {raw_kind!r} for subject {subject_id}")

    data = {
        "kind": kind,
        "subject_id": subject_id,
        "progress_percent": _pick(raw, "progress_percent") or 0,
        "title": _pick(raw, "title"),
        "poster_path": _pick(raw, "poster_path"),
    }

    if kind == SubjectKind.SERIES.value:
        season_number = _pick(raw, "season_number")
        episode_number = _pick(raw, "episode_number")
        if season_number is None or episode_number is None:
            raise InvalidWatchEventError(
                f"Series watch event for subject {subject_id} needs seasonNumber and episodeNumber"
            )
        data["season_number"] = season_number
        data["episode_number"] = episode_number

    try:
        return _watch_event_adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidWatchEventError(f"Invalid watch event for subject {subject_id}: {e}") from e


def _coerce(events: Iterable[RawWatchEvent]) -> List[WatchEvent]:
    return [parse_watch_event(event) for event in events]


# ============================================================
# Continue watching
# ============================================================

def group_key(event: WatchEvent) -> str:
    """Identity of a subject in history, e.g. ``10-series``"""
    return f"{event.subject_id}-{event.kind}"


def episode_label(season_number: int, episode_number: int) -> str:
    return f"T{season_number}:E{episode_number}"


def _supersedes(candidate: WatchEvent, current: WatchEvent) -> bool:
    # Ties and movies: the later row in input order wins
    if isinstance(candidate, SeriesProgress) and isinstance(current, SeriesProgress):
        return candidate.position >= current.position
    return True


def to_resume_entry(event: WatchEvent) -> ResumeEntry:
    season_number = episode_number = label = None
    if isinstance(event, SeriesProgress):
        season_number = event.season_number
        episode_number = event.episode_number
        label = episode_label(season_number, episode_number)

    return ResumeEntry(
        key=group_key(event),
        subject_id=event.subject_id,
        kind=SubjectKind(event.kind),
        progress_percent=event.progress_percent,
        title=event.title,
        poster_path=event.poster_path,
        season_number=season_number,
        episode_number=episode_number,
        label=label,
        event=event,
    )


def deduplicate_history(events: Iterable[RawWatchEvent]) -> Dict[str, ResumeEntry]:
    """
    Collapse watch events into one resume entry per (subject id, subject type).

    The winner of a group is the event with the greatest season number, then
    the greatest episode number. Progress plays no part, so an episode merely
    started (0%) can win over a finished earlier one. Keys keep the order in
    which their subject first appears in the input.
    """
    winners: Dict[str, WatchEvent] = {}
    for event in _coerce(events):
        key = group_key(event)
        current = winners.get(key)
        if current is None or _supersedes(event, current):
            winners[key] = event

    return {key: to_resume_entry(event) for key, event in winners.items()}


def continue_watching(events: Iterable[RawWatchEvent]) -> List[ResumeEntry]:
    return list(deduplicate_history(events).values())


# ============================================================
# Series page
# ============================================================

def _series_events(history: Iterable[RawWatchEvent], subject_id: int) -> List[SeriesProgress]:
    return [
        event for event in _coerce(history)
        if isinstance(event, SeriesProgress) and event.subject_id == subject_id
    ]


def last_watched_episode(history: Iterable[RawWatchEvent], subject_id: int) -> Optional[SeriesProgress]:
    """Most advanced episode of a series across all of its seasons"""
    latest: Optional[SeriesProgress] = None
    for event in _series_events(history, subject_id):
        if latest is None or _supersedes(event, latest):
            latest = event
    return latest


def watched_episode_keys(history: Iterable[RawWatchEvent], subject_id: int) -> FrozenSet[Tuple[int, int]]:
    """
    (season, episode) pairs of a series watched to the end.
    Repeated rows for one episode collapse to the later one first.
    """
    current = {event.position: event for event in _series_events(history, subject_id)}
    return frozenset(
        position
        for position, event in current.items()
        if event.progress_percent >= COMPLETED_PERCENT
    )


def _check_unique_episodes(episodes: Sequence[EpisodeInfo]) -> None:
    seen = set()
    for episode in episodes:
        if episode.episode_number in seen:
            raise DuplicateEpisodeError(
                f"Episode {episode.episode_number} listed twice in season {episode.season_number}"
            )
        seen.add(episode.episode_number)


def _index_of(episodes: Sequence[EpisodeInfo], episode_number: int) -> Optional[int]:
    for index, episode in enumerate(episodes):
        if episode.episode_number == episode_number:
            return index
    return None


def _candidate(
    episode: EpisodeInfo,
    reason: NextEpisodeReason,
    progress_percent: Optional[int] = None,
) -> NextEpisodeCandidate:
    return NextEpisodeCandidate(
        season_number=episode.season_number,
        episode_number=episode.episode_number,
        reason=reason,
        episode=episode,
        progress_percent=progress_percent,
    )


def select_next_episode(
    episodes: Sequence[EpisodeInfo],
    history: Iterable[RawWatchEvent],
    selected_season: int,
    subject_id: int,
) -> Optional[NextEpisodeCandidate]:
    """
    Pick the episode to offer on a series page.

    Args:
        episodes: Episodes of the selected season in catalog order
        history: Every watch event of the user, any subject
        selected_season: Season number currently shown
        subject_id: Catalog id of the series

    Returns:
        A candidate taken from ``episodes``, or None when the season is empty

    Raises:
        DuplicateEpisodeError: ``episodes`` repeats an episode number
        InvalidWatchEventError: a history row has no subject identity
    """
    ordered = list(episodes)
    _check_unique_episodes(ordered)
    if not ordered:
        return None

    first = ordered[0]
    last = last_watched_episode(history, subject_id)
    if last is None:
        return _candidate(first, NextEpisodeReason.START)

    same_season = selected_season == last.season_number

    if last.progress_percent >= COMPLETED_PERCENT:
        if not same_season:
            return _candidate(first, NextEpisodeReason.START)

        index = _index_of(ordered, last.episode_number)
        if index is not None and index < len(ordered) - 1:
            return _candidate(ordered[index + 1], NextEpisodeReason.NEXT)

        # No rollover into the following season
        return _candidate(ordered[-1], NextEpisodeReason.LAST_IN_SEASON)

    if same_season:
        index = _index_of(ordered, last.episode_number)
        if index is not None:
            return _candidate(ordered[index], NextEpisodeReason.RESUME, last.progress_percent)
        logger.debug(
            f"Episode {episode_label(*last.position)} of series {subject_id} "
            f"not in season list, falling back to first episode"
        )

    return _candidate(first, NextEpisodeReason.START)
