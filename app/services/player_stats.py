"""
Player statistics and leaderboards folded from the event ledger.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from sqlmodel import Session, select

from ..models.lineup import Lineup, LineupPlayer
from ..models.match import Match, COMPLETED_STATUSES
from ..models.match_event import EventType, MatchEvent
from ..models.team import Player, Team
from .events import effective_events

logger = logging.getLogger(__name__)

E = EventType

REGULATION_MINUTES = 90
EXTRA_TIME_MINUTES = 120


class PlayerStat:
    """Running totals for one player."""

    def __init__(self, player_id: int, first_seen: int):
        self.player_id = player_id
        self.first_seen = first_seen
        self.goals = 0
        self.assists = 0
        self.penalty_goals = 0
        self.yellow_cards = 0
        self.red_cards = 0
        self.minutes_played: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "goals": self.goals,
            "assists": self.assists,
            "penalty_goals": self.penalty_goals,
            "yellow_cards": self.yellow_cards,
            "red_cards": self.red_cards,
            "minutes_played": self.minutes_played,
        }


def aggregate_player_stats(
    events: Iterable[MatchEvent],
    minutes: Optional[Dict[int, int]] = None,
) -> List[PlayerStat]:
    """
    Fold ledger rows into per-player totals.

    Void records and voided events are skipped. ``goal`` and ``penalty_goal``
    credit the scorer, a ``goal``'s related player gets the assist, own goals
    credit nobody. Results come back in order of first appearance.
    """
    minutes = minutes or {}
    stats: Dict[int, PlayerStat] = {}

    def stat_for(player_id: int, event_id: int) -> PlayerStat:
        if player_id not in stats:
            stats[player_id] = PlayerStat(player_id, event_id)
        return stats[player_id]

    ordered = sorted(effective_events(events), key=lambda e: e.id or 0)
    for event in ordered:
        if event.player_id is None:
            continue
        if event.event_type in (E.GOAL.value, E.PENALTY_GOAL.value):
            stat = stat_for(event.player_id, event.id)
            stat.goals += 1
            if event.event_type == E.PENALTY_GOAL.value:
                stat.penalty_goals += 1
            if event.event_type == E.GOAL.value and event.related_player_id is not None:
                stat_for(event.related_player_id, event.id).assists += 1
        elif event.event_type == E.YELLOW_CARD.value:
            stat_for(event.player_id, event.id).yellow_cards += 1
        elif event.event_type in (E.RED_CARD.value, E.SECOND_YELLOW.value):
            stat_for(event.player_id, event.id).red_cards += 1

    for player_id, stat in stats.items():
        stat.minutes_played = minutes.get(player_id)

    return sorted(stats.values(), key=lambda s: s.first_seen)


def match_minutes(match: Match, starters: Sequence[int], events: Iterable[MatchEvent]) -> Dict[int, int]:
    """
    Minutes played per player in one match, from the starters and the ledger.

    Starters come on at 0, substitutes at their substitution minute; a player
    goes off when substituted out or sent off. Event minutes need not be
    increasing, so the earliest on and off mark of each player counts.
    """
    length = EXTRA_TIME_MINUTES if match.extra_time_played else REGULATION_MINUTES
    on: Dict[int, int] = {player_id: 0 for player_id in starters}
    off: Dict[int, int] = {}

    for event in effective_events(events):
        minute = min(max(event.minute, 0), length)
        if event.event_type == E.SUBSTITUTION_IN.value:
            if event.player_id is not None:
                on[event.player_id] = min(on.get(event.player_id, minute), minute)
            if event.related_player_id is not None:
                off[event.related_player_id] = min(off.get(event.related_player_id, minute), minute)
        elif event.event_type in (E.RED_CARD.value, E.SECOND_YELLOW.value) and event.player_id is not None:
            off[event.player_id] = min(off.get(event.player_id, minute), minute)

    return {
        player_id: max(0, off.get(player_id, length) - start)
        for player_id, start in on.items()
    }


def _tournament_snapshot(db: Session, tournament_id: int):
    """Completed matches of a tournament with their events and starters."""
    matches = db.exec(
        select(Match).where(
            Match.tournament_id == tournament_id,
            Match.status.in_(sorted(COMPLETED_STATUSES))
        )
    ).all()
    match_ids = [m.id for m in matches]
    if not match_ids:
        return [], [], {}

    events = db.exec(
        select(MatchEvent).where(MatchEvent.match_id.in_(match_ids)).order_by(MatchEvent.id)
    ).all()

    starters: Dict[tuple, List[int]] = {}
    rows = db.exec(
        select(Lineup.match_id, Lineup.team_id, LineupPlayer.player_id)
        .join(LineupPlayer, LineupPlayer.lineup_id == Lineup.id)
        .where(Lineup.match_id.in_(match_ids), LineupPlayer.is_starter == True)  # noqa: E712
    ).all()
    for match_id, team_id, player_id in rows:
        starters.setdefault((match_id, team_id), []).append(player_id)

    return matches, events, starters


def tournament_player_stats(db: Session, tournament_id: int) -> List[PlayerStat]:
    """Per-player totals over the completed matches of a tournament."""
    matches, events, starters = _tournament_snapshot(db, tournament_id)
    if not matches:
        return []

    events_by_match: Dict[int, List[MatchEvent]] = {}
    for event in events:
        events_by_match.setdefault(event.match_id, []).append(event)

    # Minutes are only known for teams that submitted a lineup
    minutes: Dict[int, int] = {}
    for match in matches:
        match_events = events_by_match.get(match.id, [])
        for team_id in (match.home_team_id, match.away_team_id):
            team_starters = starters.get((match.id, team_id))
            if team_starters is None:
                continue
            team_events = [e for e in match_events if e.team_id == team_id]
            for player_id, played in match_minutes(match, team_starters, team_events).items():
                minutes[player_id] = minutes.get(player_id, 0) + played

    logger.debug(
        "Folded %d events over %d completed matches for tournament %s",
        len(events), len(matches), tournament_id
    )
    return aggregate_player_stats(events, minutes)


def leaderboard_sort_key(count: int, minutes_played: Optional[int], first_seen: int):
    """Higher count first, then fewer minutes (known minutes first), then ledger order."""
    if minutes_played is None:
        return (-count, 1, 0, first_seen)
    return (-count, 0, minutes_played, first_seen)


def leaderboard(stats: Sequence[PlayerStat], field: str, limit: int) -> List[PlayerStat]:
    ranked = [s for s in stats if getattr(s, field) > 0]
    ranked.sort(key=lambda s: leaderboard_sort_key(getattr(s, field), s.minutes_played, s.first_seen))
    return ranked[:limit] if limit and limit > 0 else ranked


def _with_player_info(db: Session, stats: Sequence[PlayerStat]) -> List[dict]:
    player_ids = [s.player_id for s in stats]
    players = {p.id: p for p in db.exec(select(Player).where(Player.id.in_(player_ids))).all()}
    team_ids = sorted({p.team_id for p in players.values()})
    teams = {t.id: t for t in db.exec(select(Team).where(Team.id.in_(team_ids))).all()}

    result = []
    for rank, stat in enumerate(stats, start=1):
        player = players.get(stat.player_id)
        team = teams.get(player.team_id) if player else None
        row = stat.to_dict()
        row.update({
            "rank": rank,
            "name": player.name if player else "Unknown Player",
            "team_id": player.team_id if player else None,
            "team": team.name if team else "Unknown Team",
        })
        result.append(row)
    return result


def get_top_scorers(db: Session, tournament_id: int, limit: int = 20) -> List[dict]:
    stats = tournament_player_stats(db, tournament_id)
    return _with_player_info(db, leaderboard(stats, "goals", limit))


def get_top_assists(db: Session, tournament_id: int, limit: int = 20) -> List[dict]:
    stats = tournament_player_stats(db, tournament_id)
    return _with_player_info(db, leaderboard(stats, "assists", limit))
